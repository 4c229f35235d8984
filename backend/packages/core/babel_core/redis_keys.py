"""Redis key templates and TTL constants.

Centralized management of all Redis keys and pub/sub channels used by the
translation pipeline to prevent conflicts and make maintenance easier.
"""


class RedisKeys:
    """Redis key templates and helper methods."""

    # ============================================================================
    # Rate Limiting Keys
    # ============================================================================

    # Fixed-window request counter for outbound provider calls
    # Format: ai_translator_rate_limit:{window}
    # TTL: 2 minutes (120 seconds), outlives the window
    RATE_LIMIT_WINDOW_SECONDS = 60
    RATE_LIMIT_TTL = 120

    @staticmethod
    def rate_limit_window(window: int) -> str:
        """
        Get the rate-limit counter key for a window.

        Args:
            window: Window index, ``floor(unix_time / 60)``.

        Returns:
            Redis key string.
        """
        return f"ai_translator_rate_limit:{window}"

    # ============================================================================
    # Notification Channels
    # ============================================================================

    @staticmethod
    def topic_translation_channel(topic_id: int | str) -> str:
        """
        Get the status channel for all translations of a topic.

        Args:
            topic_id: Owning topic ID.

        Returns:
            Redis pub/sub channel name.
        """
        return f"post_translations:topic:{topic_id}"

    @staticmethod
    def post_translation_channel(post_id: int | str) -> str:
        """
        Get the channel carrying completed translation objects for a post.

        Args:
            post_id: Post ID.

        Returns:
            Redis pub/sub channel name.
        """
        return f"post_translations:post:{post_id}"

    @staticmethod
    def language_preference_prompt(user_id: int | str) -> str:
        """
        Get the channel used to prompt a user for a preferred language.

        Args:
            user_id: User ID.

        Returns:
            Redis pub/sub channel name.
        """
        return f"language_preference_prompt:{user_id}"
