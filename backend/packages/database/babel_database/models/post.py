"""
Host content models.

Minimal mirrors of the CMS tables the translation pipeline reads: topics,
posts and users. The host application owns these rows; the pipeline only
reads them and hangs its own tables off them.
"""

from datetime import datetime

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, TimestampMixin


class Topic(Base, TimestampMixin):
    """
    Discussion thread.

    Attributes:
        id: Topic ID.
        title: Topic title, translated together with its first post.
    """

    __tablename__ = "topics"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    title: Mapped[str | None] = mapped_column(String(1000))

    posts = relationship("Post", back_populates="topic", order_by="Post.post_number")


class Post(Base, TimestampMixin):
    """
    Post inside a topic.

    Attributes:
        id: Post ID.
        topic_id: Owning topic.
        user_id: Author, if known.
        post_number: 1-based position inside the topic.
        raw: Source markup as written by the author.
        cooked: Rendered HTML; this is what gets translated.
        hidden: Hidden by moderation.
        deleted_at: Soft-delete timestamp.
    """

    __tablename__ = "posts"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    topic_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("topics.id", ondelete="CASCADE"), nullable=False, index=True
    )
    user_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="SET NULL")
    )
    post_number: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    raw: Mapped[str | None] = mapped_column(Text)
    cooked: Mapped[str | None] = mapped_column(Text)
    hidden: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    deleted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    topic = relationship("Topic", back_populates="posts")
    translations = relationship(
        "PostTranslation",
        back_populates="post",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    @property
    def is_first_post(self) -> bool:
        return self.post_number == 1

    @property
    def is_visible(self) -> bool:
        return self.deleted_at is None and not self.hidden


class User(Base, TimestampMixin):
    """
    Forum user.

    Attributes:
        id: User ID.
        username: Login name.
    """

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    username: Mapped[str] = mapped_column(String(60), nullable=False, unique=True)

    preferred_language = relationship(
        "UserPreferredLanguage",
        back_populates="user",
        uselist=False,
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
