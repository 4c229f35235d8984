"""
Model configuration schemas.

Typed descriptors for LLM providers, static model presets and the
resolved request configuration handed to the provider client.
"""

from enum import Enum

from pydantic import BaseModel, ConfigDict

# Conservative characters-per-token multiplier, safe for mixed CJK/Latin text
CHARS_PER_TOKEN = 3


class ModelProvider(str, Enum):
    """Known LLM providers."""

    OPENAI = "openai"
    XAI = "xai"
    DEEPSEEK = "deepseek"
    CUSTOM = "custom"

    @property
    def api_key_setting(self) -> str | None:
        """Name of the settings field holding this provider's API key."""
        return {
            ModelProvider.OPENAI: "openai_api_key",
            ModelProvider.XAI: "xai_api_key",
            ModelProvider.DEEPSEEK: "deepseek_api_key",
        }.get(self)

    @property
    def display_name(self) -> str:
        """Human-readable provider name."""
        return {
            ModelProvider.OPENAI: "OpenAI",
            ModelProvider.XAI: "xAI",
            ModelProvider.DEEPSEEK: "DeepSeek",
            ModelProvider.CUSTOM: "Custom provider",
        }[self]


class ModelTier(str, Enum):
    """Cost/capability tier of a preset."""

    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"


class ModelPreset(BaseModel):
    """Static description of a preset model."""

    model_config = ConfigDict(frozen=True)

    key: str
    provider: ModelProvider
    model_name: str
    base_url: str
    max_tokens: int
    max_output_tokens: int
    description: str
    tier: ModelTier


class ResolvedModelConfig(BaseModel):
    """Concrete request configuration for the active model."""

    model_config = ConfigDict(frozen=True)

    api_key: str
    base_url: str
    model_name: str
    max_tokens: int  # Output-token budget sent with each request
    provider: str
    raw_max_tokens: int | None = None  # Context size used for length budgeting
    is_custom: bool = False
