"""
Model configuration.

Resolves the configured preset (or the custom provider override) into the
concrete API key, base URL, model name and token limits used for a
chat-completion request.
"""

from babel_core.config import TranslatorSettings
from babel_core.schemas import (
    CHARS_PER_TOKEN,
    ModelPreset,
    ModelProvider,
    ModelTier,
    ResolvedModelConfig,
    TranslationErrorKind,
    TranslationFailure,
)

CUSTOM_PRESET = "custom"


def _preset(
    key: str,
    provider: ModelProvider,
    base_url: str,
    max_tokens: int,
    max_output_tokens: int,
    description: str,
    tier: ModelTier,
) -> tuple[str, ModelPreset]:
    return key, ModelPreset(
        key=key,
        provider=provider,
        model_name=key,
        base_url=base_url,
        max_tokens=max_tokens,
        max_output_tokens=max_output_tokens,
        description=description,
        tier=tier,
    )


_OPENAI = "https://api.openai.com"
_XAI = "https://api.x.ai"
_DEEPSEEK = "https://api.deepseek.com"

PRESET_MODELS: dict[str, ModelPreset] = dict([
    # OpenAI
    _preset("gpt-5", ModelProvider.OPENAI, _OPENAI, 128_000, 16_000,
            "OpenAI next-generation flagship model", ModelTier.HIGH),
    _preset("gpt-5-mini", ModelProvider.OPENAI, _OPENAI, 128_000, 16_000,
            "OpenAI GPT-5 cost-effective variant", ModelTier.MEDIUM),
    _preset("gpt-5-nano", ModelProvider.OPENAI, _OPENAI, 16_385, 4_096,
            "OpenAI GPT-5 lightweight variant for speed and cost", ModelTier.LOW),
    _preset("gpt-4o", ModelProvider.OPENAI, _OPENAI, 128_000, 16_000,
            "OpenAI flagship model, strongest performance", ModelTier.HIGH),
    _preset("gpt-4o-mini", ModelProvider.OPENAI, _OPENAI, 128_000, 16_000,
            "OpenAI cost-effective model, excellent performance", ModelTier.MEDIUM),
    _preset("gpt-3.5-turbo", ModelProvider.OPENAI, _OPENAI, 16_385, 4_096,
            "OpenAI economical model, fast speed", ModelTier.LOW),
    # xAI
    _preset("grok-4", ModelProvider.XAI, _XAI, 132_000, 16_000,
            "xAI flagship model with strong math reasoning", ModelTier.HIGH),
    _preset("grok-4-fast-non-reasoning", ModelProvider.XAI, _XAI, 2_000_000, 16_000,
            "xAI Grok-4 fast non-reasoning model, optimized for low latency",
            ModelTier.MEDIUM),
    _preset("grok-3", ModelProvider.XAI, _XAI, 131_072, 16_000,
            "xAI medium model, balanced performance and cost", ModelTier.MEDIUM),
    _preset("grok-2", ModelProvider.XAI, _XAI, 128_000, 16_000,
            "xAI economical model, fast response", ModelTier.LOW),
    # DeepSeek
    _preset("deepseek-r1", ModelProvider.DEEPSEEK, _DEEPSEEK, 64_000, 16_000,
            "DeepSeek flagship model, strong Chinese capabilities", ModelTier.HIGH),
    _preset("deepseek-v3", ModelProvider.DEEPSEEK, _DEEPSEEK, 64_000, 16_000,
            "DeepSeek general conversation model, cost-effective", ModelTier.MEDIUM),
])


def _config_error(message: str) -> TranslationFailure:
    return TranslationFailure(kind=TranslationErrorKind.CONFIG_ERROR, message=message)


def resolve_model_config(
    preset_key: str, settings: TranslatorSettings
) -> ResolvedModelConfig | TranslationFailure:
    """
    Resolve a preset key into a concrete request configuration.

    Args:
        preset_key: A key of PRESET_MODELS or "custom".
        settings: Source of API keys and the custom provider fields.

    Returns:
        ResolvedModelConfig, or a config_error TranslationFailure when the
        preset is unknown or the API key, base URL or model name is blank.
    """
    if preset_key == CUSTOM_PRESET:
        provider = settings.custom_provider or CUSTOM_PRESET
        api_key = settings.custom_api_key
        base_url = settings.custom_base_url
        model_name = settings.custom_model_name
        max_tokens = (
            settings.custom_max_output_tokens or settings.custom_max_tokens
        )
        raw_max_tokens: int | None = settings.custom_max_tokens
        is_custom = True
    else:
        preset = PRESET_MODELS.get(preset_key)
        if preset is None:
            return _config_error(f"Invalid preset model: {preset_key}")
        provider = preset.provider.value
        key_setting = preset.provider.api_key_setting
        api_key = getattr(settings, key_setting) if key_setting else ""
        base_url = preset.base_url
        model_name = preset.model_name
        max_tokens = (
            preset.max_output_tokens or preset.max_tokens or settings.custom_max_output_tokens
        )
        raw_max_tokens = preset.max_tokens
        is_custom = False

    if not (api_key or "").strip():
        return _config_error(f"API key not configured for provider {provider}")
    if not (base_url or "").strip():
        return _config_error(f"Base URL not configured for provider {provider}")
    if not (model_name or "").strip():
        return _config_error(f"Model name not configured for provider {provider}")

    return ResolvedModelConfig(
        api_key=api_key.strip(),
        base_url=base_url.strip(),
        model_name=model_name.strip(),
        max_tokens=max_tokens,
        provider=provider,
        raw_max_tokens=raw_max_tokens,
        is_custom=is_custom,
    )


def max_content_length(config: ResolvedModelConfig, settings: TranslatorSettings) -> int:
    """
    Character budget for one translation request.

    Preset token limits are known, so they are converted with a
    conservative characters-per-token multiplier. Custom providers use the
    configured character limit verbatim.
    """
    if config.is_custom or not config.raw_max_tokens:
        return settings.max_content_length
    return config.raw_max_tokens * CHARS_PER_TOKEN


def list_available_models() -> list[dict[str, object]]:
    """Describe every preset for display in an admin UI."""
    return [
        {
            "key": key,
            "name": preset.model_name,
            "provider": preset.provider.value,
            "description": preset.description,
            "tier": preset.tier.value,
            "max_tokens": preset.max_tokens,
            "max_output_tokens": preset.max_output_tokens,
        }
        for key, preset in PRESET_MODELS.items()
    ]


def list_models_by_provider(provider: ModelProvider | str) -> dict[str, ModelPreset]:
    """Presets served by one provider."""
    provider = ModelProvider(provider)
    return {k: p for k, p in PRESET_MODELS.items() if p.provider == provider}


def list_models_by_tier(tier: ModelTier | str) -> dict[str, ModelPreset]:
    """Presets in one tier."""
    tier = ModelTier(tier)
    return {k: p for k, p in PRESET_MODELS.items() if p.tier == tier}
