"""llm backend factory: one backend per process, chosen from configuration"""

from typing import Optional

from chainsage.config import ChainSageConfig, ConfigInvalidError, PROVIDERS, get_config
from chainsage.utils.llm_backend.base import LLMBackend


def create_backend(
    cfg: Optional[ChainSageConfig] = None,
    provider: Optional[str] = None,
    model: Optional[str] = None,
    **kwargs
) -> LLMBackend:
    """build the backend for the configured provider. unknown providers and
    missing credentials raise configinvaliderror before any call is made."""
    cfg = cfg or get_config()
    provider = (provider or cfg.LLM_PROVIDER).lower()
    if provider not in PROVIDERS:
        raise ConfigInvalidError(
            f"Unsupported LLM provider '{provider}' (expected one of: {', '.join(sorted(PROVIDERS))})"
        )

    provider_info = PROVIDERS[provider]
    if provider == cfg.LLM_PROVIDER:
        model = model or cfg.LLM_MODEL
        base_url = cfg.LLM_BASE_URL
    else:
        model = model or provider_info["model"]
        base_url = provider_info["base_url"]
    api_key = cfg.api_key_for(provider)
    timeout = kwargs.pop("timeout", cfg.LLM_TIMEOUT)

    if provider_info["key_env"] and not api_key:
        raise ConfigInvalidError(f"{provider_info['key_env']} environment variable not set")

    try:
        if provider in ("openai", "deepseek", "openrouter"):
            from chainsage.utils.llm_backend.openai_compat import OpenAICompatibleBackend
            return OpenAICompatibleBackend(model=model, api_key=api_key, base_url=base_url,
                                           provider=provider, timeout=timeout, **kwargs)
        if provider == "anthropic":
            from chainsage.utils.llm_backend.claude import ClaudeBackend
            return ClaudeBackend(model=model, api_key=api_key, base_url=base_url, timeout=timeout, **kwargs)
        if provider == "gemini":
            from chainsage.utils.llm_backend.gemini import GeminiBackend
            return GeminiBackend(model=model, api_key=api_key, base_url=base_url, timeout=timeout, **kwargs)
        if provider == "ollama":
            from chainsage.utils.llm_backend.ollama import OllamaBackend
            return OllamaBackend(model=model, base_url=base_url, timeout=timeout, **kwargs)
        from chainsage.utils.llm_backend.xai import GrokBackend
        return GrokBackend(model=model, api_key=api_key, timeout=timeout, **kwargs)
    except ValueError as exc:
        raise ConfigInvalidError(str(exc)) from exc
