import os
import re
import warnings
from typing import Optional, Dict, Any
from dataclasses import dataclass, field

from dotenv import load_dotenv

from chainsage.agent.chain_config import NETWORKS, normalize_network
from chainsage.utils.validation import ValidationResult

load_dotenv()


class ConfigInvalidError(Exception):
    """raised when required credentials or network settings are missing"""

    def __init__(self, errors):
        if isinstance(errors, str):
            errors = [errors]
        self.errors = list(errors)
        super().__init__("; ".join(self.errors) or "invalid configuration")


def safe_int(value: Optional[str], default: int, min_val: Optional[int] = None, max_val: Optional[int] = None) -> int:
    if value is None or value == "":
        return default
    try:
        result = int(value)
        if min_val is not None and result < min_val:
            warnings.warn(
                f"Value {result} is below minimum {min_val}, using default {default}",
                RuntimeWarning,
                stacklevel=2
            )
            return default
        if max_val is not None and result > max_val:
            warnings.warn(
                f"Value {result} exceeds maximum {max_val}, using default {default}",
                RuntimeWarning,
                stacklevel=2
            )
            return default
        return result
    except (ValueError, TypeError):
        return default


def safe_float(value: Optional[str], default: float, min_val: Optional[float] = None, max_val: Optional[float] = None) -> float:
    if value is None or value == "":
        return default
    try:
        result = float(value)
        if min_val is not None and result < min_val:
            warnings.warn(
                f"Value {result} is below minimum {min_val}, using default {default}",
                RuntimeWarning,
                stacklevel=2
            )
            return default
        if max_val is not None and result > max_val:
            warnings.warn(
                f"Value {result} exceeds maximum {max_val}, using default {default}",
                RuntimeWarning,
                stacklevel=2
            )
            return default
        return result
    except (ValueError, TypeError):
        return default


def safe_bool(value: Optional[str], default: bool = False) -> bool:
    if value is None or value == "":
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def validate_api_key(key: Optional[str], key_name: str) -> bool:
    if not key:
        return False
    if not isinstance(key, str):
        warnings.warn(
            f"{key_name} must be a string",
            RuntimeWarning,
            stacklevel=2
        )
        return False

    if len(key) < 20:
        warnings.warn(
            f"{key_name} appears too short (min 20 characters expected)",
            RuntimeWarning,
            stacklevel=2
        )
        return False

    if len(key) > 500:
        warnings.warn(
            f"{key_name} appears too long (max 500 characters)",
            RuntimeWarning,
            stacklevel=2
        )
        return False

    if not re.match(r'^[A-Za-z0-9_\-\.]+$', key):
        warnings.warn(
            f"{key_name} contains invalid characters (only alphanumeric, -, _, . allowed)",
            RuntimeWarning,
            stacklevel=2
        )
        return False

    return True


# per-provider env names and defaults; ollama runs locally without a key
PROVIDERS: Dict[str, Dict[str, Any]] = {
    "openai": {
        "key_env": "OPENAI_API_KEY",
        "model_env": "OPENAI_MODEL",
        "model": "gpt-4",
        "url_env": "OPENAI_BASE_URL",
        "base_url": "https://api.openai.com/v1",
    },
    "anthropic": {
        "key_env": "ANTHROPIC_API_KEY",
        "model_env": "ANTHROPIC_MODEL",
        "model": "claude-3-sonnet-20240229",
        "url_env": "ANTHROPIC_BASE_URL",
        "base_url": "https://api.anthropic.com",
    },
    "gemini": {
        "key_env": "GEMINI_API_KEY",
        "model_env": "GEMINI_MODEL",
        "model": "gemini-1.5-pro-latest",
        "url_env": "GEMINI_BASE_URL",
        "base_url": "https://generativelanguage.googleapis.com/v1beta",
    },
    "deepseek": {
        "key_env": "DEEPSEEK_API_KEY",
        "model_env": "DEEPSEEK_MODEL",
        "model": "deepseek-coder",
        "url_env": "DEEPSEEK_BASE_URL",
        "base_url": "https://api.deepseek.com/v1",
    },
    "openrouter": {
        "key_env": "OPENROUTER_API_KEY",
        "model_env": "OPENROUTER_MODEL",
        "model": "x-ai/grok-4.1-fast",
        "url_env": "OPENROUTER_BASE_URL",
        "base_url": "https://openrouter.ai/api/v1",
    },
    "xai": {
        "key_env": "XAI_API_KEY",
        "model_env": "XAI_MODEL",
        "model": "grok-4.1-fast",
        "url_env": None,
        "base_url": None,
    },
    "ollama": {
        "key_env": None,
        "model_env": "OLLAMA_MODEL",
        "model": "llama2",
        "url_env": "OLLAMA_BASE_URL",
        "base_url": "http://localhost:11434",
    },
}


@dataclass
class ChainSageConfig:
    DEFAULT_NETWORK: str = field(default_factory=lambda: os.getenv("DEFAULT_NETWORK", "ethereum"))

    EXPLORER_URL: str = field(default_factory=lambda: os.getenv("BLOCKSCOUT_MCP_URL", "https://mcp.blockscout.com"))
    EXPLORER_API_KEY: Optional[str] = field(default_factory=lambda: os.getenv("BLOCKSCOUT_API_KEY") or None)
    REQUEST_TIMEOUT: float = field(default_factory=lambda: safe_float(os.getenv("REQUEST_TIMEOUT"), default=30.0, min_val=1.0, max_val=300.0))
    HISTORY_LIMIT: int = field(default_factory=lambda: safe_int(os.getenv("HISTORY_LIMIT"), default=100, min_val=1, max_val=1000))

    LLM_PROVIDER: str = field(default_factory=lambda: os.getenv("LLM_PROVIDER", "openai"))
    LLM_MODEL_OVERRIDE: Optional[str] = field(default_factory=lambda: os.getenv("LLM_MODEL") or None)
    LLM_MAX_TOKENS: int = field(default_factory=lambda: safe_int(os.getenv("LLM_MAX_TOKENS"), default=4096, min_val=1, max_val=200000))
    LLM_TEMPERATURE: float = field(default_factory=lambda: safe_float(os.getenv("LLM_TEMPERATURE"), default=0.7, min_val=0.0, max_val=2.0))
    LLM_TIMEOUT: float = field(default_factory=lambda: safe_float(os.getenv("LLM_TIMEOUT"), default=300.0, min_val=5.0, max_val=3600.0))

    ENABLE_CACHE: bool = field(default_factory=lambda: safe_bool(os.getenv("ENABLE_CACHE"), default=False))
    CACHE_TTL: int = field(default_factory=lambda: safe_int(os.getenv("CACHE_TTL"), default=900, min_val=0, max_val=86400))
    CACHE_MAX_SIZE: int = field(default_factory=lambda: safe_int(os.getenv("CACHE_MAX_SIZE"), default=1000, min_val=1, max_val=100000))

    BATCH_WORKERS: int = field(default_factory=lambda: safe_int(os.getenv("BATCH_WORKERS"), default=1, min_val=1, max_val=32))

    LOG_LEVEL: str = field(default_factory=lambda: os.getenv("LOG_LEVEL", "info"))
    LOG_DIR: Optional[str] = field(default_factory=lambda: os.getenv("LOG_DIR") or None)
    DEBUG_LLM_CALLS: bool = field(default_factory=lambda: os.getenv("DEBUG_LLM", "0") == "1")

    def __post_init__(self) -> None:
        self.LLM_PROVIDER = (self.LLM_PROVIDER or "openai").strip().lower()
        self.DEFAULT_NETWORK = normalize_network(self.DEFAULT_NETWORK or "ethereum")
        self.EXPLORER_URL = (self.EXPLORER_URL or "").rstrip("/")
        level = (self.LOG_LEVEL or "info").lower()
        if level not in {"debug", "info", "warning", "warn", "error", "critical"}:
            warnings.warn(
                f"[config] Invalid LOG_LEVEL='{self.LOG_LEVEL}', defaulting to 'info'",
                RuntimeWarning,
                stacklevel=2,
            )
            level = "info"
        self.LOG_LEVEL = level

    def api_key_for(self, provider: str) -> Optional[str]:
        key_env = PROVIDERS.get(provider, {}).get("key_env")
        if not key_env:
            return None
        return os.getenv(key_env) or None

    @property
    def LLM_API_KEY(self) -> Optional[str]:
        return self.api_key_for(self.LLM_PROVIDER)

    @property
    def LLM_MODEL(self) -> Optional[str]:
        if self.LLM_MODEL_OVERRIDE:
            return self.LLM_MODEL_OVERRIDE
        provider_info = PROVIDERS.get(self.LLM_PROVIDER)
        if provider_info is None:
            return None
        return os.getenv(provider_info["model_env"]) or provider_info["model"]

    @property
    def LLM_BASE_URL(self) -> Optional[str]:
        provider_info = PROVIDERS.get(self.LLM_PROVIDER)
        if provider_info is None:
            return None
        if provider_info["url_env"] and os.getenv(provider_info["url_env"]):
            return os.getenv(provider_info["url_env"]).rstrip("/")
        return provider_info["base_url"]

    @property
    def requires_api_key(self) -> bool:
        return bool(PROVIDERS.get(self.LLM_PROVIDER, {}).get("key_env"))

    def validate(self) -> ValidationResult:
        """collect every configuration problem instead of stopping at the first"""
        result = ValidationResult(valid=True)

        if self.LLM_PROVIDER not in PROVIDERS:
            result.add_error(
                f"Unsupported LLM provider '{self.LLM_PROVIDER}' "
                f"(expected one of: {', '.join(sorted(PROVIDERS))})"
            )
        elif self.requires_api_key:
            key_env = PROVIDERS[self.LLM_PROVIDER]["key_env"]
            if not self.LLM_API_KEY:
                result.add_error(
                    f"{key_env} environment variable not set. "
                    f"Set it with: export {key_env}='your-key'"
                )
            elif not validate_api_key(self.LLM_API_KEY, key_env):
                result.add_warning(f"{key_env} format validation failed")

        if self.DEFAULT_NETWORK not in NETWORKS:
            result.add_error(
                f"Default network '{self.DEFAULT_NETWORK}' is not configured "
                f"(known: {', '.join(sorted(NETWORKS))})"
            )

        if not self.EXPLORER_URL.startswith(("http://", "https://")):
            result.add_error(f"BLOCKSCOUT_MCP_URL must be an http(s) URL, got '{self.EXPLORER_URL}'")

        if not self.ENABLE_CACHE:
            result.add_warning("Explorer cache disabled (set ENABLE_CACHE=true to enable)")

        return result

    def summary(self) -> str:
        api_status = "Set" if self.LLM_API_KEY else ("Not required" if not self.requires_api_key else "NOT SET")

        return f"""
ChainSage Configuration:
  Network: {self.DEFAULT_NETWORK}
  Explorer: {self.EXPLORER_URL}
  Explorer API Key: {'Set' if self.EXPLORER_API_KEY else 'NOT SET'}
  Request Timeout: {self.REQUEST_TIMEOUT:.0f}s
  LLM Provider: {self.LLM_PROVIDER}
  LLM Model: {self.LLM_MODEL or 'n/a'}
  LLM API Key: {api_status}
  Max Tokens: {self.LLM_MAX_TOKENS}
  Temperature: {self.LLM_TEMPERATURE}
  Cache: {'Enabled' if self.ENABLE_CACHE else 'Disabled'} (ttl={self.CACHE_TTL}s, max={self.CACHE_MAX_SIZE})
  Log Level: {self.LOG_LEVEL}
""".strip()


_config: Optional[ChainSageConfig] = None


def get_config() -> ChainSageConfig:
    """process-wide configuration, built on first use"""
    global _config
    if _config is None:
        _config = ChainSageConfig()
    return _config


def reset_config() -> None:
    global _config
    _config = None
