"""llm backend base classes: the one text-in/text-out interface every provider implements"""

import logging
import random
import time
from abc import ABC, abstractmethod
from typing import Dict, Any, Optional, Callable, TypeVar
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)

T = TypeVar("T")

# usd per million tokens; unknown models cost 0.0
MODEL_PRICING: Dict[str, Dict[str, float]] = {
    "gpt-4": {"input": 30.00, "output": 60.00},
    "gpt-4o": {"input": 2.50, "output": 10.00},
    "gpt-4o-mini": {"input": 0.15, "output": 0.60},
    "claude-3-sonnet-20240229": {"input": 3.00, "output": 15.00},
    "deepseek-coder": {"input": 0.14, "output": 0.28},
    "gemini-1.5-pro-latest": {"input": 1.25, "output": 5.00},
    "grok-4.1-fast": {"input": 0.20, "output": 0.50},
    "x-ai/grok-4.1-fast": {"input": 0.20, "output": 0.50},
}


def estimate_cost(model: str, prompt_tokens: int, output_tokens: int) -> float:
    pricing = MODEL_PRICING.get(model)
    if not pricing:
        return 0.0
    return (prompt_tokens / 1_000_000) * pricing["input"] + (output_tokens / 1_000_000) * pricing["output"]


@dataclass
class LLMResponse:
    """unified response format from any llm backend."""
    text: str
    prompt_tokens: int = 0
    output_tokens: int = 0
    cost: float = 0.0
    model: str = ""
    metadata: Dict[str, Any] = field(default_factory=dict)


class LLMBackend(ABC):
    """abstract base class for all llm backends.

    a backend submits one system instruction plus one task prompt and returns
    the raw reply text. how the system instruction travels (a system role, or
    prepended to the prompt) is the backend's business.
    """

    provider = "base"

    RETRYABLE_PATTERNS = (
        "connection", "connect", "network", "socket", "reset by peer", "broken pipe", "eof",
        "timeout", "timed out", "deadline exceeded",
        "rate limit", "rate_limit", "too many requests", "quota exceeded", "throttl",
        "429", "500", "502", "503", "504",
        "service unavailable", "bad gateway", "gateway timeout", "internal server error",
        "temporarily unavailable", "overloaded",
    )

    def __init__(self, model: str, max_retries: int = 3, base_delay: float = 2.0):
        """initialize the llm backend. args: model: the model name/identifier to use for this backend."""
        self.model = model
        self.max_retries = max_retries
        self.base_delay = base_delay

    @abstractmethod
    def generate(
        self,
        prompt: str,
        system_prompt: Optional[str] = None,
        max_tokens: int = 4096,
        temperature: float = 0.7,
        **kwargs
    ) -> LLMResponse:
        """generate text from the given prompt. raises on transport, auth or quota failure."""

    @abstractmethod
    def is_available(self) -> bool:
        """check if this backend is configured well enough to be called."""

    def close(self) -> None:
        """release any http client held by the backend"""

    def _is_retryable_error(self, error: Exception) -> bool:
        error_str = str(error).lower()
        return any(pattern in error_str for pattern in self.RETRYABLE_PATTERNS)

    def _retry_with_backoff(self, func: Callable[[], T]) -> T:
        for attempt in range(self.max_retries + 1):
            try:
                return func()
            except Exception as e:
                if not self._is_retryable_error(e) or attempt >= self.max_retries:
                    raise
                delay = min(60.0, self.base_delay * (2 ** attempt)) + random.uniform(0, 1)
                logger.warning(
                    "[%s] attempt %d/%d failed: %s; retrying in %.1fs",
                    self.provider, attempt + 1, self.max_retries + 1, e, delay,
                )
                time.sleep(delay)
        raise RuntimeError("unreachable")

    def __repr__(self) -> str:
        return f"{type(self).__name__}(model={self.model!r})"
