from typing import Optional
import logging

import httpx
from openai import OpenAI

from chainsage.utils.llm_backend.base import LLMBackend, LLMResponse, estimate_cost

logger = logging.getLogger(__name__)

BASE_URLS = {
    "openai": "https://api.openai.com/v1",
    "deepseek": "https://api.deepseek.com/v1",
    "openrouter": "https://openrouter.ai/api/v1",
}


class OpenAICompatibleBackend(LLMBackend):
    """chat-completions backend for openai and the providers that speak its api"""

    def __init__(self, model: str, api_key: Optional[str] = None, base_url: Optional[str] = None,
                 provider: str = "openai", timeout: float = 300.0, **kwargs):
        super().__init__(model, **kwargs)
        if not api_key:
            raise ValueError(f"No API key for provider '{provider}'")

        if base_url is None:
            base_url = BASE_URLS.get(provider)
            if not base_url:
                raise ValueError(f"Unknown provider: {provider}")

        self.provider = provider
        self.base_url = base_url
        self._http_client = httpx.Client(timeout=httpx.Timeout(timeout, connect=30.0))
        self.client = OpenAI(api_key=api_key, base_url=base_url, http_client=self._http_client)
        logger.debug("[%s] initialized model=%s base_url=%s", provider, model, base_url)

    def close(self) -> None:
        if self._http_client is not None:
            self._http_client.close()
            self._http_client = None

    def is_available(self) -> bool:
        return self.client is not None

    def generate(self, prompt: str, system_prompt: Optional[str] = None, max_tokens: int = 4096,
                 temperature: float = 0.7, **kwargs) -> LLMResponse:
        messages = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": prompt})

        request_params = {"model": self.model, "messages": messages,
                          "max_tokens": max_tokens, "temperature": temperature}

        def _make_request():
            response = self.client.chat.completions.create(**request_params, **kwargs)
            if not response.choices:
                raise ValueError(f"{self.provider} API returned empty choices array")
            return response

        response = self._retry_with_backoff(_make_request)
        choice = response.choices[0]
        usage = getattr(response, "usage", None)
        prompt_tokens = getattr(usage, "prompt_tokens", 0) or 0
        output_tokens = getattr(usage, "completion_tokens", 0) or 0

        return LLMResponse(
            text=choice.message.content or "",
            prompt_tokens=prompt_tokens,
            output_tokens=output_tokens,
            cost=estimate_cost(self.model, prompt_tokens, output_tokens),
            model=self.model,
            metadata={"provider": self.provider, "stop_reason": choice.finish_reason},
        )
