from typing import Optional

import httpx
from anthropic import Anthropic

from chainsage.utils.llm_backend.base import LLMBackend, LLMResponse, estimate_cost


class ClaudeBackend(LLMBackend):

    provider = "anthropic"

    def __init__(
        self,
        model: str,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: float = 300.0,
        **kwargs
    ):
        super().__init__(model, **kwargs)

        if not api_key:
            raise ValueError(
                "ANTHROPIC_API_KEY not set in environment. "
                "Set it with: export ANTHROPIC_API_KEY='your-key-here'"
            )

        client_kwargs = {
            "api_key": api_key,
            "timeout": httpx.Timeout(timeout=timeout, read=timeout, write=60.0, connect=10.0),
        }
        if base_url:
            client_kwargs["base_url"] = base_url
        self.client = Anthropic(**client_kwargs)
        self.available = True

    def close(self) -> None:
        if self.client is not None:
            self.client.close()

    def is_available(self) -> bool:
        return self.available

    def generate(
        self,
        prompt: str,
        system_prompt: Optional[str] = None,
        max_tokens: int = 4096,
        temperature: float = 0.7,
        **kwargs
    ) -> LLMResponse:
        request_params = {
            "model": self.model,
            "max_tokens": max_tokens,
            "temperature": temperature,
            "messages": [{"role": "user", "content": prompt}]
        }

        if system_prompt:
            request_params["system"] = system_prompt

        response = self._retry_with_backoff(lambda: self.client.messages.create(**request_params))

        response_text = ""
        for block in response.content:
            if block.type == "text":
                response_text += block.text

        prompt_tokens = response.usage.input_tokens
        output_tokens = response.usage.output_tokens

        return LLMResponse(
            text=response_text,
            prompt_tokens=prompt_tokens,
            output_tokens=output_tokens,
            cost=estimate_cost(self.model, prompt_tokens, output_tokens),
            model=self.model,
            metadata={"provider": self.provider, "stop_reason": response.stop_reason},
        )
