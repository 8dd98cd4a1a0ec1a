"""xai grok backend over the official xai sdk (grpc)."""

import logging
import time
from typing import Optional

import grpc
from xai_sdk import Client
from xai_sdk.chat import system, user

from chainsage.utils.llm_backend.base import LLMBackend, LLMResponse, estimate_cost

logger = logging.getLogger(__name__)


class GrokBackend(LLMBackend):
    """backend for xai's grok models. every call opens a fresh chat, so no history is kept."""

    provider = "xai"

    def __init__(self, model: str, api_key: Optional[str] = None, timeout: float = 300.0,
                 max_backoff: float = 60.0, **kwargs):
        super().__init__(model, **kwargs)
        # "x-ai/grok-..." is the openrouter spelling of the same model
        self.api_model = model.split("/", 1)[1] if model.startswith("x-ai/") else model

        if not api_key:
            raise ValueError(
                "XAI_API_KEY environment variable not set. "
                "Please set it to your xAI API key."
            )

        self.client = Client(api_key=api_key, timeout=timeout)
        self.max_backoff = max_backoff

    def is_available(self) -> bool:
        return self.client is not None

    def generate(
        self,
        prompt: str,
        system_prompt: Optional[str] = None,
        max_tokens: int = 4096,
        temperature: float = 0.7,
        **kwargs
    ) -> LLMResponse:
        chat = self.client.chat.create(model=self.api_model, max_tokens=max_tokens, temperature=temperature)
        if system_prompt:
            chat.append(system(system_prompt))
        chat.append(user(prompt))

        backoff = self.base_delay
        for attempt in range(self.max_retries + 1):
            try:
                response = chat.sample()
                break
            except grpc.RpcError as exc:
                if exc.code() == grpc.StatusCode.RESOURCE_EXHAUSTED and attempt < self.max_retries:
                    logger.warning("xAI quota hit (attempt %d); sleeping %.0fs", attempt + 1, backoff)
                    time.sleep(backoff)
                    backoff = min(backoff * 2, self.max_backoff)
                    continue
                raise

        text = response.content or ""
        usage = getattr(response, "usage", None)
        prompt_tokens = int(getattr(usage, "prompt_tokens", 0) or 0) if usage else 0
        completion = getattr(usage, "completion_tokens", None) if usage else None
        # the sdk omits usage on some responses; fall back to a character estimate
        output_tokens = int(completion) if completion is not None else int(len(text) / 3.5)

        return LLMResponse(
            text=text,
            prompt_tokens=prompt_tokens,
            output_tokens=output_tokens,
            cost=estimate_cost(self.model, prompt_tokens, output_tokens),
            model=self.model,
            metadata={"provider": self.provider},
        )
