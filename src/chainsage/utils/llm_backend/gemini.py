"""gemini backend over the generative language rest api.

gemini takes no separate system role here: the system instruction is
prepended to the task prompt, separated by a blank line.
"""

from typing import Optional

import httpx

from chainsage.utils.llm_backend.base import LLMBackend, LLMResponse, estimate_cost

DEFAULT_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"


class GeminiBackend(LLMBackend):

    provider = "gemini"

    def __init__(self, model: str, api_key: Optional[str] = None, base_url: Optional[str] = None,
                 timeout: float = 300.0, http_client: Optional[httpx.Client] = None, **kwargs):
        # accept "models/gemini-..." as listed by the models endpoint
        if model.startswith("models/"):
            model = model[len("models/"):]
        super().__init__(model, **kwargs)
        if not api_key:
            raise ValueError("GEMINI_API_KEY not set. Set it with: export GEMINI_API_KEY='your-key'")

        self.base_url = (base_url or DEFAULT_BASE_URL).rstrip("/")
        self._client = http_client or httpx.Client(
            timeout=httpx.Timeout(timeout, connect=30.0),
            headers={"x-goog-api-key": api_key, "Content-Type": "application/json"},
        )

    def close(self) -> None:
        self._client.close()

    def is_available(self) -> bool:
        return self._client is not None

    def generate(self, prompt: str, system_prompt: Optional[str] = None, max_tokens: int = 4096,
                 temperature: float = 0.7, **kwargs) -> LLMResponse:
        full_prompt = f"{system_prompt}\n\n{prompt}" if system_prompt else prompt
        payload = {
            "contents": [{"role": "user", "parts": [{"text": full_prompt}]}],
            "generationConfig": {"maxOutputTokens": max_tokens, "temperature": temperature},
        }
        url = f"{self.base_url}/models/{self.model}:generateContent"

        def _make_request():
            response = self._client.post(url, json=payload)
            response.raise_for_status()
            return response.json()

        body = self._retry_with_backoff(_make_request)

        candidates = body.get("candidates") or []
        if not candidates:
            feedback = body.get("promptFeedback") or {}
            raise ValueError(f"Gemini returned no candidates (blockReason={feedback.get('blockReason', 'unknown')})")

        parts = (candidates[0].get("content") or {}).get("parts") or []
        text = "".join(part.get("text", "") for part in parts)
        usage = body.get("usageMetadata") or {}
        prompt_tokens = int(usage.get("promptTokenCount", 0) or 0)
        output_tokens = int(usage.get("candidatesTokenCount", 0) or 0)

        return LLMResponse(
            text=text,
            prompt_tokens=prompt_tokens,
            output_tokens=output_tokens,
            cost=estimate_cost(self.model, prompt_tokens, output_tokens),
            model=self.model,
            metadata={"provider": self.provider, "stop_reason": candidates[0].get("finishReason")},
        )
