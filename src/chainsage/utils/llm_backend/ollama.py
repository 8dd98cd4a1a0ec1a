"""ollama backend for locally served models (no api key)"""

from typing import Optional

import httpx

from chainsage.utils.llm_backend.base import LLMBackend, LLMResponse

DEFAULT_BASE_URL = "http://localhost:11434"


class OllamaBackend(LLMBackend):

    provider = "ollama"

    def __init__(self, model: str, base_url: Optional[str] = None, timeout: float = 300.0,
                 http_client: Optional[httpx.Client] = None, **kwargs):
        super().__init__(model, **kwargs)
        self.base_url = (base_url or DEFAULT_BASE_URL).rstrip("/")
        self._client = http_client or httpx.Client(timeout=httpx.Timeout(timeout, connect=10.0))

    def close(self) -> None:
        self._client.close()

    def is_available(self) -> bool:
        try:
            return self._client.get(f"{self.base_url}/api/tags").status_code == 200
        except httpx.HTTPError:
            return False

    def generate(self, prompt: str, system_prompt: Optional[str] = None, max_tokens: int = 4096,
                 temperature: float = 0.7, **kwargs) -> LLMResponse:
        payload = {
            "model": self.model,
            "prompt": f"{system_prompt}\n\n{prompt}" if system_prompt else prompt,
            "stream": False,
            "options": {"temperature": temperature, "num_predict": max_tokens},
        }

        def _make_request():
            response = self._client.post(f"{self.base_url}/api/generate", json=payload)
            response.raise_for_status()
            return response.json()

        body = self._retry_with_backoff(_make_request)
        if "response" not in body:
            raise ValueError(f"Ollama reply missing 'response' field: {body.get('error', body)}")

        return LLMResponse(
            text=body.get("response") or "",
            prompt_tokens=int(body.get("prompt_eval_count", 0) or 0),
            output_tokens=int(body.get("eval_count", 0) or 0),
            model=self.model,
            metadata={"provider": self.provider, "done_reason": body.get("done_reason")},
        )
