from __future__ import annotations

import httpx

from commitscore_core.providers.base import DEFAULT_TIMEOUT, BaseModelClient, Generation, SamplingOptions

DEFAULT_URL = "http://localhost:11434"


class OllamaClient(BaseModelClient):
    """Talks to a local or self-hosted Ollama server over its HTTP API."""

    DEFAULT_MODEL = "codellama:7b"

    def __init__(
        self,
        base_url: str = DEFAULT_URL,
        model: str | None = None,
        options: SamplingOptions | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        client: httpx.Client | None = None,
    ):
        super().__init__(model=model, options=options, timeout=timeout)
        self.base_url = base_url.rstrip("/")
        self.client = client or httpx.Client()

    def _call_api(self, prompt: str, model: str, options: SamplingOptions, timeout: float) -> Generation:
        response = self.client.post(
            f"{self.base_url}/api/generate",
            json={
                "model": model,
                "prompt": prompt,
                "stream": False,
                "options": {
                    "temperature": options.temperature,
                    "top_p": options.top_p,
                    "top_k": options.top_k,
                    "num_predict": options.max_tokens,
                },
            },
            timeout=timeout,
        )
        response.raise_for_status()
        data = response.json()
        if data.get("error"):
            return Generation(done=False, error=str(data["error"]))
        return Generation(text=data.get("response") or "", done=bool(data.get("done", True)))

    def _list_models(self) -> list[str]:
        response = self.client.get(f"{self.base_url}/api/tags", timeout=10)
        response.raise_for_status()
        return [m.get("name", "") for m in response.json().get("models", [])]

    def close(self) -> None:
        self.client.close()
