from __future__ import annotations

try:
    from openai import OpenAI as _OpenAI
except ImportError:
    _OpenAI = None  # type: ignore[assignment,misc]

from commitscore_core.providers.base import DEFAULT_TIMEOUT, BaseModelClient, Generation, SamplingOptions


class OpenAIClient(BaseModelClient):
    DEFAULT_MODEL = "gpt-4o"

    def __init__(
        self,
        api_key: str,
        model: str | None = None,
        options: SamplingOptions | None = None,
        timeout: float = DEFAULT_TIMEOUT,
    ):
        if _OpenAI is None:
            raise ImportError(
                "The 'openai' package is required for this provider. "
                "Install it with: pip install 'commitscore[openai]'"
            )
        super().__init__(model=model, options=options, timeout=timeout)
        # Retries are the analyzer's job.
        self.client = _OpenAI(api_key=api_key, max_retries=0)

    def _call_api(self, prompt: str, model: str, options: SamplingOptions, timeout: float) -> Generation:
        response = self.client.chat.completions.create(
            model=model,
            messages=[{"role": "user", "content": prompt}],
            temperature=options.temperature,
            top_p=options.top_p,
            max_tokens=options.max_tokens,
            timeout=timeout,
        )
        choice = response.choices[0]
        return Generation(text=choice.message.content or "", done=choice.finish_reason != "length")

    def _list_models(self) -> list[str]:
        return [m.id for m in self.client.models.list()]
