from __future__ import annotations

from commitscore_core.providers.base import DEFAULT_TIMEOUT, BaseModelClient, Generation, SamplingOptions


class AnthropicClient(BaseModelClient):
    DEFAULT_MODEL = "claude-sonnet-4-20250514"

    def __init__(
        self,
        api_key: str,
        model: str | None = None,
        options: SamplingOptions | None = None,
        timeout: float = DEFAULT_TIMEOUT,
    ):
        try:
            from anthropic import Anthropic
        except ImportError:
            raise ImportError(
                "The 'anthropic' package is required for this provider. "
                "Install it with: pip install 'commitscore[anthropic]'"
            )
        super().__init__(model=model, options=options, timeout=timeout)
        self.client = Anthropic(api_key=api_key, max_retries=0)

    def _call_api(self, prompt: str, model: str, options: SamplingOptions, timeout: float) -> Generation:
        # Imported inside the method because the anthropic package is optional;
        # __init__ already validated it is installed before we reach here.
        from anthropic.types import TextBlock

        response = self.client.messages.create(
            model=model,
            messages=[{"role": "user", "content": prompt}],
            temperature=options.temperature,
            top_k=options.top_k,
            max_tokens=options.max_tokens,
            timeout=timeout,
        )
        text_blocks = [block.text for block in response.content if isinstance(block, TextBlock)]
        return Generation(text="".join(text_blocks).strip(), done=response.stop_reason != "max_tokens")

    def _list_models(self) -> list[str]:
        return [m.id for m in self.client.models.list()]
