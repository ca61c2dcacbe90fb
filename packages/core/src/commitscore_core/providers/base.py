"""Base model client implementing the Template Method pattern.

All providers share the same call contract:
    generate() → _call_api()   ← only this differs per provider
               → Generation(text | error)

Subclasses implement two things only:
  - _call_api: make one raw API call and return the text response
  - _list_models: return the model names the endpoint serves

generate() makes exactly one round trip and never retries. A failed call is
reported as a Generation carrying `error`; retry policy belongs to the caller.
"""

from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 600.0


@dataclass(frozen=True)
class SamplingOptions:
    temperature: float = 0.1
    top_p: float = 0.9
    top_k: int = 40
    max_tokens: int = 2048

    @classmethod
    def from_config(cls, config: dict) -> SamplingOptions:
        return cls(
            temperature=float(config.get("temperature", cls.temperature)),
            top_p=float(config.get("top_p", cls.top_p)),
            top_k=int(config.get("top_k", cls.top_k)),
            max_tokens=int(config.get("max_tokens", cls.max_tokens)),
        )


@dataclass(frozen=True)
class Generation:
    text: str = ""
    done: bool = True
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


class BaseModelClient(ABC):
    DEFAULT_MODEL: str = ""

    def __init__(self, model: str | None = None, options: SamplingOptions | None = None, timeout: float = DEFAULT_TIMEOUT):
        self.model = model or self.DEFAULT_MODEL
        self.options = options or SamplingOptions()
        self.timeout = timeout

    # ------------------------------------------------------------------ #
    # Public interface                                                     #
    # ------------------------------------------------------------------ #

    def generate(
        self,
        prompt: str,
        model: str | None = None,
        options: SamplingOptions | None = None,
        timeout: float | None = None,
    ) -> Generation:
        """Send one prompt and return the reply, or a Generation with `error` set."""
        model = model or self.model
        options = options or self.options
        timeout = timeout or self.timeout

        started = time.monotonic()
        logger.info("%s: calling %s (%d prompt chars)", self.__class__.__name__, model, len(prompt))
        try:
            generation = self._call_api(prompt, model, options, timeout)
        except Exception as e:
            logger.warning("%s: call to %s failed: %s", self.__class__.__name__, model, e)
            return Generation(done=False, error=f"{type(e).__name__}: {e}")

        logger.info(
            "%s: %s replied in %.1fs (%d chars)",
            self.__class__.__name__,
            model,
            time.monotonic() - started,
            len(generation.text),
        )
        if generation.ok and not generation.text.strip():
            return Generation(done=generation.done, error="empty response")
        return generation

    def list_models(self) -> list[str]:
        return self._list_models()

    def is_available(self, model: str | None = None) -> bool:
        """True when the endpoint answers and, if given, serves `model`."""
        try:
            models = self._list_models()
        except Exception as e:
            logger.debug("%s: availability probe failed: %s", self.__class__.__name__, e)
            return False
        if model is None:
            return True
        return any(name == model or name.split(":")[0] == model for name in models)

    # ------------------------------------------------------------------ #
    # Abstract: implement in each provider                                #
    # ------------------------------------------------------------------ #

    @abstractmethod
    def _call_api(self, prompt: str, model: str, options: SamplingOptions, timeout: float) -> Generation:
        """Make a single API call. May raise; generate() turns exceptions into error values."""

    @abstractmethod
    def _list_models(self) -> list[str]:
        """Return the names of the models the endpoint serves. May raise."""
