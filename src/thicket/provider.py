"""Chat-completion provider adapter (litellm)."""

from __future__ import annotations

import os
from collections.abc import Awaitable, Callable
from typing import Any

import structlog

from thicket.models.config import ProviderConfig
from thicket.store.forest import ThicketError

CompletionFn = Callable[[list[dict[str, str]]], Awaitable[str | None]]
"""Any async callable taking provider messages and returning the reply text (or None)."""


class ProviderError(ThicketError):
    """Raised when the completion provider call fails."""


class LiteLLMCompletion:
    """
    Default completion provider: one non-streaming ``litellm.acompletion`` call.

    Set ``THICKET_MOCK_LLM=1`` to return a canned echo of the latest user
    message without any network access (useful for demos and tests).

    Example::

        complete = LiteLLMCompletion(ProviderConfig(model="gpt-4o-mini"))
        text = await complete([{"role": "user", "content": "Hello"}])
    """

    def __init__(self, config: ProviderConfig | None = None) -> None:
        self._config = config or ProviderConfig()
        self._logger = structlog.get_logger("thicket.provider").bind(model=self._config.model)

    @property
    def model(self) -> str:
        return self._config.model

    async def __call__(self, messages: list[dict[str, str]]) -> str | None:
        """
        Request a single reply for ``messages``.

        Returns:
            The reply text, or ``None`` when the provider returned no content.

        Raises:
            ProviderError: If the provider call raises.
        """
        if os.environ.get("THICKET_MOCK_LLM") == "1":
            return self._mock_response(messages)

        import litellm

        self._logger.debug("completion_requested", message_count=len(messages))
        try:
            response: Any = await litellm.acompletion(
                model=self._config.model,
                messages=messages,
                temperature=self._config.temperature,
            )
        except Exception as exc:
            raise ProviderError(f"Completion call to {self._config.model!r} failed: {exc}") from exc

        if not response.choices:
            return None
        return response.choices[0].message.content

    @staticmethod
    def _mock_response(messages: list[dict[str, str]]) -> str:
        last_user = next(
            (m["content"] for m in reversed(messages) if m["role"] == "user"),
            "Hello",
        )
        return f"[Mock reply to: {last_user[:100]}]"
