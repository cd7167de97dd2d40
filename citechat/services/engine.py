"""Owned handle around the inference engine and its load lifecycle."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Sequence
from enum import Enum
from typing import Any, Protocol

from ..logging import log_call
from ..models import ConversationMessage
from .local_model_client import ChatCompletion, InferenceError


logger = logging.getLogger(__name__)


class EngineState(Enum):
    """Lifecycle of the engine handle; it moves forward exactly once."""

    UNINITIALIZED = "uninitialized"
    LOADING = "loading"
    READY = "ready"
    FAILED = "failed"


class EngineNotReadyError(InferenceError):
    """Raised when completions are requested before the model has loaded."""


class ChatBackend(Protocol):
    def health_check(self) -> bool: ...

    def chat(
        self,
        messages: Sequence[dict[str, Any]],
        *,
        temperature: float = ...,
        max_tokens: int = ...,
    ) -> ChatCompletion: ...


class InferenceEngine:
    """Gate access to a chat backend behind an explicit load step.

    The handle is created once per process and passed to the conversation
    manager, so tests can hand in a fake backend instead of a model server.
    """

    def __init__(self, backend: ChatBackend) -> None:
        self.backend = backend
        self._state = EngineState.UNINITIALIZED
        self._error: str | None = None
        self._lock = threading.Lock()
        self._listeners: list[Callable[[EngineState], None]] = []

    @property
    def state(self) -> EngineState:
        return self._state

    @property
    def error(self) -> str | None:
        return self._error

    @property
    def is_ready(self) -> bool:
        return self._state is EngineState.READY

    def add_state_listener(
        self, listener: Callable[[EngineState], None]
    ) -> Callable[[], None]:
        """Subscribe to state changes and return an unsubscribe callable."""

        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    @log_call(logger=logger, include_result=True)
    def load(self) -> EngineState:
        """Probe the backend once; later calls return the settled state."""

        with self._lock:
            if self._state is not EngineState.UNINITIALIZED:
                return self._state
            self._state = EngineState.LOADING
        self._emit(EngineState.LOADING)
        logger.info("Loading inference engine")
        try:
            ready = self.backend.health_check()
        except InferenceError as exc:
            ready = False
            self._error = str(exc)
        if ready:
            final = EngineState.READY
            logger.info("Inference engine ready")
        else:
            final = EngineState.FAILED
            self._error = self._error or "Model server is unreachable or the model is missing."
            logger.error("Inference engine failed to load", extra={"error": self._error})
        with self._lock:
            self._state = final
        self._emit(final)
        return final

    def start_loading(self) -> threading.Thread:
        """Run :meth:`load` on a daemon thread and return the thread."""

        thread = threading.Thread(target=self.load, name="EngineLoader", daemon=True)
        thread.start()
        return thread

    def complete(
        self,
        messages: Sequence[ConversationMessage],
        *,
        temperature: float,
        max_tokens: int,
    ) -> str:
        """Return generated text for ``messages``."""

        if self._state is not EngineState.READY:
            raise EngineNotReadyError(f"Inference engine is {self._state.value}")
        completion = self.backend.chat(
            [message.to_payload() for message in messages],
            temperature=temperature,
            max_tokens=max_tokens,
        )
        return completion.content

    def _emit(self, state: EngineState) -> None:
        for listener in list(self._listeners):
            listener(state)


__all__ = ["ChatBackend", "EngineNotReadyError", "EngineState", "InferenceEngine"]
