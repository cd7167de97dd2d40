"""Stateful coordination of retrieval-augmented conversation turns."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from ..ingest import DocumentReader, ParserError
from ..logging import log_call
from ..models import ConversationMessage, Source, SourceKind
from .aggregator import SourceAggregator
from .context_assembler import AssembledPrompt, ContextAssembler
from .engine import EngineNotReadyError, InferenceEngine
from .local_model_client import InferenceError


logger = logging.getLogger(__name__)


APOLOGY_REPLY = "Sorry, there was an error generating a response."
NOT_READY_REPLY = "AI not ready. Please wait for model to load."
DEFAULT_TEMPERATURE = 0.2
DEFAULT_MAX_TOKENS = 600


class TurnState(Enum):
    """Phases of a turn; a turn always returns to ``IDLE``."""

    IDLE = "idle"
    AGGREGATING = "aggregating"
    ASSEMBLING = "assembling"
    INFERRING = "inferring"


class ConversationBusyError(RuntimeError):
    """Raised when a turn or upload is attempted while a turn is running."""


@dataclass(frozen=True)
class StatusUpdate:
    """Status event payload published at each turn transition."""

    state: TurnState
    message: str


@dataclass
class ConversationTurn:
    """Outcome of one question/answer cycle."""

    question: str
    answer: str
    sources: list[Source] = field(default_factory=list)
    prompt: AssembledPrompt | None = None
    succeeded: bool = True

    @property
    def web_sources(self) -> list[Source]:
        return [source for source in self.sources if source.is_web]


class ConversationManager:
    """Own the chat history and provenance list and run one turn at a time."""

    def __init__(
        self,
        engine: InferenceEngine,
        aggregator: SourceAggregator,
        *,
        assembler: ContextAssembler | None = None,
        document_reader: DocumentReader | None = None,
        auto_browse: bool = True,
        temperature: float = DEFAULT_TEMPERATURE,
        max_tokens: int = DEFAULT_MAX_TOKENS,
    ) -> None:
        self.engine = engine
        self.aggregator = aggregator
        self.assembler = assembler or ContextAssembler()
        self.document_reader = document_reader or DocumentReader()
        self.auto_browse = auto_browse
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.turns: list[ConversationTurn] = []
        self._history: list[ConversationMessage] = []
        self._sources: list[Source] = []
        self._state = TurnState.IDLE
        self._status = ""
        self._busy = threading.Lock()
        self._listeners: list[Callable[[StatusUpdate], None]] = []

    # ------------------------------------------------------------------
    @property
    def history(self) -> list[ConversationMessage]:
        return list(self._history)

    @property
    def sources(self) -> list[Source]:
        """Provenance list: uploaded documents and web sources used so far."""

        return list(self._sources)

    @property
    def documents(self) -> list[Source]:
        return [source for source in self._sources if source.kind is SourceKind.DOCUMENT]

    @property
    def state(self) -> TurnState:
        return self._state

    @property
    def status(self) -> str:
        return self._status

    @property
    def busy(self) -> bool:
        return self._busy.locked()

    def can_ask(self) -> bool:
        """Return ``True`` when a new turn would be accepted and answered."""

        return not self.busy and self.engine.is_ready

    def add_status_listener(
        self, listener: Callable[[StatusUpdate], None]
    ) -> Callable[[], None]:
        """Subscribe to status changes and return an unsubscribe callable."""

        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # ------------------------------------------------------------------
    @log_call(logger=logger, level=logging.DEBUG, include_args=False)
    def add_documents(self, paths: Iterable[str | Path]) -> list[Source]:
        """Read ``paths`` and hold the readable ones as document sources.

        Unreadable files are skipped with a warning. The returned sources are
        also appended to the provenance list.
        """

        if not self._busy.acquire(blocking=False):
            raise ConversationBusyError("Cannot add documents while a turn is running")
        try:
            added: list[Source] = []
            for path in paths:
                try:
                    document = self.document_reader.read_path(path)
                except ParserError as exc:
                    logger.warning(
                        "Skipping unreadable document",
                        extra={"path": str(path), "error": str(exc)},
                    )
                    continue
                added.append(Source.document(title=document.name, text=document.text))
            self._sources.extend(added)
            logger.info(
                "Documents added",
                extra={"added": len(added), "held": len(self.documents)},
            )
            return added
        finally:
            self._busy.release()

    @log_call(logger=logger, level=logging.DEBUG, include_args=False)
    def ask(self, question: str) -> ConversationTurn:
        """Run a full turn for ``question`` and return its outcome.

        Raises :class:`ConversationBusyError` instead of queueing when another
        turn is still running.
        """

        content = question.strip()
        if not content:
            raise ValueError("Question must not be empty")
        if not self._busy.acquire(blocking=False):
            raise ConversationBusyError("A turn is already in progress")
        try:
            return self._run_turn(content)
        finally:
            self._transition(TurnState.IDLE, "")
            self._busy.release()

    def _run_turn(self, question: str) -> ConversationTurn:
        preview = question[:120]
        logger.info(
            "Received question",
            extra={
                "question_preview": preview,
                "auto_browse": self.auto_browse,
                "document_count": len(self.documents),
            },
        )
        self._history.append(ConversationMessage("user", question))

        self._transition(
            TurnState.AGGREGATING,
            "Searching the web..." if self.auto_browse else "Reading documents...",
        )
        turn_sources = self.aggregator.collect(
            question, self.documents, auto_browse=self.auto_browse
        )

        self._transition(TurnState.ASSEMBLING, "Assembling context...")
        prompt = self.assembler.assemble(turn_sources, question)
        messages = self._build_messages(prompt)

        self._transition(TurnState.INFERRING, "Thinking...")
        try:
            reply = self.engine.complete(
                messages, temperature=self.temperature, max_tokens=self.max_tokens
            )
        except EngineNotReadyError as exc:
            logger.warning("Inference engine not ready", extra={"error": str(exc)})
            return self._finish_failed(question, NOT_READY_REPLY, turn_sources, prompt)
        except InferenceError as exc:
            logger.error(
                "Inference failed",
                extra={"question_preview": preview, "error": str(exc)},
            )
            return self._finish_failed(question, APOLOGY_REPLY, turn_sources, prompt)
        except Exception as exc:
            logger.error(
                "Unexpected inference failure",
                extra={"question_preview": preview, "error": str(exc)},
                exc_info=True,
            )
            return self._finish_failed(question, APOLOGY_REPLY, turn_sources, prompt)

        self._history.append(ConversationMessage("assistant", reply))
        web_sources = [source for source in turn_sources if source.is_web]
        self._sources.extend(web_sources)
        turn = ConversationTurn(question, reply, turn_sources, prompt, succeeded=True)
        self.turns.append(turn)
        logger.info(
            "Completed question",
            extra={
                "question_preview": preview,
                "source_count": len(turn_sources),
                "citable_count": prompt.citable_count,
                "answer_length": len(reply),
            },
        )
        return turn

    def _finish_failed(
        self,
        question: str,
        reply: str,
        turn_sources: list[Source],
        prompt: AssembledPrompt,
    ) -> ConversationTurn:
        self._history.append(ConversationMessage("assistant", reply))
        turn = ConversationTurn(question, reply, turn_sources, prompt, succeeded=False)
        self.turns.append(turn)
        return turn

    def _build_messages(self, prompt: AssembledPrompt) -> list[ConversationMessage]:
        """System instruction, full history, then the context-bearing prompt."""

        return [
            ConversationMessage("system", prompt.system_prompt),
            *self._history,
            ConversationMessage("user", prompt.prompt_text),
        ]

    def _transition(self, state: TurnState, message: str) -> None:
        self._state = state
        self._status = message
        logger.debug("Turn state changed", extra={"state": state.value})
        update = StatusUpdate(state, message)
        for listener in list(self._listeners):
            listener(update)


def sources_for_display(sources: Sequence[Source]) -> list[str]:
    """Format provenance entries as ``"Web: title (url)"`` / ``"Document: title"``."""

    lines = []
    for source in sources:
        if source.is_web:
            lines.append(f"Web: {source.title} ({source.url})")
        else:
            lines.append(f"Document: {source.title}")
    return lines


__all__ = [
    "APOLOGY_REPLY",
    "ConversationBusyError",
    "ConversationManager",
    "ConversationTurn",
    "NOT_READY_REPLY",
    "StatusUpdate",
    "TurnState",
    "sources_for_display",
]
