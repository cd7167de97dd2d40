"""Conversation services for the CiteChat assistant."""

from .aggregator import FetchOutcome, SourceAggregator
from .context_assembler import (
    AssembledPrompt,
    ContextAssembler,
    ContextBlock,
    ContextEntry,
)
from .conversation_manager import (
    ConversationBusyError,
    ConversationManager,
    ConversationTurn,
    StatusUpdate,
    TurnState,
)
from .engine import EngineNotReadyError, EngineState, InferenceEngine
from .local_model_client import (
    ChatCompletion,
    InferenceConnectionError,
    InferenceError,
    InferenceResponseError,
    LocalModelClient,
)

__all__ = [
    "AssembledPrompt",
    "ChatCompletion",
    "ContextAssembler",
    "ContextBlock",
    "ContextEntry",
    "ConversationBusyError",
    "ConversationManager",
    "ConversationTurn",
    "EngineNotReadyError",
    "EngineState",
    "FetchOutcome",
    "InferenceConnectionError",
    "InferenceEngine",
    "InferenceError",
    "InferenceResponseError",
    "LocalModelClient",
    "SourceAggregator",
    "StatusUpdate",
    "TurnState",
]
