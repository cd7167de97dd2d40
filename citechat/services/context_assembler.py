"""Citation-numbered context block and prompt construction."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass

from ..models import Source


logger = logging.getLogger(__name__)


MAX_SOURCE_CHARS = 8000

BASE_SYSTEM_PROMPT = (
    "You are an expert AI assistant. Answer succinctly. "
    "If unsure, state the uncertainty."
)

CITATION_SYSTEM_PROMPT = (
    "You are an expert AI assistant. Answer succinctly and cite sources as "
    "[1], [2], etc. for every claim drawn from the provided context. "
    "If the context does not support an answer, state the uncertainty."
)

ANSWER_INSTRUCTION = (
    "Write the best answer. Include citations like [n] next to claims that "
    "come from sources."
)


@dataclass(frozen=True)
class ContextEntry:
    """One numbered source as it appears in the prompt."""

    index: int
    header: str
    body: str

    def render(self) -> str:
        return f"{self.header}\n{self.body}"


@dataclass(frozen=True)
class ContextBlock:
    entries: tuple[ContextEntry, ...] = ()

    def render(self) -> str:
        return "\n\n".join(entry.render() for entry in self.entries)

    def __len__(self) -> int:
        return len(self.entries)


@dataclass(frozen=True)
class AssembledPrompt:
    """Prompt text plus the metadata the conversation layer needs."""

    prompt_text: str
    citable_count: int
    system_prompt: str
    block: ContextBlock


class ContextAssembler:
    """Number sources in order and wrap them in answering instructions.

    Entry ``n`` of the block is the source a model-emitted ``[n]`` refers to.
    """

    def __init__(self, *, max_source_chars: int = MAX_SOURCE_CHARS) -> None:
        if max_source_chars <= 0:
            raise ValueError("max_source_chars must be positive")
        self.max_source_chars = max_source_chars

    def build_block(self, sources: Sequence[Source]) -> ContextBlock:
        entries = []
        for index, source in enumerate(sources, start=1):
            header = f"{index}. {source.title}"
            if source.url:
                header += f" ({source.url})"
            entries.append(
                ContextEntry(index, header, source.text[: self.max_source_chars])
            )
        return ContextBlock(tuple(entries))

    def assemble(self, sources: Sequence[Source], query: str) -> AssembledPrompt:
        if not sources:
            return AssembledPrompt(
                prompt_text=f"{BASE_SYSTEM_PROMPT}\n\nUser: {query}\nAssistant:",
                citable_count=0,
                system_prompt=BASE_SYSTEM_PROMPT,
                block=ContextBlock(),
            )

        block = self.build_block(sources)
        prompt_text = (
            f"{CITATION_SYSTEM_PROMPT}\n\n"
            f"Context Sources:\n{block.render()}\n\n"
            f"User question: {query}\n\n"
            f"{ANSWER_INSTRUCTION}"
        )
        citable_count = sum(1 for source in sources if source.is_web)
        logger.debug(
            "Assembled context prompt",
            extra={
                "entry_count": len(block),
                "citable_count": citable_count,
                "prompt_length": len(prompt_text),
            },
        )
        return AssembledPrompt(
            prompt_text=prompt_text,
            citable_count=citable_count,
            system_prompt=CITATION_SYSTEM_PROMPT,
            block=block,
        )


__all__ = [
    "ANSWER_INSTRUCTION",
    "AssembledPrompt",
    "BASE_SYSTEM_PROMPT",
    "CITATION_SYSTEM_PROMPT",
    "ContextAssembler",
    "ContextBlock",
    "ContextEntry",
]
