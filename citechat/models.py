"""Value types shared by the retrieval pipeline and the conversation layer."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Literal


Role = Literal["system", "user", "assistant"]


class SourceKind(Enum):
    """Where a piece of context came from."""

    WEB = "web"
    DOCUMENT = "document"


@dataclass(frozen=True)
class SearchResult:
    """A single hit returned by the search provider."""

    title: str
    url: str
    snippet: str = ""


@dataclass(frozen=True)
class PageContent:
    """Best-effort article extracted from a web page."""

    title: str
    text: str

    @property
    def is_empty(self) -> bool:
        return not self.text.strip()


@dataclass(frozen=True)
class DocumentText:
    """Text extracted from an uploaded document."""

    name: str
    text: str


@dataclass(frozen=True)
class Source:
    """Citable material: a fetched web page or a document.

    ``url`` is set for web sources and only for them.
    """

    kind: SourceKind
    title: str
    text: str
    url: str | None = None

    def __post_init__(self) -> None:
        if self.kind is SourceKind.WEB and not self.url:
            raise ValueError("Web sources require a URL")
        if self.kind is SourceKind.DOCUMENT and self.url is not None:
            raise ValueError("Document sources must not carry a URL")

    @property
    def is_web(self) -> bool:
        return self.kind is SourceKind.WEB

    @classmethod
    def web(cls, title: str, url: str, text: str) -> "Source":
        return cls(kind=SourceKind.WEB, title=title, url=url, text=text)

    @classmethod
    def document(cls, title: str, text: str) -> "Source":
        return cls(kind=SourceKind.DOCUMENT, title=title, text=text)


@dataclass(frozen=True)
class ConversationMessage:
    """One entry of the chat history."""

    role: Role
    content: str

    def to_payload(self) -> dict[str, str]:
        return {"role": self.role, "content": self.content}


__all__ = [
    "ConversationMessage",
    "DocumentText",
    "PageContent",
    "Role",
    "SearchResult",
    "Source",
    "SourceKind",
]
