"""HTTP client for a local OpenAI-compatible chat completion server.

LM Studio, the llama.cpp server and Ollama all expose the same
``/v1/chat/completions`` and ``/v1/models`` endpoints, which is all the
assistant needs from its inference engine.
"""

from __future__ import annotations

import json
import logging
import socket
import time
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from http.client import HTTPException
from typing import Any
from urllib import error, request

from ..logging import log_call


logger = logging.getLogger(__name__)


DEFAULT_BASE_URL = "http://127.0.0.1:1234"
CHAT_COMPLETIONS_PATH = "/v1/chat/completions"
MODELS_PATH = "/v1/models"
RETRYABLE_STATUSES = frozenset({408, 409, 429, 500, 502, 503, 504})


class InferenceError(RuntimeError):
    """Base exception for inference failures."""


class InferenceConnectionError(InferenceError):
    """Raised when the model server cannot be reached."""


class InferenceResponseError(InferenceError):
    """Raised when the model server returns an invalid response."""


@dataclass(frozen=True)
class ChatCompletion:
    """First choice of a chat completion response."""

    content: str
    finish_reason: str | None
    raw_response: dict[str, Any]


class LocalModelClient:
    """Minimal client for the OpenAI-compatible chat API of a local server."""

    @log_call(logger=logger)
    def __init__(
        self,
        *,
        base_url: str = DEFAULT_BASE_URL,
        model: str = "local-model",
        max_retries: int = 2,
        retry_backoff: float = 0.5,
        timeout: float | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/") or DEFAULT_BASE_URL
        self._model = model
        self.max_retries = max(max_retries, 0)
        self.retry_backoff = retry_backoff
        self.timeout = timeout

    @property
    def base_url(self) -> str:
        return self._base_url

    @property
    def model(self) -> str:
        return self._model

    @log_call(logger=logger, include_result=True)
    def list_models(self) -> list[str]:
        """Return the identifiers of the models the server has available."""

        data = self._request_json("GET", MODELS_PATH)
        entries = data.get("data")
        if not isinstance(entries, list):
            raise InferenceResponseError("Model list response missing data")
        return [
            str(entry["id"])
            for entry in entries
            if isinstance(entry, dict) and entry.get("id")
        ]

    @log_call(logger=logger, include_result=True)
    def health_check(self) -> bool:
        """Return ``True`` if the server answers and serves the configured model.

        Servers that list no models at all are accepted, since some of them
        load the requested model on first use.
        """

        try:
            models = self.list_models()
        except InferenceError as exc:
            logger.warning("Model server health probe failed", extra={"error": str(exc)})
            return False
        return not models or self._model in models

    @log_call(logger=logger, include_args=False)
    def chat(
        self,
        messages: Sequence[dict[str, Any]],
        *,
        temperature: float = 0.2,
        max_tokens: int = 600,
        extra_options: dict[str, Any] | None = None,
    ) -> ChatCompletion:
        """Send chat ``messages`` and return the first completion."""

        payload: dict[str, Any] = {
            "model": self._model,
            "messages": list(messages),
            "temperature": temperature,
            "max_tokens": max_tokens,
            "stream": False,
        }
        if extra_options:
            payload.update(extra_options)
        logger.info(
            "Dispatching chat completion request",
            extra={
                "message_count": len(payload["messages"]),
                "temperature": temperature,
                "max_tokens": max_tokens,
                "base_url": self._base_url,
            },
        )
        data = self._request_json("POST", CHAT_COMPLETIONS_PATH, payload)
        return self._parse_chat_response(data)

    def _request(
        self,
        method: str,
        path: str,
        payload: dict[str, Any] | None = None,
    ) -> bytes:
        url = f"{self._base_url}{path}"
        data: bytes | None = None
        headers = {"Accept": "application/json"}
        if payload is not None:
            data = json.dumps(payload).encode("utf-8")
            headers["Content-Type"] = "application/json"
        request_obj = request.Request(url, data=data, headers=headers, method=method)
        last_error: InferenceError | None = None
        for attempt in range(self.max_retries + 1):
            try:
                logger.debug(
                    "Model server request attempt",
                    extra={"method": method, "url": url, "attempt": attempt + 1},
                )
                if self.timeout is None:
                    response_cm = request.urlopen(request_obj)
                else:
                    response_cm = request.urlopen(request_obj, timeout=self.timeout)
                with response_cm as response:
                    return response.read()
            except error.HTTPError as exc:
                last_error = InferenceResponseError(
                    self._build_http_error_message(exc.code, exc.read())
                )
                if exc.code not in RETRYABLE_STATUSES:
                    break
            except error.URLError as exc:
                if isinstance(exc.reason, (TimeoutError, socket.timeout)):
                    last_error = InferenceConnectionError("Model server request timed out")
                else:
                    last_error = InferenceConnectionError(str(exc.reason))
            except TimeoutError:
                last_error = InferenceConnectionError("Model server request timed out")
            except (HTTPException, OSError) as exc:
                last_error = InferenceConnectionError(
                    f"Model server connection failed: {type(exc).__name__}: {exc}"
                )
            if attempt < self.max_retries:
                logger.warning(
                    "Model server request failed, retrying",
                    extra={
                        "method": method,
                        "url": url,
                        "attempt": attempt + 1,
                        "error": str(last_error),
                    },
                )
                time.sleep(self.retry_backoff * (2**attempt))
        raise last_error or InferenceError("Unexpected model server failure")

    def _request_json(
        self, method: str, path: str, payload: dict[str, Any] | None = None
    ) -> dict[str, Any]:
        body = self._request(method, path, payload)
        if not body:
            raise InferenceResponseError("Empty response from model server")
        text = body.decode("utf-8", errors="replace")
        try:
            data = json.loads(text)
        except json.JSONDecodeError:
            data = self._coalesce_streamed_response(text)
            if data is None:
                raise InferenceResponseError("Invalid JSON from model server") from None
        if not isinstance(data, dict):
            raise InferenceResponseError("Unexpected JSON payload from model server")
        return data

    @staticmethod
    def _parse_chat_response(data: dict[str, Any]) -> ChatCompletion:
        choices = data.get("choices")
        if not isinstance(choices, Iterable):
            raise InferenceResponseError("Chat response missing choices")
        first = next(iter(choices), None)
        if not isinstance(first, dict):
            raise InferenceResponseError("Chat response missing first choice")
        message = first.get("message")
        if not isinstance(message, dict):
            raise InferenceResponseError("Chat response missing message")
        return ChatCompletion(
            content=LocalModelClient._normalize_message_content(message.get("content")),
            finish_reason=first.get("finish_reason"),
            raw_response=data,
        )

    @staticmethod
    def _normalize_message_content(content: Any) -> str:
        """Return the text of ``content`` whether it is a string or a part list."""

        if content is None:
            return ""
        if isinstance(content, str):
            return content
        if isinstance(content, Iterable):
            parts: list[str] = []
            for item in content:
                if isinstance(item, str):
                    parts.append(item)
                elif isinstance(item, dict) and isinstance(item.get("text"), str):
                    parts.append(item["text"])
            return "".join(parts)
        raise InferenceResponseError("Chat message content has an unknown shape")

    @staticmethod
    def _build_http_error_message(status: int | None, body: bytes | None) -> str:
        summary = LocalModelClient._summarize_error_body(body)
        if summary:
            return f"Model server returned HTTP {status}: {summary}"
        return f"Model server returned HTTP {status}"

    @staticmethod
    def _summarize_error_body(body: bytes | None) -> str:
        if not body:
            return ""
        text = body.decode("utf-8", errors="replace").strip()
        try:
            data = json.loads(text)
        except json.JSONDecodeError:
            return " ".join(text.split())[:300]
        if isinstance(data, dict):
            detail = data.get("error", data)
            if isinstance(detail, dict):
                detail = detail.get("message") or detail.get("detail") or ""
            return " ".join(str(detail).split())[:300]
        return " ".join(text.split())[:300]

    @staticmethod
    def _coalesce_streamed_response(payload: str) -> dict[str, Any] | None:
        """Merge Server-Sent Event deltas into a single chat payload.

        Some servers stream even when ``stream`` is false.
        """

        content: list[str] = []
        finish_reason: str | None = None
        seen_event = False
        for line in payload.splitlines():
            stripped = line.strip()
            if not stripped.startswith("data:"):
                continue
            data = stripped[5:].strip()
            if not data or data == "[DONE]":
                continue
            try:
                event = json.loads(data)
            except json.JSONDecodeError:
                return None
            seen_event = True
            for choice in event.get("choices") or []:
                if not isinstance(choice, dict):
                    continue
                delta = choice.get("delta") or choice.get("message") or {}
                piece = delta.get("content") if isinstance(delta, dict) else None
                if isinstance(piece, str):
                    content.append(piece)
                if choice.get("finish_reason") is not None:
                    finish_reason = choice["finish_reason"]
        if not seen_event:
            return None
        return {
            "choices": [
                {
                    "index": 0,
                    "message": {"role": "assistant", "content": "".join(content)},
                    "finish_reason": finish_reason,
                }
            ]
        }


__all__ = [
    "ChatCompletion",
    "InferenceConnectionError",
    "InferenceError",
    "InferenceResponseError",
    "LocalModelClient",
]
