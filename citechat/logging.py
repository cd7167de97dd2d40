"""Logging utilities for the CiteChat assistant."""

from __future__ import annotations

import functools
import inspect
import logging
import os
import platform
import sys
import threading
import time
from pathlib import Path
from typing import Any, Optional

from .config import CONFIG_DIR_NAME, get_user_config_dir

LOG_FILENAME = "citechat.log"
LOG_LEVEL_ENV = "CITECHAT_LOG_LEVEL"

_EXCEPTION_HOOK_INSTALLED = False
_HOOK_LOCK = threading.Lock()


def _resolve_level(level: int | None) -> int:
    if level is not None:
        return level
    configured = os.getenv(LOG_LEVEL_ENV, "").strip().upper()
    if configured:
        value = logging.getLevelName(configured)
        if isinstance(value, int):
            return value
    return logging.INFO


def setup_logging(
    app_name: str = CONFIG_DIR_NAME,
    *,
    level: int | None = None,
    log_filename: Optional[str] = None,
) -> logging.Logger:
    """Configure console and file logging on the *root* logger.

    Loggers created throughout the package inherit both handlers, so output
    stays live in the terminal while also being persisted next to the user
    settings. ``level`` falls back to ``$CITECHAT_LOG_LEVEL`` and then INFO.
    Calling this twice is harmless: an already configured root logger is left
    untouched.
    """

    root_logger = logging.getLogger()
    if root_logger.handlers:
        return logging.getLogger(app_name)

    resolved_level = _resolve_level(level)
    formatter = logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    log_path = Path(get_user_config_dir(app_name)) / (log_filename or LOG_FILENAME)

    file_handler = logging.FileHandler(log_path, encoding="utf-8")
    file_handler.setFormatter(formatter)

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)

    logging.basicConfig(level=resolved_level, handlers=[console_handler, file_handler])

    logger = logging.getLogger(app_name)
    logger.log_path = log_path  # type: ignore[attr-defined]
    logger.info(
        "Logging initialised",
        extra={
            "log_path": str(log_path),
            "level": logging.getLevelName(resolved_level),
        },
    )
    logger.debug(
        "Runtime environment",
        extra={
            "python": platform.python_version(),
            "platform": platform.platform(),
            "cwd": os.getcwd(),
        },
    )
    return logger


def _flush_handlers() -> None:
    for handler in logging.getLogger().handlers:
        try:
            handler.flush()
        except (OSError, ValueError):  # pragma: no cover - closed stream
            continue


def install_exception_hook(logger: logging.Logger) -> None:
    """Log unhandled exceptions from the main thread and worker threads."""

    global _EXCEPTION_HOOK_INSTALLED
    with _HOOK_LOCK:
        if _EXCEPTION_HOOK_INSTALLED:
            return
        _EXCEPTION_HOOK_INSTALLED = True

    default_hook = sys.excepthook

    def handle_exception(exc_type, exc_value, exc_traceback):
        if issubclass(exc_type, KeyboardInterrupt):
            default_hook(exc_type, exc_value, exc_traceback)
            return
        logger.critical(
            "Unhandled exception", exc_info=(exc_type, exc_value, exc_traceback)
        )
        _flush_handlers()

    sys.excepthook = handle_exception

    thread_hook = threading.excepthook

    def handle_thread_exception(args):
        if issubclass(args.exc_type, KeyboardInterrupt):
            thread_hook(args)
            return
        thread_name = args.thread.name if args.thread is not None else "<unknown>"
        logger.critical(
            "Unhandled exception in thread %s",
            thread_name,
            exc_info=(args.exc_type, args.exc_value, args.exc_traceback),
        )
        _flush_handlers()

    threading.excepthook = handle_thread_exception


def _safe_repr(value: Any, *, max_length: int = 200) -> str:
    """Return a truncated ``repr`` suitable for logging."""

    try:
        result = repr(value)
    except Exception:
        result = object.__repr__(value)
    if len(result) > max_length:
        return result[: max_length - 3] + "..."
    return result


def _format_arguments(signature: inspect.Signature, *args: Any, **kwargs: Any) -> str:
    try:
        bound = signature.bind_partial(*args, **kwargs)
    except TypeError:
        return "unavailable"
    return ", ".join(
        f"{name}={_safe_repr(value)}"
        for name, value in bound.arguments.items()
        if name not in {"self", "cls"}
    )


def log_call(
    _func: Optional[Any] = None,
    *,
    logger: logging.Logger | str | None = None,
    level: int = logging.DEBUG,
    include_args: bool = True,
    include_result: bool = False,
    exc_level: int = logging.ERROR,
) -> Any:
    """Decorator that logs entry, exit and failures of the wrapped callable.

    Usable bare (``@log_call``) or with options
    (``@log_call(logger=logger, include_result=True)``). Page text can be
    large, so arguments and results are logged through a short ``repr``.
    """

    def decorator(func: Any) -> Any:
        signature = inspect.signature(func)
        module = getattr(func, "__module__", "")
        qualname = getattr(func, "__qualname__", getattr(func, "__name__", "<call>"))
        identifier = f"{module}.{qualname}" if module else qualname
        if isinstance(logger, logging.Logger):
            target = logger
        else:
            target = logging.getLogger(logger or module)

        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            if include_args:
                target.log(
                    level,
                    "Calling %s(%s)",
                    identifier,
                    _format_arguments(signature, *args, **kwargs),
                )
            else:
                target.log(level, "Calling %s", identifier)
            start = time.perf_counter()
            try:
                result = func(*args, **kwargs)
            except Exception:
                target.log(
                    exc_level,
                    "Error in %s after %.3fs",
                    identifier,
                    time.perf_counter() - start,
                    exc_info=True,
                )
                raise
            elapsed = time.perf_counter() - start
            if include_result:
                target.log(
                    level, "%s returned %s (%.3fs)", identifier, _safe_repr(result), elapsed
                )
            else:
                target.log(level, "%s completed in %.3fs", identifier, elapsed)
            return result

        return wrapper

    if callable(_func):
        return decorator(_func)
    return decorator


__all__ = ["install_exception_hook", "log_call", "setup_logging"]
