"""Interactive terminal entry point for the CiteChat assistant."""

from __future__ import annotations

import argparse
import sys
from collections.abc import Sequence

from .config import ChatSettings, ConfigManager
from .ingest import DocumentReader
from .logging import install_exception_hook, setup_logging
from .services import (
    ContextAssembler,
    ConversationBusyError,
    ConversationManager,
    EngineState,
    InferenceEngine,
    LocalModelClient,
    SourceAggregator,
    StatusUpdate,
)
from .services.conversation_manager import sources_for_display
from .web import DuckDuckGoSearch, PageReader

HELP_TEXT = """Commands:
  /browse on|off   toggle web browsing
  /upload PATH...  add documents (PDF, DOCX, text)
  /sources         list sources used so far
  /quit            exit"""


def _parse_args(argv: Sequence[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="citechat", description=__doc__)
    parser.add_argument("--base-url", help="OpenAI-compatible model server URL")
    parser.add_argument("--model", help="model identifier served by the server")
    parser.add_argument(
        "--no-browse", action="store_true", help="start with web browsing disabled"
    )
    parser.add_argument("documents", nargs="*", help="documents to load at start-up")
    return parser.parse_args(argv)


def build_manager(settings: ChatSettings) -> ConversationManager:
    """Wire the collaborators described by ``settings`` into a manager."""

    client = LocalModelClient(
        base_url=settings.base_url,
        model=settings.model,
        timeout=settings.request_timeout,
    )
    aggregator = SourceAggregator(
        DuckDuckGoSearch(timeout=settings.request_timeout),
        PageReader(timeout=settings.request_timeout),
        max_web_results=settings.max_web_results,
        chunk_size=settings.chunk_size,
        chunk_overlap=settings.chunk_overlap,
        top_k=settings.top_k,
    )
    return ConversationManager(
        InferenceEngine(client),
        aggregator,
        assembler=ContextAssembler(max_source_chars=settings.max_source_chars),
        document_reader=DocumentReader(max_chars=settings.max_document_chars),
        auto_browse=settings.auto_browse,
        temperature=settings.temperature,
        max_tokens=settings.max_tokens,
    )


def _handle_command(manager: ConversationManager, line: str) -> bool:
    command, _, argument = line.partition(" ")
    if command == "/quit":
        return False
    if command == "/browse":
        manager.auto_browse = argument.strip().lower() != "off"
        print(f"Auto browse {'on' if manager.auto_browse else 'off'}")
    elif command == "/upload":
        added = manager.add_documents(argument.split())
        print(f"Added {len(added)} document(s)")
    elif command == "/sources":
        lines = sources_for_display(manager.sources)
        print("\n".join(lines) if lines else "No sources yet.")
    else:
        print(HELP_TEXT)
    return True


def _print_status(update: StatusUpdate) -> None:
    if update.message:
        print(update.message)


def main(argv: Sequence[str] | None = None) -> int:
    """Run the read-eval-print loop until ``/quit`` or end of input."""

    args = _parse_args(argv)
    logger = setup_logging()
    install_exception_hook(logger)

    config = ConfigManager()
    settings = ChatSettings.load(config)
    if args.base_url:
        settings.base_url = args.base_url
    if args.model:
        settings.model = args.model
    if args.no_browse:
        settings.auto_browse = False

    manager = build_manager(settings)
    manager.add_status_listener(_print_status)
    print("Loading AI model (first time may take a minute)...")
    if manager.engine.load() is EngineState.FAILED:
        print(f"AI load failed: {manager.engine.error}")
    if args.documents:
        manager.add_documents(args.documents)
    print(HELP_TEXT)

    while True:
        try:
            line = input("> ").strip()
        except (EOFError, KeyboardInterrupt):
            print()
            break
        if not line:
            continue
        if line.startswith("/"):
            if not _handle_command(manager, line):
                break
            continue
        try:
            turn = manager.ask(line)
        except ConversationBusyError as exc:
            print(exc)
            continue
        print(turn.answer)
    logger.info("Shutdown complete")
    return 0


if __name__ == "__main__":
    sys.exit(main())
