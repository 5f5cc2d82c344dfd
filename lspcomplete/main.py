"""
Command line completion.

Starts a language server, opens one file and runs on-demand completion
at a position, printing one suggestion per line:

    python -m lspcomplete [--timeout 2] path/to/file.py 12 9 -- pylsp

LINE and COLUMN are 1-based; COLUMN counts characters. Options go
before FILE, everything after -- is the server command.
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path
from typing import Sequence

from lsprotocol.types import LogMessageParams, MessageType
from pygls import uris

from lspcomplete.completion.coordinator import CompletionCoordinator
from lspcomplete.completion.manual import ABORT, RETRY
from lspcomplete.completion.normalizer import Suggestion
from lspcomplete.host import EditorState
from lspcomplete.lsp.client import PyglsAnalysisServer
from lspcomplete.lsp.registry import ServerRegistry
from lspcomplete.settings import CompletionSettings


class HeadlessHost:
    """Host without a UI: a fixed editor state, logs to stderr."""

    def __init__(self, state: EditorState, verbose: bool = False) -> None:
        self.state = state
        self.verbose = verbose

    def current_state(self) -> EditorState:
        return self.state

    def show_popup(
        self, start_column: int, suggestions: Sequence[Suggestion], options: str
    ) -> None:
        for suggestion in suggestions:
            print(format_suggestion(suggestion))

    def window_log_message(self, params: LogMessageParams) -> None:
        if self.verbose or params.type in (MessageType.Error, MessageType.Warning):
            print(f"[{params.type.name}] {params.message}", file=sys.stderr)


def format_suggestion(suggestion: Suggestion) -> str:
    columns = [suggestion.insert_text, suggestion.kind.value, suggestion.detail_line or ""]
    return "\t".join(columns).rstrip()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="lspcomplete",
        description="Ask a language server for completions at a file position.",
    )
    parser.add_argument("file", type=Path, help="File to complete in")
    parser.add_argument("line", type=int, help="1-based cursor line")
    parser.add_argument("column", type=int, help="1-based cursor column")
    parser.add_argument(
        "server",
        nargs=argparse.REMAINDER,
        help="Language server command, after --",
    )
    parser.add_argument(
        "--buffer-type",
        help="Buffer type / language id (default: file extension)",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=CompletionSettings.manual_timeout,
        help="Seconds to wait for the server (default: %(default)s)",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Log all messages")
    return parser


async def run(args: argparse.Namespace) -> int:
    command = [part for part in args.server if part != "--"]
    if not command:
        print("No language server command given", file=sys.stderr)
        return 2

    path = args.file.resolve()
    text = path.read_text(encoding="utf-8")
    buffer_type = args.buffer_type or path.suffix.lstrip(".") or "plaintext"
    uri = uris.from_fs_path(str(path))

    state = EditorState(
        uri=uri,
        buffer_type=buffer_type,
        lines=tuple(text.splitlines()),
        line=args.line,
        column=args.column,
    )
    host = HeadlessHost(state, verbose=args.verbose)
    server = PyglsAnalysisServer(
        command[0],
        [buffer_type],
        command,
        cwd=str(path.parent),
        log_handler=host.window_log_message,
    )
    registry = ServerRegistry()
    registry.register(server)
    coordinator = CompletionCoordinator(
        host, registry, CompletionSettings(manual_timeout=args.timeout)
    )

    await server.start(root_uri=uris.from_fs_path(str(path.parent)))
    try:
        server.open_document(uri, buffer_type, text)
        start_column = await coordinator.complete(True, "", state)
        if start_column == RETRY:
            print("Timed out waiting for completions", file=sys.stderr)
            return 1
        if start_column == ABORT:
            return 0

        base = state.line_text[start_column - 1 : state.column - 1]
        for suggestion in await coordinator.complete(False, base, state):
            print(format_suggestion(suggestion))
        return 0
    finally:
        await server.stop()


def main(argv: Sequence[str] | None = None) -> None:
    args = build_parser().parse_args(argv)
    sys.exit(asyncio.run(run(args)))


if __name__ == "__main__":
    main()
