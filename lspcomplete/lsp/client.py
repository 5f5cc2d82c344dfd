"""
pygls-based analysis server.

Runs a language server over stdio with pygls' ``LanguageClient`` and
exposes it through the ``AnalysisServer`` protocol the completion engine
uses. Document edits are buffered and only sent when the engine flushes
them right before a completion request.
"""

from __future__ import annotations

import asyncio
import itertools
import os
from typing import Callable, Iterable

from lsprotocol.converters import get_converter
from lsprotocol.types import (
    CANCEL_REQUEST,
    TEXT_DOCUMENT_COMPLETION,
    WINDOW_LOG_MESSAGE,
    CancelParams,
    ClientCapabilities,
    CompletionParams,
    DidChangeTextDocumentParams,
    DidCloseTextDocumentParams,
    DidOpenTextDocumentParams,
    InitializedParams,
    InitializeParams,
    LogMessageParams,
    PositionEncodingKind,
    ServerCapabilities,
    TextDocumentIdentifier,
    TextDocumentItem,
)
from pygls.lsp.client import LanguageClient
from pygls.workspace import PositionCodec

from lspcomplete import __version__
from lspcomplete.errors import ServerNotRunningError


LogHandler = Callable[[LogMessageParams], None]


# Capabilities advertised to the server
CLIENT_CAPABILITIES: dict = {
    "general": {"positionEncodings": ["utf-16"]},
    "textDocument": {
        "synchronization": {"dynamicRegistration": False},
        "completion": {
            "contextSupport": True,
            "completionItem": {
                "snippetSupport": True,
                "documentationFormat": ["plaintext", "markdown"],
                "insertReplaceSupport": True,
            },
            "completionList": {"itemDefaults": ["editRange", "insertTextFormat"]},
        },
    },
}


class PyglsAnalysisServer:
    """
    One language server process serving a set of buffer types.

    Usage:
        server = PyglsAnalysisServer("pylsp", ["python"], ["pylsp"])
        await server.start(root_uri="file:///project")
        server.open_document(uri, "python", text)
        registry.register(server)
    """

    def __init__(
        self,
        name: str,
        buffer_types: Iterable[str],
        command: list[str],
        cwd: str | None = None,
        client: LanguageClient | None = None,
        log_handler: LogHandler | None = None,
    ) -> None:
        if not command:
            raise ValueError("command must not be empty")
        self.name = name
        self.buffer_types = frozenset(buffer_types)
        self.command = list(command)
        self.cwd = cwd
        self.client = client or LanguageClient("lspcomplete", __version__)
        self.capabilities: ServerCapabilities | None = None

        self._running = False
        self._codec = PositionCodec()
        self._versions: dict[str, int] = {}
        self._pending_changes: dict[str, str] = {}
        self._request_ids = itertools.count(1)

        if log_handler is not None:

            @self.client.feature(WINDOW_LOG_MESSAGE)
            def window_log_message(ls: LanguageClient, params: LogMessageParams):
                log_handler(params)

    @property
    def is_active(self) -> bool:
        return self._running and self.capabilities is not None

    @property
    def trigger_characters(self) -> frozenset[str]:
        if self.capabilities is None or self.capabilities.completion_provider is None:
            return frozenset()
        return frozenset(self.capabilities.completion_provider.trigger_characters or ())

    @property
    def position_codec(self) -> PositionCodec:
        return self._codec

    async def start(
        self,
        root_uri: str | None = None,
        initialization_options: dict | None = None,
    ) -> None:
        """Start the server process and run the initialize handshake."""
        if self._running:
            return

        await self.client.start_io(*self.command, cwd=self.cwd)
        result = await self.client.initialize_async(
            InitializeParams(
                process_id=os.getpid(),
                root_uri=root_uri,
                capabilities=get_converter().structure(
                    CLIENT_CAPABILITIES, ClientCapabilities
                ),
                initialization_options=initialization_options,
            )
        )
        self.capabilities = result.capabilities
        encoding = result.capabilities.position_encoding or PositionEncodingKind.Utf16
        self._codec = PositionCodec(encoding=encoding)
        self.client.initialized(InitializedParams())
        self._running = True

    async def stop(self) -> None:
        """Shut the server down and wait for the process to exit."""
        if not self._running:
            return
        self._running = False
        try:
            await self.client.shutdown_async(None)
            self.client.exit(None)
        finally:
            await self.client.stop()

    def _require_running(self) -> None:
        if not self._running:
            raise ServerNotRunningError(f"Analysis server {self.name} is not running")

    def open_document(self, uri: str, language_id: str, text: str) -> None:
        self._require_running()
        self._versions[uri] = 1
        self._pending_changes.pop(uri, None)
        self.client.text_document_did_open(
            DidOpenTextDocumentParams(
                text_document=TextDocumentItem(
                    uri=uri, language_id=language_id, version=1, text=text
                )
            )
        )

    def change_document(self, uri: str, text: str) -> None:
        """Buffer a full-text change; sent on the next ``flush_changes``."""
        if uri not in self._versions:
            raise KeyError(f"Document not open: {uri}")
        self._pending_changes[uri] = text

    def has_pending_changes(self, uri: str) -> bool:
        return uri in self._pending_changes

    def flush_changes(self, uri: str) -> None:
        text = self._pending_changes.pop(uri, None)
        if text is None:
            return
        self._require_running()
        self._versions[uri] += 1
        params = get_converter().structure(
            {
                "textDocument": {"uri": uri, "version": self._versions[uri]},
                "contentChanges": [{"text": text}],
            },
            DidChangeTextDocumentParams,
        )
        self.client.text_document_did_change(params)

    def close_document(self, uri: str) -> None:
        self.flush_changes(uri)
        self._versions.pop(uri, None)
        if self._running:
            self.client.text_document_did_close(
                DidCloseTextDocumentParams(text_document=TextDocumentIdentifier(uri=uri))
            )

    def request_completion(self, params: CompletionParams) -> asyncio.Future:
        """
        Send textDocument/completion.

        Cancelling the returned future sends $/cancelRequest to the server.
        """
        self._require_running()
        msg_id = f"{self.name}-completion-{next(self._request_ids)}"
        future = asyncio.wrap_future(
            self.client.protocol.send_request(TEXT_DOCUMENT_COMPLETION, params, msg_id=msg_id)
        )

        def notify_cancel(f: asyncio.Future) -> None:
            if f.cancelled() and self._running:
                self.client.protocol.notify(CANCEL_REQUEST, CancelParams(id=msg_id))

        future.add_done_callback(notify_cancel)
        return future
