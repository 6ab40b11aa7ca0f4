"""Minimal LSP server for HML, diagnostics only."""

from __future__ import annotations

from lsprotocol.types import (
    TEXT_DOCUMENT_DID_CHANGE,
    TEXT_DOCUMENT_DID_OPEN,
    Diagnostic,
    DiagnosticSeverity,
    DidChangeTextDocumentParams,
    DidOpenTextDocumentParams,
    Position,
    PublishDiagnosticsParams,
    Range,
    TextDocumentSyncKind,
)
from pygls.lsp.server import LanguageServer

from hml.errors import HmlError
from hml.parser import read_events

server = LanguageServer("hml-lsp", "0.1.0", text_document_sync_kind=TextDocumentSyncKind.Full)


def _error_range(exc: HmlError) -> Range:
    if exc.span is None:
        return Range(start=Position(line=0, character=0), end=Position(line=0, character=0))
    start = exc.span.start
    end = exc.span.end
    end_col = end.column - 1
    if end == start:
        end_col += 1
    return Range(
        start=Position(line=start.line - 1, character=start.column - 1),
        end=Position(line=end.line - 1, character=end_col),
    )


def _validate(ls: LanguageServer, uri: str) -> None:
    """Parse the document and publish diagnostics for the first error."""
    doc = ls.workspace.get_text_document(uri)
    filename = uri.rsplit("/", 1)[-1] if "/" in uri else uri
    diagnostics: list[Diagnostic] = []

    try:
        read_events(doc.source, filename)
    except HmlError as exc:
        diagnostics.append(
            Diagnostic(
                range=_error_range(exc),
                message=exc.message,
                severity=DiagnosticSeverity.Error,
                source="hml",
            )
        )

    ls.text_document_publish_diagnostics(
        PublishDiagnosticsParams(uri=uri, diagnostics=diagnostics)
    )


@server.feature(TEXT_DOCUMENT_DID_OPEN)
def did_open(ls: LanguageServer, params: DidOpenTextDocumentParams) -> None:
    _validate(ls, params.text_document.uri)


@server.feature(TEXT_DOCUMENT_DID_CHANGE)
def did_change(ls: LanguageServer, params: DidChangeTextDocumentParams) -> None:
    _validate(ls, params.text_document.uri)


def main() -> None:
    server.start_io()
