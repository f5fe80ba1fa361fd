"""FN Language Server Protocol implementation."""

from __future__ import annotations

import argparse
import logging
import uuid
from typing import Any, Optional

from lsprotocol import types as lsp
from pygls.exceptions import JsonRpcException
from pygls.lsp.server import LanguageServer
from pygls.workspace import TextDocument

from .completion import builtin_documentation, compute_completions
from .extractor import extract_functions, extract_variables
from .lines import split_lines
from .settings import CONFIG_SECTION, ClientFeatures, SettingsCache
from .symbols import (
    Completion,
    CompletionKind,
    FunctionSymbol,
    Problem,
    Range,
    VariableSymbol,
)
from .validator import validate

log = logging.getLogger(__name__)

server = LanguageServer('fnlang-lsp', 'v0.1.0')
settings = SettingsCache()
features = ClientFeatures()

_COMPLETION_KINDS = {
    CompletionKind.KEYWORD: lsp.CompletionItemKind.Keyword,
    CompletionKind.VARIABLE: lsp.CompletionItemKind.Variable,
    CompletionKind.FUNCTION: lsp.CompletionItemKind.Function,
}


def _get_document(uri: str) -> Optional[TextDocument]:
    """Return the open document for a URI, or None if it is not tracked."""
    if uri not in server.workspace.text_documents:
        return None
    return server.workspace.get_text_document(uri)


async def _fetch_configuration(uri: str) -> Any:
    result = await server.workspace_configuration_async(
        lsp.ConfigurationParams(items=[
            lsp.ConfigurationItem(scope_uri=uri, section=CONFIG_SECTION),
        ])
    )
    return result[0] if result else None


class _ClientRanges:
    """Convert code point ranges of one document to client position units.

    The unit (UTF-8, UTF-16 or UTF-32) is the position encoding pygls
    agreed with the client during initialize.
    """

    def __init__(self, doc: TextDocument) -> None:
        self._codec = doc.position_codec
        self.lines = split_lines(doc.source)

    def __call__(self, r: Range) -> lsp.Range:
        return self._codec.range_to_client_units(
            self.lines,
            lsp.Range(
                start=lsp.Position(line=r.start_line, character=r.start_col),
                end=lsp.Position(line=r.end_line, character=r.end_col),
            ),
        )


def _problem_to_lsp(
    uri: str, problem: Problem, to_client: _ClientRanges,
) -> lsp.Diagnostic:
    rng = to_client(problem.range)
    diagnostic = lsp.Diagnostic(
        range=rng,
        message=problem.message,
        severity=lsp.DiagnosticSeverity.Warning,
        source=problem.source,
    )
    if problem.related:
        diagnostic.related_information = [
            lsp.DiagnosticRelatedInformation(
                location=lsp.Location(uri=uri, range=to_client(note.range)),
                message=note.message,
            )
            for note in problem.related
        ]
    return diagnostic


def _completion_to_lsp(item: Completion) -> lsp.CompletionItem:
    return lsp.CompletionItem(
        label=item.label,
        kind=_COMPLETION_KINDS[item.kind],
        detail=item.detail,
    )


def _function_to_lsp(
    fn: FunctionSymbol, to_client: _ClientRanges,
) -> lsp.DocumentSymbol:
    end_line = fn.end_line if fn.end_line is not None else fn.range.end_line
    # Header line start to the end of the END FN line
    block = Range(
        fn.range.start_line, 0, end_line, len(to_client.lines[end_line]),
    )
    return lsp.DocumentSymbol(
        name=fn.name,
        kind=lsp.SymbolKind.Function,
        detail=fn.signature,
        range=to_client(block),
        selection_range=to_client(fn.range),
    )


def _variable_to_lsp(
    var: VariableSymbol, to_client: _ClientRanges,
) -> lsp.DocumentSymbol:
    rng = to_client(var.range)
    return lsp.DocumentSymbol(
        name=var.name,
        kind=lsp.SymbolKind.Variable,
        detail=var.type,
        range=rng,
        selection_range=rng,
    )


async def _compute_diagnostics(doc: TextDocument) -> list[lsp.Diagnostic]:
    config = await settings.get(doc.uri)
    problems = validate(
        doc.source,
        config.max_number_of_problems,
        related_information=features.related_information,
    )
    log.debug('%s: %d problems', doc.uri, len(problems))
    to_client = _ClientRanges(doc)
    return [_problem_to_lsp(doc.uri, p, to_client) for p in problems]


async def _publish_diagnostics(uri: str) -> None:
    doc = _get_document(uri)
    if doc is None:
        return
    server.text_document_publish_diagnostics(
        lsp.PublishDiagnosticsParams(
            uri=uri, diagnostics=await _compute_diagnostics(doc),
        )
    )


@server.feature(lsp.INITIALIZE)
def on_initialize(params: lsp.InitializeParams) -> None:
    global features
    features = ClientFeatures.from_capabilities(params.capabilities)
    log.info('Client features: %s', features)
    settings.set_fetch(
        _fetch_configuration if features.configuration else None
    )


@server.feature(lsp.INITIALIZED)
async def on_initialized(params: lsp.InitializedParams) -> None:
    if features.configuration:
        await server.client_register_capability_async(
            lsp.RegistrationParams(registrations=[
                lsp.Registration(
                    id=str(uuid.uuid4()),
                    method=lsp.WORKSPACE_DID_CHANGE_CONFIGURATION,
                ),
            ])
        )


@server.feature(lsp.WORKSPACE_DID_CHANGE_WORKSPACE_FOLDERS)
def did_change_workspace_folders(
    params: lsp.DidChangeWorkspaceFoldersParams,
) -> None:
    log.info('Workspace folder change event received.')


@server.feature(lsp.WORKSPACE_DID_CHANGE_WATCHED_FILES)
def did_change_watched_files(params: lsp.DidChangeWatchedFilesParams) -> None:
    log.info('Received %d file change events', len(params.changes))


@server.feature(lsp.WORKSPACE_DID_CHANGE_CONFIGURATION)
async def did_change_configuration(
    params: lsp.DidChangeConfigurationParams,
) -> None:
    if settings.per_document:
        settings.clear()
    else:
        raw = params.settings
        section = raw.get(CONFIG_SECTION) if isinstance(raw, dict) else None
        settings.update_global(section)

    # The problem cap may have changed
    if features.pull_diagnostics:
        if features.diagnostic_refresh:
            try:
                await server.workspace_diagnostic_refresh_async(None)
            except JsonRpcException as e:
                log.warning('Diagnostic refresh failed: %s', e)
    else:
        for uri in list(server.workspace.text_documents):
            await _publish_diagnostics(uri)


@server.feature(lsp.TEXT_DOCUMENT_DID_OPEN)
async def did_open(params: lsp.DidOpenTextDocumentParams) -> None:
    if not features.pull_diagnostics:
        await _publish_diagnostics(params.text_document.uri)


@server.feature(lsp.TEXT_DOCUMENT_DID_CHANGE)
async def did_change(params: lsp.DidChangeTextDocumentParams) -> None:
    if not features.pull_diagnostics:
        await _publish_diagnostics(params.text_document.uri)


@server.feature(lsp.TEXT_DOCUMENT_DID_CLOSE)
def did_close(params: lsp.DidCloseTextDocumentParams) -> None:
    uri = params.text_document.uri
    settings.forget(uri)
    if not features.pull_diagnostics:
        server.text_document_publish_diagnostics(
            lsp.PublishDiagnosticsParams(uri=uri, diagnostics=[])
        )


@server.feature(
    lsp.TEXT_DOCUMENT_DIAGNOSTIC,
    lsp.DiagnosticOptions(
        inter_file_dependencies=False,
        workspace_diagnostics=False,
    ),
)
async def document_diagnostic(
    params: lsp.DocumentDiagnosticParams,
) -> lsp.RelatedFullDocumentDiagnosticReport:
    doc = _get_document(params.text_document.uri)
    if doc is None:
        # Not an open document, nothing to report
        return lsp.RelatedFullDocumentDiagnosticReport(items=[])
    return lsp.RelatedFullDocumentDiagnosticReport(
        items=await _compute_diagnostics(doc),
    )


@server.feature(
    lsp.TEXT_DOCUMENT_COMPLETION,
    lsp.CompletionOptions(resolve_provider=True),
)
def completion(params: lsp.CompletionParams) -> list[lsp.CompletionItem]:
    doc = _get_document(params.text_document.uri)
    if doc is None:
        return []
    return [_completion_to_lsp(c) for c in compute_completions(doc.source)]


@server.feature(lsp.COMPLETION_ITEM_RESOLVE)
def completion_resolve(item: lsp.CompletionItem) -> lsp.CompletionItem:
    doc = builtin_documentation(item.label)
    if doc is not None:
        item.detail = 'builtin function'
        item.documentation = doc
    return item


@server.feature(lsp.TEXT_DOCUMENT_DOCUMENT_SYMBOL)
def document_symbol(
    params: lsp.DocumentSymbolParams,
) -> list[lsp.DocumentSymbol]:
    doc = _get_document(params.text_document.uri)
    if doc is None:
        return []
    text = doc.source
    to_client = _ClientRanges(doc)
    symbols = [
        _function_to_lsp(fn, to_client) for fn in extract_functions(text)
    ]
    symbols.extend(
        _variable_to_lsp(var, to_client) for var in extract_variables(text)
    )
    return symbols


def _parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description='FN Language Server')
    transport = parser.add_mutually_exclusive_group()
    transport.add_argument(
        '--stdio', action='store_true',
        help='Use stdio transport (default)',
    )
    transport.add_argument(
        '--tcp', action='store_true',
        help='Listen for one client over TCP',
    )
    parser.add_argument(
        '--host', default='127.0.0.1',
        help='Address to bind with --tcp',
    )
    parser.add_argument(
        '--port', type=int, default=2087,
        help='Port to bind with --tcp',
    )
    parser.add_argument(
        '--log-file', type=str, default=None,
        help='Log to file',
    )
    parser.add_argument(
        '--verbose', '-v', action='store_true',
        help='Enable verbose logging',
    )
    return parser.parse_args(argv)


def main(argv: Optional[list[str]] = None) -> None:
    args = _parse_args(argv)

    logging.basicConfig(
        filename=args.log_file,
        level=logging.DEBUG if args.verbose else logging.INFO,
        format='%(asctime)s %(name)s %(levelname)s: %(message)s',
    )

    if args.tcp:
        log.info('Listening on %s:%d', args.host, args.port)
        server.start_tcp(args.host, args.port)
    else:
        server.start_io()


if __name__ == '__main__':
    main()
