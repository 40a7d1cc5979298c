"""
server.py - Servidor LSP que hospeda um LanguageBridge por documento

Propósito:
    Expõe o bridge a editores que falam LSP. O cliente LSP faz o papel do
    editor (host): didOpen/didChange alimentam o espelho do documento,
    hover/completion viram consultas ao bridge e os diagnósticos
    publicados pelo bridge voltam ao cliente como Diagnostic LSP.

Componentes principais:
    - LspEditorHost: EditorHost sobre a conexão LSP (offsets → Range)
    - BridgeLanguageServer: servidor pygls com registro de bridges
    - Event handlers: did_open, did_change, did_close, hover, completion,
      did_change_configuration
    - load_engine_factory: resolve "modulo:callable" do engine

Exemplo de uso:
    lsp-bridge --engine meu_pacote.engine:create_engine

Notas de implementação:
    - Comunica via STDIO
    - O engine roda no mesmo processo (factory carregada por importlib)
    - Reposicionamento do cursor vira tab stop $0 de snippet
    - Handlers nunca propagam exceções do engine
"""

from __future__ import annotations

import argparse
import importlib
import logging
import re
import sys
from typing import Optional

from lsprotocol.types import (
    TEXT_DOCUMENT_COMPLETION,
    TEXT_DOCUMENT_DID_CHANGE,
    TEXT_DOCUMENT_DID_CLOSE,
    TEXT_DOCUMENT_DID_OPEN,
    TEXT_DOCUMENT_HOVER,
    WORKSPACE_DID_CHANGE_CONFIGURATION,
    CompletionItem,
    CompletionItemKind,
    CompletionList,
    CompletionOptions,
    CompletionParams,
    DidChangeConfigurationParams,
    DidChangeTextDocumentParams,
    DidCloseTextDocumentParams,
    DidOpenTextDocumentParams,
    Hover,
    HoverParams,
    InsertTextFormat,
    MarkupContent,
    MarkupKind,
    TextEdit,
    WorkspaceEdit,
)
from pygls.server import LanguageServer

from lsp_bridge import __version__
from lsp_bridge.bridge import LanguageBridge
from lsp_bridge.completion import (
    RenderedCompletion,
    RenderedCompletionSet,
    plan_completion_edit,
    replacement_start,
)
from lsp_bridge.config import BridgeSettings
from lsp_bridge.converters import to_lsp_diagnostic, to_lsp_range
from lsp_bridge.document import DocumentSnapshot
from lsp_bridge.errors import BridgeError
from lsp_bridge.hover import RenderedHover
from lsp_bridge.interfaces import EngineFactory
from lsp_bridge.positions import position_to_offset
from lsp_bridge.registry import BridgeRegistry

# Configuração de logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

_KINDS_BY_TYPE = {kind.name.lower(): kind for kind in CompletionItemKind}

# Caracteres com significado em snippets LSP
_SNIPPET_SPECIAL = re.compile(r"([\\$}])")


class LspEditorHost:
    """
    EditorHost sobre a conexão LSP de um documento.

    Converte offsets do bridge de volta para posições LSP usando o texto
    atual do espelho.
    """

    def __init__(self, ls: "BridgeLanguageServer", uri: str):
        self._ls = ls
        self._uri = uri
        self.bridge: Optional[LanguageBridge] = None
        self.cursor_offset = 0
        self.last_hover: Optional[RenderedHover] = None

    def _text(self) -> str:
        return self.bridge.mirror.text if self.bridge else ""

    def current_cursor_offset(self) -> int:
        return self.cursor_offset

    def publish_diagnostics(self, diagnostics: list) -> None:
        text = self._text()
        self._ls.publish_diagnostics(
            self._uri, [to_lsp_diagnostic(text, d) for d in diagnostics]
        )

    def apply_edit(
        self,
        from_offset: int,
        to_offset: int,
        insert_text: str,
        new_cursor_offset: Optional[int] = None,
    ):
        # LSP não permite posicionar o cursor num workspace/applyEdit
        if new_cursor_offset is not None:
            logger.debug(f"Cursor {new_cursor_offset} ignorado em applyEdit para {self._uri}")
        edit = TextEdit(
            range=to_lsp_range(self._text(), from_offset, to_offset),
            new_text=insert_text,
        )
        return self._ls.apply_edit(WorkspaceEdit(changes={self._uri: [edit]}))

    def render_hover_tooltip(self, payload: RenderedHover) -> None:
        self.last_hover = payload


class BridgeLanguageServer(LanguageServer):
    """
    Servidor LSP que mantém um LanguageBridge por documento aberto.

    Attributes:
        bridges: Registro de bridges por URI
        hosts: LspEditorHost de cada documento aberto
        engine_factory: Factory do engine de análise (None = sem análise)
        settings: Configurações aplicadas a todos os bridges
    """

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.bridges: BridgeRegistry = BridgeRegistry()
        self.hosts: dict[str, LspEditorHost] = {}
        self.engine_factory: Optional[EngineFactory] = None
        self.settings: BridgeSettings = BridgeSettings()


# Instância global do servidor
server = BridgeLanguageServer("lsp-bridge", f"v{__version__}")


def load_engine_factory(spec: str) -> EngineFactory:
    """
    Resolve "pacote.modulo:callable" para a factory do engine.

    Raises:
        BridgeError: formato inválido, módulo ou atributo inexistente
    """
    module_name, _, attr = spec.partition(":")
    if not module_name or not attr:
        raise BridgeError(f"Engine deve ter o formato 'modulo:callable', recebido: {spec!r}")
    try:
        module = importlib.import_module(module_name)
    except ImportError as e:
        raise BridgeError(f"Módulo do engine não encontrado: {module_name}") from e
    factory = getattr(module, attr, None)
    if not callable(factory):
        raise BridgeError(f"{spec} não é um callable")
    return factory


def snippet_text(insert: str, cursor: int) -> str:
    """Texto de inserção como snippet com tab stop $0 em `cursor`."""
    head = _SNIPPET_SPECIAL.sub(r"\\\1", insert[:cursor])
    tail = _SNIPPET_SPECIAL.sub(r"\\\1", insert[cursor:])
    return f"{head}$0{tail}"


def to_lsp_completion_item(
    text: str,
    cursor: int,
    index: int,
    option: RenderedCompletion,
    from_offset: Optional[int] = None,
) -> CompletionItem:
    """
    Converte uma opção ranqueada em CompletionItem com TextEdit.

    sort_text numérico preserva a ordem do ranking no cliente; o
    TextEdit cobre o token casado a partir de `from_offset`.
    """
    edit = plan_completion_edit(text, cursor, option, from_offset)
    new_text = edit.insert_text
    insert_format = InsertTextFormat.PlainText
    if edit.repositions_cursor:
        new_text = snippet_text(edit.insert_text, edit.cursor_offset - edit.from_offset)
        insert_format = InsertTextFormat.Snippet

    return CompletionItem(
        label=option.label,
        kind=_KINDS_BY_TYPE.get(option.type) if option.type else None,
        detail=option.detail,
        documentation=option.info,
        sort_text=f"{index:05d}",
        filter_text=option.filter_text or None,
        insert_text_format=insert_format,
        text_edit=TextEdit(
            range=to_lsp_range(text, edit.from_offset, edit.to_offset),
            new_text=new_text,
        ),
    )


def to_completion_list(
    text: str, cursor: int, rendered: Optional[RenderedCompletionSet]
) -> CompletionList:
    """RenderedCompletionSet → CompletionList LSP (vazia se None)."""
    if rendered is None:
        return CompletionList(is_incomplete=False, items=[])
    start = replacement_start(rendered)
    items = [
        to_lsp_completion_item(text, cursor, index, option, start)
        for index, option in enumerate(rendered.options)
    ]
    # O ranking depende do token digitado: o cliente deve reconsultar
    return CompletionList(is_incomplete=True, items=items)


def to_lsp_hover(text: str, rendered: Optional[RenderedHover]) -> Optional[Hover]:
    """RenderedHover → Hover LSP."""
    if rendered is None:
        return None
    kind = MarkupKind.Markdown if rendered.kind == MarkupKind.Markdown.value else MarkupKind.PlainText
    hover_range = None
    if rendered.end is not None:
        hover_range = to_lsp_range(text, rendered.pos, rendered.end)
    return Hover(contents=MarkupContent(kind=kind, value=rendered.content), range=hover_range)


def open_bridge(ls: BridgeLanguageServer, uri: str, text: str, language_id: Optional[str] = None):
    """
    Cria, registra e inicia o bridge de um documento.

    Returns:
        O LanguageBridge, ou None se não há engine configurado
    """
    if ls.engine_factory is None:
        logger.warning(f"Nenhum engine configurado, análise desabilitada para {uri}")
        return None

    host = LspEditorHost(ls, uri)
    snapshot = DocumentSnapshot.create(
        text, uri=uri, language_id=language_id or ls.settings.language_id
    )
    bridge = LanguageBridge(
        snapshot, host, engine_factory=ls.engine_factory, settings=ls.settings
    )
    host.bridge = bridge
    ls.hosts[uri] = host
    ls.bridges.put(uri, bridge)
    bridge.start()
    return bridge


@server.feature(TEXT_DOCUMENT_DID_OPEN)
def did_open(ls: BridgeLanguageServer, params: DidOpenTextDocumentParams) -> None:
    """Handler para abertura de documento: cria o bridge."""
    doc = params.text_document
    logger.info(f"Documento aberto: {doc.uri}")
    try:
        open_bridge(ls, doc.uri, doc.text, doc.language_id)
    except Exception as e:
        logger.error(f"Erro ao abrir bridge para {doc.uri}: {e}", exc_info=True)


@server.feature(TEXT_DOCUMENT_DID_CHANGE)
def did_change(ls: BridgeLanguageServer, params: DidChangeTextDocumentParams) -> None:
    """
    Handler para mudanças no documento.

    O pygls já aplicou as mudanças ao workspace; o bridge recebe o
    texto completo resultante.
    """
    uri = params.text_document.uri
    bridge = ls.bridges.get(uri)
    if bridge is None:
        return
    doc = ls.workspace.get_text_document(uri)
    version = bridge.update_document(doc.source)
    logger.debug(f"Documento modificado: {uri} (versão {version})")


@server.feature(TEXT_DOCUMENT_DID_CLOSE)
async def did_close(ls: BridgeLanguageServer, params: DidCloseTextDocumentParams) -> None:
    """Handler para fechamento: limpa diagnósticos e encerra o bridge."""
    uri = params.text_document.uri
    logger.info(f"Documento fechado: {uri}")

    ls.publish_diagnostics(uri, [])
    ls.hosts.pop(uri, None)
    bridge = ls.bridges.discard(uri)
    if bridge is not None:
        await bridge.close()


@server.feature(TEXT_DOCUMENT_HOVER)
async def hover(ls: BridgeLanguageServer, params: HoverParams) -> Optional[Hover]:
    """Retorna o hover do engine para a posição do cursor."""
    uri = params.text_document.uri
    bridge = ls.bridges.get(uri)
    host = ls.hosts.get(uri)
    if bridge is None or host is None:
        return None

    text = bridge.mirror.text
    offset = position_to_offset(text, params.position)
    host.cursor_offset = offset
    try:
        rendered = await bridge.show_hover(offset)
    except Exception as e:
        logger.error(f"Erro no hover de {uri}: {e}", exc_info=True)
        return None
    return to_lsp_hover(text, rendered)


@server.feature(TEXT_DOCUMENT_COMPLETION, CompletionOptions(resolve_provider=False))
async def completion(ls: BridgeLanguageServer, params: CompletionParams) -> CompletionList:
    """Retorna completions ranqueadas pelo token antes do cursor."""
    uri = params.text_document.uri
    bridge = ls.bridges.get(uri)
    host = ls.hosts.get(uri)
    if bridge is None or host is None:
        return CompletionList(is_incomplete=False, items=[])

    text = bridge.mirror.text
    offset = position_to_offset(text, params.position)
    host.cursor_offset = offset
    try:
        rendered = await bridge.query_completion(offset)
    except Exception as e:
        logger.error(f"Erro no completion de {uri}: {e}", exc_info=True)
        rendered = None
    return to_completion_list(text, offset, rendered)


@server.feature(WORKSPACE_DID_CHANGE_CONFIGURATION)
def did_change_configuration(
    ls: BridgeLanguageServer, params: DidChangeConfigurationParams
) -> None:
    """
    Handler para mudanças na configuração.

    A configuração vem em params.settings, como {"lspBridge": {...}}
    ou já como a seção.
    """
    try:
        ls.settings = BridgeSettings.from_settings(params.settings)
        logger.info(
            f"Configuração atualizada: diagnostics={ls.settings.diagnostics_enabled}, "
            f"hover={ls.settings.hover_enabled}, completion={ls.settings.completion_enabled}"
        )
        for bridge in ls.bridges:
            bridge.apply_settings(ls.settings)
    except Exception as e:
        logger.error(f"Erro ao processar mudança de configuração: {e}", exc_info=True)


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="lsp-bridge",
        description="Servidor LSP que sincroniza documentos com um engine de análise local",
    )
    parser.add_argument(
        "--engine",
        help="Factory do engine no formato 'pacote.modulo:callable'",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
    )
    return parser


def main(argv: Optional[list[str]] = None) -> None:
    """
    Ponto de entrada principal do servidor.

    Inicia servidor LSP em modo STDIO.
    """
    args = build_arg_parser().parse_args(argv)
    logging.getLogger().setLevel(args.log_level)

    logger.info("Iniciando lsp-bridge...")
    logger.info("Python executable: %s", sys.executable)
    if args.engine:
        server.engine_factory = load_engine_factory(args.engine)
        logger.info("Engine: %s", args.engine)
    else:
        logger.warning("Nenhum --engine informado; documentos não serão analisados")

    server.start_io()


if __name__ == "__main__":
    main()
