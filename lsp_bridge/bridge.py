"""
bridge.py - Ponte entre o editor e o engine de análise

Propósito:
    Objeto embutível que liga um editor (EditorHost) a um engine de
    análise (AnalysisEngine) para um único documento aberto: mantém o
    espelho do documento, dispara diagnósticos a cada edição e atende
    consultas de hover e completion sob demanda.

Componentes principais:
    - LanguageBridge: fachada pública
        start()              → diagnósticos iniciais (versão 0)
        update_document()    → nova versão + diagnósticos
        query_hover()        → RenderedHover | None
        show_hover()         → query_hover + render_hover_tooltip no host
        query_completion()   → RenderedCompletionSet | None
        apply_completion()   → aplica opção escolhida via host.apply_edit
        update_metadata()    → repassa metadata ao engine e revalida
        apply_settings()     → liga/desliga features
        close()              → libera o engine

Exemplo de uso:
    bridge = LanguageBridge(DocumentSnapshot.create(text), host, engine=engine)
    bridge.start()
    bridge.update_document(new_text)
    hover = await bridge.query_hover(offset)
    await bridge.close()

Notas de implementação:
    - Métodos que disparam diagnósticos exigem um event loop em execução
    - Hover/completion não têm guarda de obsolescência (single-shot)
    - Falhas do engine nunca chegam ao host: resultado vazio + log
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Optional

from lsp_bridge.completion import (
    CompletionEdit,
    RenderedCompletion,
    RenderedCompletionSet,
    plan_completion_edit,
    render_completions,
    replacement_start,
)
from lsp_bridge.config import BridgeSettings
from lsp_bridge.document import DocumentMirror, DocumentSnapshot
from lsp_bridge.errors import BridgeClosedError, BridgeError
from lsp_bridge.hover import RenderedHover, render_hover
from lsp_bridge.interfaces import AnalysisEngine, EditorHost, EngineFactory, maybe_await
from lsp_bridge.orchestrator import DiagnosticsOrchestrator
from lsp_bridge.positions import offset_to_position
from lsp_bridge.ranking import has_identifier_before

logger = logging.getLogger(__name__)

# Métodos de liberação procurados no engine, em ordem
_ENGINE_RELEASE_METHODS = ("close", "dispose")


class LanguageBridge:
    """
    Ponte de sincronização/tradução para um documento.

    Attributes:
        mirror: DocumentMirror dono do snapshot
        orchestrator: DiagnosticsOrchestrator do caminho de diagnósticos
        settings: BridgeSettings em vigor
    """

    def __init__(
        self,
        snapshot: DocumentSnapshot,
        host: EditorHost,
        engine: Optional[AnalysisEngine] = None,
        engine_factory: Optional[EngineFactory] = None,
        settings: Optional[BridgeSettings] = None,
    ):
        self.settings = settings or BridgeSettings()
        if engine is None:
            if engine_factory is None:
                raise BridgeError("LanguageBridge requer engine ou engine_factory")
            engine = engine_factory(snapshot, self.settings.initial_metadata)

        self._engine: Optional[AnalysisEngine] = engine
        self._host = host
        self._closed = False

        self.mirror = DocumentMirror(snapshot)
        self.orchestrator = DiagnosticsOrchestrator(
            self.mirror, self._compute_diagnostics, host.publish_diagnostics
        )
        self.orchestrator.enabled = self.settings.diagnostics_enabled
        self.mirror.subscribe(self.orchestrator.on_snapshot)

    @property
    def uri(self) -> str:
        return self.mirror.uri

    @property
    def version(self) -> int:
        return self.mirror.version

    @property
    def snapshot(self) -> DocumentSnapshot:
        return self.mirror.snapshot

    @property
    def engine(self) -> Optional[AnalysisEngine]:
        return self._engine

    @property
    def closed(self) -> bool:
        return self._closed

    def _ensure_open(self) -> AnalysisEngine:
        if self._closed or self._engine is None:
            raise BridgeClosedError(self.mirror.uri)
        return self._engine

    async def _compute_diagnostics(self, snapshot: DocumentSnapshot):
        engine = self._ensure_open()
        return await engine.compute_diagnostics(snapshot.uri, snapshot.text)

    def _publish_empty(self) -> asyncio.Task:
        async def publish() -> None:
            try:
                await maybe_await(self._host.publish_diagnostics([]))
            except Exception as e:
                logger.error(f"Falha ao limpar diagnósticos de {self.uri}: {e}", exc_info=True)

        return asyncio.get_running_loop().create_task(publish())

    # ------------------------------------------------------------------
    # Ciclo de vida do documento
    # ------------------------------------------------------------------

    def start(self) -> asyncio.Task:
        """Dispara os diagnósticos da versão atual (normalmente 0)."""
        self._ensure_open()
        if not self.settings.diagnostics_enabled:
            return self._publish_empty()
        return self.orchestrator.submit(self.mirror.snapshot)

    def update_document(self, text: str) -> int:
        """
        Registra o novo texto completo do buffer.

        Returns:
            Versão do documento após a atualização
        """
        self._ensure_open()
        return self.mirror.update(text)

    async def update_metadata(self, metadata: Any) -> Optional[asyncio.Task]:
        """
        Repassa metadata auxiliar ao engine e revalida a versão atual.

        Engines sem update_metadata apenas revalidam.
        """
        engine = self._ensure_open()
        updater = getattr(engine, "update_metadata", None)
        if callable(updater):
            try:
                await maybe_await(updater(metadata))
            except Exception as e:
                logger.warning(f"update_metadata falhou para {self.uri}: {e}", exc_info=True)
        if not self.settings.diagnostics_enabled:
            return None
        return self.orchestrator.submit(self.mirror.snapshot)

    def apply_settings(self, settings: BridgeSettings) -> Optional[asyncio.Task]:
        """
        Aplica novas configurações.

        Diagnósticos reativados → revalida; desativados → limpa o editor.
        """
        self._ensure_open()
        was_enabled = self.settings.diagnostics_enabled
        self.settings = settings
        self.orchestrator.enabled = settings.diagnostics_enabled

        if not was_enabled and settings.diagnostics_enabled:
            logger.info(f"Diagnósticos reativados para {self.uri}")
            return self.orchestrator.submit(self.mirror.snapshot)
        if was_enabled and not settings.diagnostics_enabled:
            logger.info(f"Diagnósticos desativados para {self.uri}")
            return self._publish_empty()
        return None

    async def close(self) -> None:
        """Encerra o bridge e libera o engine (close/dispose, se houver)."""
        if self._closed:
            return
        self._closed = True
        self.orchestrator.close()
        self.mirror.clear_listeners()

        engine, self._engine = self._engine, None
        for name in _ENGINE_RELEASE_METHODS:
            release = getattr(engine, name, None)
            if callable(release):
                try:
                    await maybe_await(release())
                except Exception as e:
                    logger.warning(f"Falha ao liberar engine de {self.uri}: {e}", exc_info=True)
                break
        logger.info(f"Bridge encerrado: {self.uri}")

    # ------------------------------------------------------------------
    # Consultas sob demanda
    # ------------------------------------------------------------------

    def _cursor(self, offset: Optional[int]) -> int:
        if offset is None:
            offset = self._host.current_cursor_offset()
        return offset

    async def query_hover(self, offset: Optional[int] = None) -> Optional[RenderedHover]:
        """
        Consulta hover no offset dado (padrão: cursor do host).

        Returns:
            RenderedHover ou None (feature desligada, engine sem
            resultado ou com falha, âncora irresolúvel)
        """
        engine = self._ensure_open()
        if not self.settings.hover_enabled:
            return None

        snapshot = self.mirror.snapshot
        position = offset_to_position(snapshot.text, self._cursor(offset))
        try:
            hover = await engine.compute_hover(snapshot.uri, snapshot.text, position)
        except Exception as e:
            logger.warning(f"compute_hover falhou para {snapshot.uri}: {e}", exc_info=True)
            return None

        return render_hover(snapshot.text, position, hover)

    async def show_hover(self, offset: Optional[int] = None) -> Optional[RenderedHover]:
        """query_hover + entrega do tooltip ao host."""
        payload = await self.query_hover(offset)
        if payload is not None:
            await maybe_await(self._host.render_hover_tooltip(payload))
        return payload

    async def query_completion(
        self, offset: Optional[int] = None
    ) -> Optional[RenderedCompletionSet]:
        """
        Consulta completions no offset dado (padrão: cursor do host).

        Sem token identificador antes do cursor o engine nem é chamado.
        """
        engine = self._ensure_open()
        if not self.settings.completion_enabled:
            return None

        snapshot = self.mirror.snapshot
        offset = self._cursor(offset)
        if not has_identifier_before(snapshot.text, offset):
            return None

        position = offset_to_position(snapshot.text, offset)
        try:
            result = await engine.compute_completions(snapshot.uri, snapshot.text, position)
        except Exception as e:
            logger.warning(f"compute_completions falhou para {snapshot.uri}: {e}", exc_info=True)
            return None

        return render_completions(snapshot.text, offset, result)

    async def apply_completion(
        self,
        completion: RenderedCompletion,
        completion_set: Optional[RenderedCompletionSet] = None,
        cursor: Optional[int] = None,
    ) -> CompletionEdit:
        """
        Insere a opção escolhida no editor via host.apply_edit.

        Com o conjunto devolvido por query_completion, o token casado
        pelo ranking é substituído inteiro. O cursor só é repassado ao
        host quando a tabela de decisão o move para dentro do texto
        inserido.
        """
        self._ensure_open()
        edit = plan_completion_edit(
            self.mirror.text,
            self._cursor(cursor),
            completion,
            replacement_start(completion_set),
        )
        new_cursor = edit.cursor_offset if edit.repositions_cursor else None
        await maybe_await(
            self._host.apply_edit(edit.from_offset, edit.to_offset, edit.insert_text, new_cursor)
        )
        return edit
