"""
orchestrator.py - Orquestração das chamadas de diagnóstico assíncronas

Propósito:
    A cada nova versão do documento dispara uma chamada de diagnóstico
    ao engine, marcada com a versão submetida. Quando a chamada resolve,
    o resultado só é publicado se a marca ainda corresponde à versão
    atual do espelho; caso contrário é descartado em silêncio.

Componentes principais:
    - DiagnosticsState: IDLE | AWAITING
    - PendingRequest: versão + sequência da submissão
    - DiagnosticsOrchestrator: submit/on_snapshot/drain

Notas de implementação:
    - Nenhuma chamada é cancelada ou repetida: o descarte é lógico
    - Resoluções fora de ordem são toleradas
    - Falha do engine na versão atual publica lista vazia
    - A sequência distingue reexecuções na mesma versão (ex: metadata)
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Optional

from lsp_bridge.converters import RenderedDiagnostic, build_diagnostics
from lsp_bridge.document import DocumentMirror, DocumentSnapshot
from lsp_bridge.interfaces import maybe_await

logger = logging.getLogger(__name__)

ComputeDiagnostics = Callable[[DocumentSnapshot], Awaitable[Any]]
PublishDiagnostics = Callable[[list[RenderedDiagnostic]], Any]


class DiagnosticsState(Enum):
    IDLE = "idle"
    AWAITING = "awaiting"


class RequestKind(Enum):
    DIAGNOSTICS = "diagnostics"


@dataclass(frozen=True)
class PendingRequest:
    """Chamada de diagnóstico em andamento."""

    submitted_version: int
    sequence: int
    kind: RequestKind = RequestKind.DIAGNOSTICS


class DiagnosticsOrchestrator:
    """
    Máquina de estados Idle/Awaiting(v) do caminho de diagnósticos.

    Attributes:
        enabled: Se False, novas versões não disparam chamadas e
                 resultados em andamento são descartados
        published_version: Versão dos últimos diagnósticos publicados
    """

    def __init__(
        self,
        mirror: DocumentMirror,
        compute: ComputeDiagnostics,
        publish: PublishDiagnostics,
    ):
        self._mirror = mirror
        self._compute = compute
        self._publish = publish
        self._state = DiagnosticsState.IDLE
        self._latest: Optional[PendingRequest] = None
        self._sequence = 0
        self._tasks: set[asyncio.Task] = set()
        self._closed = False
        self._enabled = True
        self.published_version: Optional[int] = None

    @property
    def enabled(self) -> bool:
        return self._enabled

    @enabled.setter
    def enabled(self, value: bool) -> None:
        self._enabled = value
        if not value:
            self._state = DiagnosticsState.IDLE

    @property
    def state(self) -> DiagnosticsState:
        return self._state

    @property
    def awaiting_version(self) -> Optional[int]:
        if self._state is DiagnosticsState.AWAITING and self._latest:
            return self._latest.submitted_version
        return None

    def on_snapshot(self, snapshot: DocumentSnapshot) -> None:
        """Listener do DocumentMirror: nova versão → nova chamada."""
        if not self.enabled or self._closed:
            return
        self.submit(snapshot)

    def submit(self, snapshot: DocumentSnapshot) -> asyncio.Task:
        """
        Dispara chamada de diagnóstico para `snapshot`.

        Deve ser chamado com um event loop em execução.
        """
        self._sequence += 1
        request = PendingRequest(
            submitted_version=snapshot.version, sequence=self._sequence
        )
        self._latest = request
        self._state = DiagnosticsState.AWAITING

        task = asyncio.get_running_loop().create_task(self._run(request, snapshot))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    def is_current(self, request: PendingRequest) -> bool:
        """Verifica se o resultado de `request` ainda pode ser aplicado."""
        return (
            not self._closed
            and self.enabled
            and request.submitted_version == self._mirror.version
            and self._latest is not None
            and request.sequence == self._latest.sequence
        )

    async def _run(self, request: PendingRequest, snapshot: DocumentSnapshot) -> None:
        try:
            result = await self._compute(snapshot)
            diagnostics = build_diagnostics(snapshot.text, result)
        except Exception as e:
            if not self.is_current(request):
                logger.debug(
                    f"Falha obsoleta ignorada (versão {request.submitted_version}): {e}"
                )
                return
            logger.warning(
                f"compute_diagnostics falhou para {snapshot.uri} "
                f"(versão {request.submitted_version}): {e}",
                exc_info=True,
            )
            await self._apply(request, [])
            return

        if not self.is_current(request):
            logger.debug(
                f"Diagnósticos obsoletos descartados: versão {request.submitted_version}, "
                f"atual {self._mirror.version}"
            )
            return

        await self._apply(request, diagnostics)

    async def _apply(self, request: PendingRequest, diagnostics: list) -> None:
        self._state = DiagnosticsState.IDLE
        self.published_version = request.submitted_version
        try:
            await maybe_await(self._publish(diagnostics))
            logger.debug(
                f"Publicados {len(diagnostics)} diagnósticos "
                f"(versão {request.submitted_version})"
            )
        except Exception as e:
            logger.error(f"Falha ao publicar diagnósticos: {e}", exc_info=True)

    async def drain(self) -> None:
        """Aguarda todas as chamadas em andamento terminarem."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def close(self) -> None:
        """Descarta logicamente qualquer resultado ainda em andamento."""
        self._closed = True
        self._state = DiagnosticsState.IDLE
