"""
test_orchestrator.py - Testes da guarda de obsolescência dos diagnósticos

Propósito:
    Validar a máquina de estados Idle/Awaiting(v): resultados só são
    publicados se a versão submetida ainda é a atual, resoluções fora de
    ordem são toleradas e falhas do engine publicam lista vazia.
"""

from __future__ import annotations

import asyncio

import pytest
from lsprotocol.types import Diagnostic, Position, Range

from lsp_bridge.document import DocumentMirror, DocumentSnapshot
from lsp_bridge.orchestrator import DiagnosticsOrchestrator, DiagnosticsState


# --- Helpers ---


class GatedCompute:
    """compute_diagnostics falso: cada versão só resolve quando liberada."""

    def __init__(self):
        self.gates: dict[int, asyncio.Event] = {}
        self.results: dict[int, list] = {}
        self.errors: dict[int, Exception] = {}
        self.calls: list[int] = []

    def gate(self, version: int) -> asyncio.Event:
        return self.gates.setdefault(version, asyncio.Event())

    def release(self, *versions: int) -> None:
        for version in versions:
            self.gate(version).set()

    async def __call__(self, snapshot: DocumentSnapshot):
        self.calls.append(snapshot.version)
        await self.gate(snapshot.version).wait()
        if snapshot.version in self.errors:
            raise self.errors[snapshot.version]
        return self.results.get(snapshot.version, [])


def _diag(message: str) -> Diagnostic:
    return Diagnostic(
        range=Range(start=Position(line=0, character=0), end=Position(line=0, character=3)),
        message=message,
    )


def _setup(text: str = "v0 text"):
    mirror = DocumentMirror(DocumentSnapshot.create(text))
    compute = GatedCompute()
    published: list[list] = []
    orchestrator = DiagnosticsOrchestrator(mirror, compute, published.append)
    return mirror, compute, published, orchestrator


def _messages(published: list[list]) -> list[list[str]]:
    return [[d.message for d in batch] for batch in published]


# --- Testes ---


@pytest.mark.asyncio
async def test_current_result_is_published():
    mirror, compute, published, orch = _setup()
    compute.results[0] = [_diag("v0")]

    task = orch.submit(mirror.snapshot)
    assert orch.state is DiagnosticsState.AWAITING
    assert orch.awaiting_version == 0

    compute.release(0)
    await task

    assert _messages(published) == [["v0"]]
    assert orch.state is DiagnosticsState.IDLE
    assert orch.published_version == 0


@pytest.mark.asyncio
async def test_late_result_does_not_overwrite_newer():
    """Versão 1 resolvendo depois da versão 2 não sobrescreve a publicação."""
    mirror, compute, published, orch = _setup()
    compute.results[1] = [_diag("v1")]
    compute.results[2] = [_diag("v2")]

    mirror.update("one")
    task1 = orch.submit(mirror.snapshot)
    mirror.update("two")
    task2 = orch.submit(mirror.snapshot)

    compute.release(2)
    await task2
    assert _messages(published) == [["v2"]]

    compute.release(1)
    await task1
    assert _messages(published) == [["v2"]]
    assert orch.published_version == 2


@pytest.mark.asyncio
async def test_early_stale_result_keeps_awaiting_newer():
    mirror, compute, published, orch = _setup()
    mirror.update("one")
    task1 = orch.submit(mirror.snapshot)
    mirror.update("two")
    task2 = orch.submit(mirror.snapshot)

    compute.release(1)
    await task1
    assert published == []
    assert orch.state is DiagnosticsState.AWAITING
    assert orch.awaiting_version == 2

    compute.release(2)
    await task2
    assert len(published) == 1
    assert orch.state is DiagnosticsState.IDLE


@pytest.mark.asyncio
async def test_engine_failure_publishes_empty_list():
    """Falha na versão atual limpa os diagnósticos anteriores."""
    mirror, compute, published, orch = _setup()
    compute.results[0] = [_diag("old")]
    compute.release(0)
    await orch.submit(mirror.snapshot)

    mirror.update("broken")
    compute.errors[1] = RuntimeError("engine crashed")
    compute.release(1)
    await orch.submit(mirror.snapshot)

    assert _messages(published) == [["old"], []]
    assert orch.state is DiagnosticsState.IDLE


@pytest.mark.asyncio
async def test_stale_failure_is_ignored():
    mirror, compute, published, orch = _setup()
    mirror.update("one")
    task1 = orch.submit(mirror.snapshot)
    mirror.update("two")
    task2 = orch.submit(mirror.snapshot)
    compute.results[2] = [_diag("v2")]
    compute.errors[1] = RuntimeError("late failure")

    compute.release(2)
    await task2
    compute.release(1)
    await task1

    assert _messages(published) == [["v2"]]


@pytest.mark.asyncio
async def test_mirror_push_triggers_submission():
    mirror, compute, published, orch = _setup()
    mirror.subscribe(orch.on_snapshot)

    mirror.update("one")
    mirror.update("two")
    assert orch.awaiting_version == 2

    compute.release(1, 2)
    await orch.drain()
    assert compute.calls == [1, 2]
    assert len(published) == 1
    assert orch.published_version == 2


@pytest.mark.asyncio
async def test_same_version_resubmission_latest_wins():
    """Reexecução na mesma versão (ex: metadata) descarta a execução anterior."""
    mirror, compute, published, orch = _setup()
    first = orch.submit(mirror.snapshot)
    second = orch.submit(mirror.snapshot)

    compute.release(0)
    await asyncio.gather(first, second)

    assert len(published) == 1


@pytest.mark.asyncio
async def test_disabled_ignores_snapshots_and_results():
    mirror, compute, published, orch = _setup()
    mirror.subscribe(orch.on_snapshot)
    task = orch.submit(mirror.snapshot)

    orch.enabled = False
    mirror.update("one")
    compute.release(0)
    await task

    assert compute.calls == [0]
    assert published == []


@pytest.mark.asyncio
async def test_closed_discards_in_flight():
    mirror, compute, published, orch = _setup()
    task = orch.submit(mirror.snapshot)
    orch.close()
    compute.release(0)
    await task
    assert published == []
    assert orch.state is DiagnosticsState.IDLE


@pytest.mark.asyncio
async def test_async_publish_is_awaited():
    mirror = DocumentMirror(DocumentSnapshot.create("abc"))
    compute = GatedCompute()
    published = []

    async def publish(diagnostics):
        await asyncio.sleep(0)
        published.append(diagnostics)

    orch = DiagnosticsOrchestrator(mirror, compute, publish)
    compute.release(0)
    await orch.submit(mirror.snapshot)
    assert published == [[]]


@pytest.mark.asyncio
async def test_publish_failure_does_not_raise():
    mirror = DocumentMirror(DocumentSnapshot.create("abc"))
    compute = GatedCompute()

    def publish(diagnostics):
        raise RuntimeError("host indisponível")

    orch = DiagnosticsOrchestrator(mirror, compute, publish)
    compute.release(0)
    await orch.submit(mirror.snapshot)
    assert orch.published_version == 0


@pytest.mark.asyncio
async def test_unresolvable_diagnostics_dropped():
    mirror, compute, published, orch = _setup("ab")
    compute.results[0] = [
        _diag("fora"),
        Diagnostic(
            range=Range(start=Position(line=0, character=0), end=Position(line=0, character=1)),
            message="dentro",
        ),
    ]
    compute.release(0)
    await orch.submit(mirror.snapshot)
    assert _messages(published) == [["dentro"]]


@pytest.mark.asyncio
async def test_non_iterable_result_publishes_empty_list():
    mirror, compute, published, orch = _setup()
    compute.results[0] = [_diag("old")]
    compute.release(0)
    await orch.submit(mirror.snapshot)

    mirror.update("resultado inválido")
    compute.results[1] = 42
    compute.release(1)
    await orch.submit(mirror.snapshot)

    assert _messages(published) == [["old"], []]
    assert orch.state is DiagnosticsState.IDLE


@pytest.mark.asyncio
async def test_disabling_while_awaiting_returns_to_idle():
    mirror, compute, published, orch = _setup()
    task = orch.submit(mirror.snapshot)
    assert orch.state is DiagnosticsState.AWAITING

    orch.enabled = False
    assert orch.state is DiagnosticsState.IDLE
    assert orch.awaiting_version is None

    compute.release(0)
    await task
    assert published == []
    assert orch.state is DiagnosticsState.IDLE
