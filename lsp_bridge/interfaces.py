"""
interfaces.py - Contratos dos colaboradores externos

Propósito:
    Descreve a interface mínima que o bridge consome do editor (host) e do
    engine de análise. Ambos são injetados; o bridge não conhece suas
    implementações.

Componentes principais:
    - EditorHost: cursor, aplicação de edits, diagnósticos e tooltips
    - AnalysisEngine: diagnostics/hover/completions assíncronos
    - EngineFactory: constrói um engine a partir do snapshot inicial
    - maybe_await: aceita callbacks do host síncronos ou assíncronos
"""

from __future__ import annotations

import inspect
from typing import Any, Callable, Optional, Protocol, Union, runtime_checkable

from lsprotocol.types import (
    CompletionItem,
    CompletionList,
    Diagnostic,
    Hover,
    Position,
)

EngineCompletions = Union[list[CompletionItem], CompletionList, None]


@runtime_checkable
class EditorHost(Protocol):
    """Superfície de edição que possui o buffer visível."""

    def current_cursor_offset(self) -> int: ...

    def apply_edit(
        self,
        from_offset: int,
        to_offset: int,
        insert_text: str,
        new_cursor_offset: Optional[int] = None,
    ) -> Any: ...

    def publish_diagnostics(self, diagnostics: list) -> Any: ...

    def render_hover_tooltip(self, payload) -> Any: ...


@runtime_checkable
class AnalysisEngine(Protocol):
    """Engine de análise chamado localmente, de forma assíncrona."""

    async def compute_diagnostics(self, uri: str, text: str) -> list[Diagnostic]: ...

    async def compute_hover(
        self, uri: str, text: str, position: Position
    ) -> Optional[Hover]: ...

    async def compute_completions(
        self, uri: str, text: str, position: Position
    ) -> EngineCompletions: ...


# factory(snapshot, metadata) → AnalysisEngine
EngineFactory = Callable[[Any, Any], AnalysisEngine]


async def maybe_await(value):
    """Aguarda `value` se for awaitable; senão devolve como está."""
    if inspect.isawaitable(value):
        return await value
    return value
