"""
converters.py - Conversão entre diagnósticos do engine e do editor

Propósito:
    Converter Diagnostic LSP (posições linha/caractere) devolvidos pelo
    engine em RenderedDiagnostic (offsets lineares) que o editor sabe
    desenhar, e o caminho inverso para hosts que falam LSP.

Componentes principais:
    - convert_severity: DiagnosticSeverity → "error" | "warning" | "info"
    - build_diagnostic: Diagnostic → RenderedDiagnostic (ou None)
    - build_diagnostics: lista do engine → lista ordenada por offset
    - to_lsp_diagnostic: RenderedDiagnostic → Diagnostic

Notas de implementação:
    - Offsets resolvidos com resolve_offset (estrito)
    - Diagnósticos com posição irresolúvel são descartados, nunca reportados
    - Ordenação estável por from_offset (empates mantêm ordem do engine)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, List, Optional

from lsprotocol.types import Diagnostic, DiagnosticSeverity, Range

from lsp_bridge.positions import offset_to_position, resolve_offset

logger = logging.getLogger(__name__)

SEVERITY_NAMES = {
    DiagnosticSeverity.Error: "error",
    DiagnosticSeverity.Warning: "warning",
    DiagnosticSeverity.Information: "info",
    DiagnosticSeverity.Hint: "info",
}

_LSP_SEVERITIES = {
    "error": DiagnosticSeverity.Error,
    "warning": DiagnosticSeverity.Warning,
    "info": DiagnosticSeverity.Information,
}


@dataclass(frozen=True)
class RenderedDiagnostic:
    """Diagnóstico endereçado por offsets, pronto para o editor."""

    from_offset: int
    to_offset: int
    severity: str
    message: str
    source: Optional[str] = None


def convert_severity(severity: Optional[DiagnosticSeverity]) -> str:
    """
    Mapeia DiagnosticSeverity do LSP para a severidade do editor.

    Mapeamento:
        Error       → "error"
        Warning     → "warning"
        Information → "info"
        Hint        → "info"
        ausente     → "error"
    """
    return SEVERITY_NAMES.get(severity, "error")


def build_diagnostic(text: str, diagnostic: Diagnostic) -> Optional[RenderedDiagnostic]:
    """
    Converte um Diagnostic do engine em RenderedDiagnostic.

    Returns:
        RenderedDiagnostic, ou None se início ou fim não resolvem
        para um offset válido em `text`
    """
    from_offset = resolve_offset(text, diagnostic.range.start)
    to_offset = resolve_offset(text, diagnostic.range.end)
    if from_offset is None or to_offset is None:
        return None

    return RenderedDiagnostic(
        from_offset=from_offset,
        to_offset=to_offset,
        severity=convert_severity(diagnostic.severity),
        message=diagnostic.message,
        source=getattr(diagnostic, "source", None),
    )


def build_diagnostics(
    text: str, diagnostics: Optional[Iterable[Diagnostic]]
) -> List[RenderedDiagnostic]:
    """
    Converte todos os diagnósticos do engine para o texto dado.

    Args:
        text: Texto do snapshot ao qual os diagnósticos se referem
        diagnostics: Saída de compute_diagnostics (None = nenhum)

    Returns:
        Lista ordenada (estável) por from_offset
    """
    rendered: List[RenderedDiagnostic] = []
    dropped = 0

    for diagnostic in diagnostics or []:
        try:
            item = build_diagnostic(text, diagnostic)
        except (AttributeError, TypeError) as e:
            # Entrada mal-formada do engine: descarta só ela
            logger.debug(f"Diagnóstico mal-formado descartado: {e}")
            item = None
        if item is None:
            dropped += 1
            continue
        rendered.append(item)

    if dropped:
        logger.debug(f"{dropped} diagnóstico(s) com posição irresolúvel descartado(s)")

    return sorted(rendered, key=lambda d: d.from_offset)


def to_lsp_range(text: str, from_offset: int, to_offset: int) -> Range:
    """Converte um par de offsets em Range LSP."""
    return Range(
        start=offset_to_position(text, from_offset),
        end=offset_to_position(text, to_offset),
    )


def to_lsp_diagnostic(text: str, rendered: RenderedDiagnostic) -> Diagnostic:
    """Converte RenderedDiagnostic de volta para Diagnostic LSP."""
    return Diagnostic(
        range=to_lsp_range(text, rendered.from_offset, rendered.to_offset),
        severity=_LSP_SEVERITIES.get(rendered.severity, DiagnosticSeverity.Error),
        source=rendered.source,
        message=rendered.message,
    )
