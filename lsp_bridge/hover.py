"""
hover.py - Conversão de Hover do engine em tooltip do editor

Propósito:
    Converte o Hover LSP devolvido pelo engine num payload ancorado por
    offsets, que o editor desenha como tooltip acima do texto.

Mapeamento de conteúdo:
    MarkupContent       → value, kind do próprio MarkupContent
    str                 → texto simples
    MarkedString{lang}  → bloco de código markdown
    lista               → partes unidas por linha em branco

Notas de implementação:
    - Âncora: offset da posição consultada, ou range.start/range.end
      quando o engine fornece range
    - Âncora irresolúvel ou conteúdo vazio → None (nada é desenhado)
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from lsprotocol.types import Hover, MarkupKind, Position

from lsp_bridge.positions import resolve_offset

PLAINTEXT = MarkupKind.PlainText.value
MARKDOWN = MarkupKind.Markdown.value


@dataclass(frozen=True)
class RenderedHover:
    """Payload de tooltip pronto para o editor."""

    pos: int
    end: Optional[int]
    content: str
    kind: str = PLAINTEXT
    above: bool = True


def hover_text(contents) -> tuple[str, str]:
    """Extrai (texto, kind) de qualquer forma de conteúdo de Hover."""
    if contents is None:
        return ("", PLAINTEXT)

    if isinstance(contents, str):
        return (contents, PLAINTEXT)

    if isinstance(contents, (list, tuple)):
        parts = [hover_text(part) for part in contents]
        text = "\n\n".join(value for value, _ in parts if value)
        kind = MARKDOWN if any(k == MARKDOWN for _, k in parts) else PLAINTEXT
        return (text, kind)

    value = getattr(contents, "value", "") or ""
    kind = getattr(contents, "kind", None)
    if kind is not None:
        return (value, getattr(kind, "value", str(kind)))

    language = getattr(contents, "language", None)
    if language:
        return (f"```{language}\n{value}\n```", MARKDOWN)

    return (value, PLAINTEXT)


def render_hover(text: str, position: Position, hover: Optional[Hover]) -> Optional[RenderedHover]:
    """
    Converte o Hover do engine em RenderedHover.

    Args:
        text: Texto do snapshot consultado
        position: Posição enviada ao engine
        hover: Resposta do engine (pode ser None)

    Returns:
        RenderedHover ou None se não há nada utilizável
    """
    if not hover:
        return None

    content, kind = hover_text(getattr(hover, "contents", None))
    if not content:
        return None

    pos = resolve_offset(text, position)
    end = None
    hover_range = getattr(hover, "range", None)
    if hover_range:
        pos = resolve_offset(text, hover_range.start)
        end = resolve_offset(text, hover_range.end)

    if pos is None:
        return None

    return RenderedHover(pos=pos, end=end, content=content, kind=kind)
