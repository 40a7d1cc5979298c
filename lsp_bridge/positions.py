"""
positions.py - Conversão entre offsets lineares e posições (linha, caractere)

Propósito:
    O editor endereça o buffer por offset linear; o engine de análise
    endereça por Position LSP (0-based). Este módulo converte nos dois
    sentidos sobre um snapshot de texto.

Componentes principais:
    - offset_to_position: offset → Position (clampa ao fim do documento)
    - position_to_offset: Position → offset (clampa ao tamanho do texto)
    - resolve_offset: variante estrita, retorna None fora dos limites

Notas de implementação:
    - Linhas separadas apenas por "\\n" ("\\r" conta como caractere comum)
    - Para todo offset 0 <= o <= len(text):
      position_to_offset(text, offset_to_position(text, o)) == o
"""

from __future__ import annotations

from typing import Optional

from lsprotocol.types import Position

NEWLINE = "\n"


def line_starts(text: str) -> list[int]:
    """Offsets de início de cada linha (sempre contém ao menos 0)."""
    starts = [0]
    index = text.find(NEWLINE)
    while index != -1:
        starts.append(index + 1)
        index = text.find(NEWLINE, index + 1)
    return starts


def offset_to_position(text: str, offset: int) -> Position:
    """
    Converte offset linear em Position.

    Offsets além do texto são clampados ao fim do documento;
    offsets negativos ao início.
    """
    offset = min(max(offset, 0), len(text))
    line = text.count(NEWLINE, 0, offset)
    line_start = text.rfind(NEWLINE, 0, offset) + 1
    return Position(line=line, character=offset - line_start)


def position_to_offset(text: str, position: Position) -> int:
    """
    Converte Position em offset linear.

    Linha inexistente → len(text). Caractere além do documento é
    clampado a len(text); além do fim da linha avança para as
    linhas seguintes, como um offset bruto.
    """
    starts = line_starts(text)
    if position.line >= len(starts):
        return len(text)
    offset = starts[max(position.line, 0)] + max(position.character, 0)
    return min(offset, len(text))


def resolve_offset(text: str, position: Position) -> Optional[int]:
    """
    Variante estrita de position_to_offset.

    Retorna None se a linha não existe ou se o offset ultrapassaria
    o fim do documento. Usada pelo renderer para descartar itens.
    """
    if position is None or position.line < 0 or position.character < 0:
        return None
    starts = line_starts(text)
    if position.line >= len(starts):
        return None
    offset = starts[position.line] + position.character
    if offset > len(text):
        return None
    return offset
