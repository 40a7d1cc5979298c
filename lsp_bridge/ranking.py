"""
ranking.py - Filtro e ordenação de candidatos de completion por prefixo

Propósito:
    Dado o conjunto de candidatos devolvidos pelo engine, constrói um
    matcher a partir do alfabeto dos labels e usa-o para localizar o
    token imediatamente antes do cursor, filtrar os candidatos por
    prefixo (case-insensitive) e ordená-los (match exato de caixa primeiro).

Componentes principais:
    - build_prefix_matcher: labels → PrefixMatcher (anchored, anywhere)
    - match_before: procura um padrão terminando no cursor (linha atual)
    - rank_candidates: algoritmo completo de filtro/ordenação
    - cursor_offset_within: tabela de decisão do cursor após inserção
    - find_typed_prefix: maior prefixo do label já digitado antes do cursor

Notas de implementação:
    - Classes de caracteres com qualquer membro \\w viram "\\w" (ASCII)
    - Demais caracteres são escapados com re.escape
    - sorted() é estável: empates preservam a ordem do engine
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Iterable, Optional, Sequence, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Token "identificador" antes do cursor; sem ele não há completion
IDENTIFIER_BEFORE = re.compile(r"\w+$", re.ASCII)

_WORD_CHAR = re.compile(r"\w", re.ASCII)

# Quantos caracteres antes do cursor são inspecionados (na mesma linha)
MATCH_WINDOW = 250

INVOCATION_MARKER = "()"
PLACEHOLDER_PAIR = "<>"


@dataclass(frozen=True)
class TokenMatch:
    """Trecho do texto que termina no cursor."""

    start: int
    end: int
    text: str


@dataclass(frozen=True)
class PrefixMatcher:
    """Par de padrões gerados a partir do alfabeto dos labels."""

    anchored: re.Pattern
    anywhere: re.Pattern


@dataclass(frozen=True)
class RankResult:
    """Candidatos filtrados/ordenados e o offset inicial da substituição."""

    from_offset: int
    candidates: list
    token: Optional[str] = None


def _char_class(chars: Iterable[str]) -> Optional[str]:
    """
    Monta uma classe de caracteres escapada.

    Se algum membro é alfanumérico/underscore, todos eles são
    representados por \\w; os restantes são escapados individualmente.
    Retorna None para conjunto vazio.
    """
    members = list(dict.fromkeys(chars))
    if not members:
        return None
    preamble = ""
    if any(_WORD_CHAR.match(ch) for ch in members):
        preamble = r"\w"
        members = [ch for ch in members if not _WORD_CHAR.match(ch)]
    return "[" + preamble + "".join(re.escape(ch) for ch in members) + "]"


def build_prefix_matcher(labels: Iterable[str]) -> Optional[PrefixMatcher]:
    """
    Constrói os matchers ^[first][rest]*$ e [first][rest]*$.

    Labels vazios são ignorados. Retorna None se não houver labels.
    """
    first: list[str] = []
    rest: list[str] = []
    for label in labels:
        if not label:
            continue
        first.append(label[0])
        rest.extend(label[1:])

    first_class = _char_class(first)
    if first_class is None:
        return None
    rest_class = _char_class(rest)

    source = first_class + (rest_class + "*" if rest_class else "") + "$"
    return PrefixMatcher(
        anchored=re.compile("^" + source, re.ASCII),
        anywhere=re.compile(source, re.ASCII),
    )


def match_before(text: str, offset: int, pattern: re.Pattern) -> Optional[TokenMatch]:
    """
    Procura `pattern` terminando exatamente em `offset`.

    Só considera a linha do cursor, limitada a MATCH_WINDOW caracteres.
    """
    offset = min(max(offset, 0), len(text))
    line_start = text.rfind("\n", 0, offset) + 1
    start = max(line_start, offset - MATCH_WINDOW)
    segment = text[start:offset]
    match = pattern.search(segment)
    if not match:
        return None
    return TokenMatch(start=start + match.start(), end=offset, text=match.group(0))


def has_identifier_before(text: str, offset: int) -> bool:
    """Verifica se há um token identificador terminando no cursor."""
    return match_before(text, offset, IDENTIFIER_BEFORE) is not None


def _filter_text(candidate) -> str:
    return getattr(candidate, "filter_text", None) or candidate.label


def rank_candidates(
    candidates: Sequence[T], text: str, offset: int
) -> Optional[RankResult]:
    """
    Filtra e ordena candidatos contra o token antes do cursor.

    Args:
        candidates: Objetos com `label` e `filter_text` opcional
        text: Texto atual do documento
        offset: Offset do cursor

    Returns:
        RankResult ou None quando não há token identificador antes do cursor
    """
    if not has_identifier_before(text, offset):
        return None

    matcher = build_prefix_matcher(c.label for c in candidates)
    token = match_before(text, offset, matcher.anywhere) if matcher else None
    if token is None:
        return RankResult(from_offset=offset, candidates=list(candidates))

    word = token.text.lower()
    kept = [c for c in candidates if _filter_text(c).lower().startswith(word)]
    kept = sorted(kept, key=lambda c: 0 if c.label.startswith(token.text) else 1)
    logger.debug(
        f"Token '{token.text}' em {token.start}: {len(kept)}/{len(candidates)} candidatos"
    )
    return RankResult(from_offset=token.start, candidates=kept, token=token.text)


def _at_end(insert: str) -> int:
    return len(insert)


def _inside_invocation(insert: str) -> int:
    return len(insert) - 1


def _before_placeholder(insert: str) -> int:
    return insert.index(PLACEHOLDER_PAIR)


def _inside_placeholder(insert: str) -> int:
    return insert.index(PLACEHOLDER_PAIR) + 1


# (termina com "()", contém "<>") → posição do cursor no texto inserido
CURSOR_PLACEMENT = {
    (False, False): _at_end,
    (True, False): _inside_invocation,
    (False, True): _before_placeholder,
    (True, True): _inside_placeholder,
}


def cursor_offset_within(insert: str) -> int:
    """Posição do cursor relativa ao início do texto inserido."""
    key = (insert.endswith(INVOCATION_MARKER), PLACEHOLDER_PAIR in insert)
    return CURSOR_PLACEMENT[key](insert)


def find_typed_prefix(text: str, offset: int, label: str) -> str:
    """
    Maior prefixo de `label` que já aparece imediatamente antes do cursor.

    Ex: texto "x = ad|", label "add" → "ad"
    """
    offset = min(max(offset, 0), len(text))
    line_start = text.rfind("\n", 0, offset) + 1
    before = text[line_start:offset]
    for size in range(min(len(label), len(before)), 0, -1):
        if before.endswith(label[:size]):
            return label[:size]
    return ""
