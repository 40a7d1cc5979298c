"""
completion.py - Conversão e aplicação de itens de completion

Propósito:
    Converte os CompletionItem devolvidos pelo engine em opções que o
    editor sabe listar, filtra/ordena contra o token antes do cursor e
    calcula o edit de inserção (incluindo reposicionamento do cursor).

Componentes principais:
    - RenderedCompletion / RenderedCompletionSet: formas prontas para o editor
    - render_completion: CompletionItem → RenderedCompletion (ou None)
    - render_completions: resposta do engine → RenderedCompletionSet
    - plan_completion_edit: opção escolhida → CompletionEdit
    - replacement_start: início do trecho a substituir (token casado)

Notas de implementação:
    - Itens sem label são pulados, não o lote inteiro
    - type = nome do CompletionItemKind em minúsculas (ex: "function")
    - sort_text/filter_text assumem o label quando ausentes
    - Cursor após inserção segue ranking.CURSOR_PLACEMENT
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional

from lsprotocol.types import CompletionItemKind

from lsp_bridge.ranking import cursor_offset_within, find_typed_prefix, rank_candidates

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RenderedCompletion:
    """Opção de completion pronta para o editor."""

    label: str
    detail: Optional[str] = None
    type: Optional[str] = None
    info: Optional[str] = None
    insert_text: Optional[str] = None
    sort_text: str = ""
    filter_text: str = ""

    @property
    def apply_text(self) -> str:
        return self.insert_text if self.insert_text is not None else self.label


@dataclass(frozen=True)
class RenderedCompletionSet:
    """Resultado de completion: opções e início do trecho a substituir."""

    from_offset: int
    options: list[RenderedCompletion] = field(default_factory=list)
    token: Optional[str] = None


@dataclass(frozen=True)
class CompletionEdit:
    """Edit de texto que aplica uma opção de completion."""

    from_offset: int
    to_offset: int
    insert_text: str
    cursor_offset: int

    @property
    def repositions_cursor(self) -> bool:
        return self.cursor_offset != self.from_offset + len(self.insert_text)


def completion_type(kind) -> Optional[str]:
    """CompletionItemKind → nome em minúsculas, ou None."""
    if kind is None:
        return None
    try:
        return CompletionItemKind(kind).name.lower()
    except ValueError:
        return None


def documentation_text(documentation) -> Optional[str]:
    """Extrai texto de documentation (str ou MarkupContent)."""
    if documentation is None:
        return None
    if isinstance(documentation, str):
        return documentation or None
    return getattr(documentation, "value", None) or None


def render_completion(item) -> Optional[RenderedCompletion]:
    """
    Converte um CompletionItem do engine.

    Returns:
        RenderedCompletion, ou None se o item não tem label utilizável
    """
    label = getattr(item, "label", None)
    if not isinstance(label, str) or not label:
        logger.debug(f"Candidato sem label ignorado: {item!r}")
        return None

    return RenderedCompletion(
        label=label,
        detail=getattr(item, "detail", None),
        type=completion_type(getattr(item, "kind", None)),
        info=documentation_text(getattr(item, "documentation", None)),
        insert_text=getattr(item, "insert_text", None),
        sort_text=getattr(item, "sort_text", None) or label,
        filter_text=getattr(item, "filter_text", None) or label,
    )


def engine_items(result) -> list:
    """Normaliza list | CompletionList | None em lista de itens."""
    if result is None:
        return []
    items = getattr(result, "items", result)
    return list(items or [])


def render_completions(text: str, offset: int, result) -> Optional[RenderedCompletionSet]:
    """
    Converte a resposta do engine e aplica o ranking por prefixo.

    Args:
        text: Texto do snapshot consultado
        offset: Offset do cursor
        result: Resposta de compute_completions

    Returns:
        RenderedCompletionSet, ou None se o engine nada devolveu ou se
        não há token identificador antes do cursor
    """
    if result is None:
        return None

    rendered = []
    for item in engine_items(result):
        completion = render_completion(item)
        if completion is not None:
            rendered.append(completion)

    ranked = rank_candidates(rendered, text, offset)
    if ranked is None:
        return None

    return RenderedCompletionSet(
        from_offset=ranked.from_offset,
        options=ranked.candidates,
        token=ranked.token,
    )


def plan_completion_edit(
    text: str,
    cursor: int,
    completion: RenderedCompletion,
    from_offset: Optional[int] = None,
) -> CompletionEdit:
    """
    Calcula o edit que insere `completion` no cursor.

    O trecho [from_offset, cursor) é substituído pelo texto de inserção;
    o cursor final segue a tabela de decisão.

    Args:
        from_offset: Início do token casado pelo ranking. Sem ele, a
            parte do label (ou do filter_text) já digitada antes do
            cursor é substituída
    """
    cursor = min(max(cursor, 0), len(text))
    if from_offset is None:
        typed = max(
            find_typed_prefix(text, cursor, completion.label),
            find_typed_prefix(text, cursor, completion.filter_text),
            key=len,
        )
        start = cursor - len(typed)
    else:
        start = min(max(from_offset, 0), cursor)
    insert = completion.apply_text
    return CompletionEdit(
        from_offset=start,
        to_offset=cursor,
        insert_text=insert,
        cursor_offset=start + cursor_offset_within(insert),
    )


def replacement_start(completion_set: Optional[RenderedCompletionSet]) -> Optional[int]:
    """Início do token casado, ou None se o ranking não encontrou token."""
    if completion_set is None or completion_set.token is None:
        return None
    return completion_set.from_offset
