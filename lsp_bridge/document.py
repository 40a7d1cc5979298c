"""
document.py - Espelho do documento aberto no editor

Propósito:
    Mantém o snapshot autoritativo (uri, language_id, version, text) do
    documento e um contador de versão monotônico. Cada edição substitui o
    snapshot inteiro e notifica os listeners (push).

Componentes principais:
    - DocumentSnapshot: snapshot imutável do documento
    - DocumentMirror: dono do snapshot; update(text) → nova versão

Notas de implementação:
    - Versão inicial é 0; cada update incrementa exatamente 1
    - Texto idêntico ao atual não gera nova versão
    - Snapshots são imutáveis: leitores concorrentes sempre veem um par
      (text, version) consistente
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Callable

logger = logging.getLogger(__name__)

DEFAULT_URI = "file:///untitled.rain"
DEFAULT_LANGUAGE_ID = "rainlang"


@dataclass(frozen=True)
class DocumentSnapshot:
    """Snapshot imutável do documento espelhado."""

    uri: str
    language_id: str
    version: int
    text: str

    @classmethod
    def create(
        cls,
        text: str,
        uri: str = DEFAULT_URI,
        language_id: str = DEFAULT_LANGUAGE_ID,
    ) -> "DocumentSnapshot":
        return cls(uri=uri, language_id=language_id, version=0, text=text)


SnapshotListener = Callable[[DocumentSnapshot], None]


class DocumentMirror:
    """Dono exclusivo do DocumentSnapshot de um editor."""

    def __init__(self, snapshot: DocumentSnapshot):
        self._snapshot = snapshot
        self._listeners: list[SnapshotListener] = []

    @property
    def snapshot(self) -> DocumentSnapshot:
        return self._snapshot

    @property
    def version(self) -> int:
        return self._snapshot.version

    @property
    def text(self) -> str:
        return self._snapshot.text

    @property
    def uri(self) -> str:
        return self._snapshot.uri

    def subscribe(self, listener: SnapshotListener) -> None:
        """Registra listener chamado a cada nova versão."""
        self._listeners.append(listener)

    def update(self, new_text: str) -> int:
        """
        Substitui o texto e incrementa a versão.

        Returns:
            A nova versão (ou a atual, se o texto não mudou)
        """
        if new_text == self._snapshot.text:
            logger.debug(f"Texto inalterado em {self.uri}, versão {self.version} mantida")
            return self._snapshot.version

        self._snapshot = replace(
            self._snapshot, text=new_text, version=self._snapshot.version + 1
        )
        logger.debug(f"Documento {self.uri} atualizado para versão {self.version}")

        for listener in list(self._listeners):
            listener(self._snapshot)
        return self._snapshot.version

    def clear_listeners(self) -> None:
        self._listeners.clear()
