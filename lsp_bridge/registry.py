"""
registry.py - Registro de bridges por documento aberto

Propósito:
    O servidor LSP mantém um LanguageBridge por documento aberto.
    Este registro guarda os bridges por URI com timestamp de abertura.

Componentes principais:
    - RegisteredBridge: bridge com timestamp
    - BridgeRegistry: dicionário de bridges por URI

Notas de implementação:
    - Cada URI tem no máximo um bridge
    - discard() devolve o bridge removido para que o chamador o encerre
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Iterator, Optional

from lsp_bridge.bridge import LanguageBridge

logger = logging.getLogger(__name__)


@dataclass
class RegisteredBridge:
    """Bridge registrado com timestamp de abertura."""

    bridge: LanguageBridge
    timestamp: float = field(default_factory=time.time)


class BridgeRegistry:
    """Bridges abertos indexados por URI."""

    def __init__(self):
        self._bridges: dict[str, RegisteredBridge] = {}

    def get(self, uri: str) -> Optional[LanguageBridge]:
        """Retorna o bridge do documento, ou None."""
        entry = self._bridges.get(uri)
        return entry.bridge if entry else None

    def put(self, uri: str, bridge: LanguageBridge) -> None:
        """Registra o bridge do documento (substitui o anterior)."""
        self._bridges[uri] = RegisteredBridge(bridge=bridge)
        logger.info(f"Bridge registrado para: {uri}")

    def discard(self, uri: str) -> Optional[LanguageBridge]:
        """Remove e devolve o bridge do documento."""
        entry = self._bridges.pop(uri, None)
        if entry:
            logger.info(f"Bridge removido para: {uri}")
            return entry.bridge
        return None

    def has(self, uri: str) -> bool:
        """Verifica se há bridge registrado para o documento."""
        return uri in self._bridges

    def __iter__(self) -> Iterator[LanguageBridge]:
        return iter([entry.bridge for entry in self._bridges.values()])

    def __len__(self) -> int:
        return len(self._bridges)
