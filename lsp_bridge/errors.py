"""
errors.py - Exceções do bridge

Notas de implementação:
    - Nenhuma condição do bridge é fatal para o processo
    - Falhas do engine são tratadas localmente (resultado vazio)
    - Estas exceções sinalizam apenas erros de programação do embedder
"""

from __future__ import annotations


class BridgeError(Exception):
    """Erro base do lsp_bridge."""


class BridgeClosedError(BridgeError):
    """Operação chamada após close() do bridge."""

    def __init__(self, uri: str):
        super().__init__(f"Bridge já encerrado para {uri}")
        self.uri = uri
