"""
lsp_bridge - Ponte de sincronização entre editor e engine de análise

Propósito:
    Mantém um espelho versionado do documento aberto no editor, dispara
    diagnósticos assíncronos descartando resultados obsoletos, converte
    offsets ⇄ posições (linha, caractere) e ranqueia completions contra
    o token sob o cursor.

Componentes principais:
    - bridge: LanguageBridge, a fachada embutível
    - document / orchestrator: espelho versionado e guarda de obsolescência
    - positions / ranking: funções puras de conversão e ranking
    - converters / hover / completion: renderização para o editor
    - server: servidor LSP (pygls) que hospeda um bridge por documento

Dependências críticas:
    - lsprotocol: tipos do protocolo (Position, Diagnostic, Hover, ...)
    - pygls: framework do servidor LSP

Exemplo de uso:
    lsp-bridge --engine meu_pacote.engine:create_engine
"""
from __future__ import annotations

from importlib import metadata
from pathlib import Path

DISTRIBUTION = "lsp-bridge"
UNKNOWN_VERSION = "0.0.0"


def project_version(pyproject: Path) -> str:
    """Versão declarada na tabela [project] de um pyproject.toml."""
    try:
        lines = pyproject.read_text(encoding="utf-8").splitlines()
    except OSError:
        return UNKNOWN_VERSION

    table = None
    for line in lines:
        line = line.strip()
        if line.startswith("["):
            table = line
        elif table == "[project]" and line.startswith("version"):
            key, _, value = line.partition("=")
            if key.strip() == "version":
                return value.strip().strip("\"'") or UNKNOWN_VERSION
    return UNKNOWN_VERSION


try:
    __version__ = metadata.version(DISTRIBUTION)
except metadata.PackageNotFoundError:
    # Checkout sem instalação
    __version__ = project_version(Path(__file__).resolve().parents[1] / "pyproject.toml")

__all__ = [
    "bridge",
    "completion",
    "config",
    "converters",
    "document",
    "errors",
    "hover",
    "interfaces",
    "orchestrator",
    "positions",
    "ranking",
    "registry",
    "server",
]
