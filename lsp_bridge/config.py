"""
config.py - Configurações do bridge

Propósito:
    Centraliza as opções que o embedder (ou o cliente LSP, via
    workspace/didChangeConfiguration) pode ajustar.

Formato aceito por from_settings:
    {"lspBridge": {...}} ou diretamente a seção:
    {
        "diagnostics": {"enabled": true},
        "hover": {"enabled": true},
        "completion": {"enabled": true},
        "initialMetadata": "0x...",
        "languageId": "rainlang"
    }

Notas de implementação:
    - Chaves ausentes ou com tipo inesperado assumem o padrão
    - Tudo habilitado por padrão
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

from lsp_bridge.document import DEFAULT_LANGUAGE_ID

SETTINGS_SECTION = "lspBridge"


@dataclass
class BridgeSettings:
    """Opções de um LanguageBridge."""

    diagnostics_enabled: bool = True
    hover_enabled: bool = True
    completion_enabled: bool = True
    initial_metadata: Optional[Any] = None
    language_id: str = DEFAULT_LANGUAGE_ID

    @classmethod
    def from_settings(cls, settings) -> "BridgeSettings":
        """Lê as opções de um dict no formato de didChangeConfiguration."""
        if not isinstance(settings, dict):
            return cls()

        section = settings.get(SETTINGS_SECTION, settings)
        if not isinstance(section, dict):
            return cls()

        language_id = section.get("languageId")
        return cls(
            diagnostics_enabled=_enabled(section, "diagnostics"),
            hover_enabled=_enabled(section, "hover"),
            completion_enabled=_enabled(section, "completion"),
            initial_metadata=section.get("initialMetadata"),
            language_id=language_id if isinstance(language_id, str) else DEFAULT_LANGUAGE_ID,
        )


def _enabled(section: dict, key: str) -> bool:
    value = section.get(key, {})
    if isinstance(value, bool):
        return value
    if isinstance(value, dict):
        enabled = value.get("enabled", True)
        return enabled if isinstance(enabled, bool) else True
    return True
