"""
test_registry.py - Testes unitários para BridgeRegistry

Propósito:
    Validar operações do registro: put, get, discard, has, iteração.
    Bridges falsos, sem engine real.
"""

from __future__ import annotations

from lsp_bridge.registry import BridgeRegistry


class FakeBridge:
    """Substituto simples de LanguageBridge para testes."""

    def __init__(self, name: str = "doc"):
        self.name = name


def test_put_get():
    """Registra e recupera bridge."""
    registry = BridgeRegistry()
    registry.put("file:///a.rain", FakeBridge("a"))

    bridge = registry.get("file:///a.rain")
    assert bridge is not None
    assert bridge.name == "a"


def test_get_missing():
    """get retorna None para documento sem bridge."""
    assert BridgeRegistry().get("file:///inexistente.rain") is None


def test_put_replaces():
    registry = BridgeRegistry()
    registry.put("file:///a.rain", FakeBridge("antigo"))
    registry.put("file:///a.rain", FakeBridge("novo"))

    assert registry.get("file:///a.rain").name == "novo"
    assert len(registry) == 1


def test_discard_returns_bridge():
    """discard remove e devolve o bridge para ser encerrado."""
    registry = BridgeRegistry()
    bridge = FakeBridge()
    registry.put("file:///a.rain", bridge)

    assert registry.discard("file:///a.rain") is bridge
    assert registry.get("file:///a.rain") is None


def test_discard_missing():
    """Remover documento inexistente não levanta exceção."""
    assert BridgeRegistry().discard("file:///inexistente.rain") is None


def test_has():
    registry = BridgeRegistry()
    assert registry.has("file:///a.rain") is False
    registry.put("file:///a.rain", FakeBridge())
    assert registry.has("file:///a.rain") is True


def test_iteration():
    registry = BridgeRegistry()
    registry.put("file:///a.rain", FakeBridge("a"))
    registry.put("file:///b.rain", FakeBridge("b"))

    assert sorted(b.name for b in registry) == ["a", "b"]
    assert len(registry) == 2


def test_timestamp_recorded():
    registry = BridgeRegistry()
    registry.put("file:///a.rain", FakeBridge())
    assert registry._bridges["file:///a.rain"].timestamp > 0
