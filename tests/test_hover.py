"""
test_hover.py - Testes para conversão de Hover em tooltip

Propósito:
    Validar extração de conteúdo (MarkupContent, str, MarkedString, listas)
    e ancoragem por offset, com e sem range fornecido pelo engine.
"""

from __future__ import annotations

from types import SimpleNamespace

from lsprotocol.types import Hover, MarkupContent, MarkupKind, Position, Range

from lsp_bridge.hover import hover_text, render_hover

TEXT = "_: add(1 2);\n_: sub(3 4);"


def _markdown(value):
    return MarkupContent(kind=MarkupKind.Markdown, value=value)


# --- Testes para hover_text ---


def test_hover_text_markup():
    assert hover_text(_markdown("**add**")) == ("**add**", "markdown")


def test_hover_text_plain_string():
    assert hover_text("adds numbers") == ("adds numbers", "plaintext")


def test_hover_text_marked_string_with_language():
    marked = SimpleNamespace(language="rainlang", value="add(1 2)")
    assert hover_text(marked) == ("```rainlang\nadd(1 2)\n```", "markdown")


def test_hover_text_list():
    text, kind = hover_text(["first", _markdown("second"), ""])
    assert text == "first\n\nsecond"
    assert kind == "markdown"


def test_hover_text_none():
    assert hover_text(None) == ("", "plaintext")


# --- Testes para render_hover ---


def test_render_hover_without_range_anchors_at_position():
    hover = Hover(contents=_markdown("add"))
    rendered = render_hover(TEXT, Position(line=1, character=4), hover)
    assert rendered.pos == 17
    assert rendered.end is None
    assert rendered.content == "add"
    assert rendered.kind == "markdown"
    assert rendered.above is True


def test_render_hover_with_range():
    hover = Hover(
        contents=_markdown("sub"),
        range=Range(start=Position(line=1, character=3), end=Position(line=1, character=6)),
    )
    rendered = render_hover(TEXT, Position(line=1, character=4), hover)
    assert (rendered.pos, rendered.end) == (16, 19)


def test_render_hover_range_end_unresolvable():
    hover = Hover(
        contents=_markdown("sub"),
        range=Range(start=Position(line=1, character=3), end=Position(line=5, character=0)),
    )
    rendered = render_hover(TEXT, Position(line=1, character=4), hover)
    assert rendered.pos == 16
    assert rendered.end is None


def test_render_hover_unresolvable_start():
    hover = Hover(
        contents=_markdown("x"),
        range=Range(start=Position(line=9, character=0), end=Position(line=9, character=1)),
    )
    assert render_hover(TEXT, Position(line=0, character=0), hover) is None


def test_render_hover_none():
    assert render_hover(TEXT, Position(line=0, character=0), None) is None


def test_render_hover_empty_content():
    hover = Hover(contents=_markdown(""))
    assert render_hover(TEXT, Position(line=0, character=0), hover) is None


def test_render_hover_empty_document():
    hover = Hover(contents="doc")
    rendered = render_hover("", Position(line=0, character=0), hover)
    assert rendered.pos == 0
