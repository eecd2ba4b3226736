"""Applying TextEdits for end-state expectations."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from lsprotocol import types
from lsprotocol.converters import get_converter
from pygls.workspace import TextDocument

__all__ = ["apply_text_edits", "position_to_offset"]

_converter = get_converter()


def position_to_offset(document: TextDocument, position: types.Position) -> int:
    """
    Convert an LSP Position (UTF-16 based) to a string offset in ``document``.

    Positions past the end of a line or document are clamped.
    """
    return document.offset_at_position(position)


def _as_edit(edit: types.TextEdit | dict[str, Any]) -> types.TextEdit:
    if isinstance(edit, types.TextEdit):
        return edit
    return _converter.structure(edit, types.TextEdit)


def apply_text_edits(
    text: str, edits: Sequence[types.TextEdit | dict[str, Any]]
) -> str:
    """
    Apply ``edits`` to ``text`` as a client would.

    All ranges refer to the original text. Edits starting at the same
    position are inserted in the order given.

    Raises:
        ValueError: If two edits overlap.
    """
    document = TextDocument("untitled:edits", source=text)
    spans = []
    for index, edit in enumerate(_as_edit(e) for e in edits):
        start = position_to_offset(document, edit.range.start)
        end = position_to_offset(document, edit.range.end)
        if end < start:
            start, end = end, start
        spans.append((start, end, index, edit.new_text))

    spans.sort(key=lambda span: (span[0], span[2]))
    for previous, current in zip(spans, spans[1:]):
        if current[0] < previous[1]:
            raise ValueError(
                f"Overlapping text edits at offsets {previous[0]}-{previous[1]} "
                f"and {current[0]}-{current[1]}"
            )

    result = text
    for start, end, _, new_text in reversed(spans):
        result = result[:start] + new_text + result[end:]
    return result
