"""Tests for applying text edits."""

from __future__ import annotations

import pytest
from lsprotocol import types
from pygls.workspace import TextDocument

from lsprig.harness.edits import apply_text_edits, position_to_offset


def edit(start: tuple[int, int], end: tuple[int, int], text: str) -> types.TextEdit:
    return types.TextEdit(
        range=types.Range(
            start=types.Position(line=start[0], character=start[1]),
            end=types.Position(line=end[0], character=end[1]),
        ),
        new_text=text,
    )


class TestPositionToOffset:
    """Tests for UTF-16 position conversion."""

    def test_second_line(self) -> None:
        """Offsets count the preceding lines and their newlines."""
        document = TextDocument("untitled:x", source="ab\ncd\n")
        assert position_to_offset(document, types.Position(line=1, character=1)) == 4

    def test_surrogate_pairs_count_twice(self) -> None:
        """Characters outside the BMP take two UTF-16 units."""
        document = TextDocument("untitled:x", source="\U0001f600x\n")
        assert position_to_offset(document, types.Position(line=0, character=2)) == 1


class TestApplyTextEdits:
    """Tests for apply_text_edits."""

    def test_no_edits(self) -> None:
        """Text is unchanged without edits."""
        assert apply_text_edits("fn main() {}\n", []) == "fn main() {}\n"

    def test_replace_and_insert(self) -> None:
        """Ranges refer to the original text regardless of order."""
        text = "fn main() {\nlet x = 1;\n}\n"
        edits = [edit((1, 0), (1, 0), "    "), edit((0, 3), (0, 7), "start")]
        assert apply_text_edits(text, edits) == "fn start() {\n    let x = 1;\n}\n"

    def test_same_position_inserts_keep_order(self) -> None:
        """Inserts at one position appear in the order given."""
        edits = [edit((0, 0), (0, 0), "a"), edit((0, 0), (0, 0), "b")]
        assert apply_text_edits("x", edits) == "abx"

    def test_accepts_json_edits(self) -> None:
        """Plain JSON edits are structured first."""
        raw = {
            "range": {"start": {"line": 0, "character": 0}, "end": {"line": 0, "character": 1}},
            "newText": "y",
        }
        assert apply_text_edits("x\n", [raw]) == "y\n"

    def test_overlapping_edits_raise(self) -> None:
        """Overlapping ranges are rejected."""
        edits = [edit((0, 0), (0, 3), "a"), edit((0, 2), (0, 4), "b")]
        with pytest.raises(ValueError, match="Overlapping"):
            apply_text_edits("abcdef", edits)
