"""Tests for the request kind table."""

from __future__ import annotations

import pytest
from lsprotocol import types

from lsprig.harness.requests import (
    OMIT,
    RequestHook,
    RequestKind,
    get_spec,
)


class TestRequestKind:
    """Tests for RequestKind values."""

    def test_values_are_method_names(self) -> None:
        """Kinds can be built from the LSP method string."""
        assert RequestKind("textDocument/hover") is RequestKind.HOVER
        assert str(RequestKind.RENAME) == types.TEXT_DOCUMENT_RENAME

    @pytest.mark.parametrize("kind", list(RequestKind))
    def test_every_kind_has_a_spec(self, kind: RequestKind) -> None:
        """The table covers every kind."""
        assert get_spec(kind).kind is kind

    @pytest.mark.parametrize(
        "kind", [k for k in RequestKind if k is not RequestKind.PUBLISH_DIAGNOSTICS]
    )
    def test_requests_have_a_response_type(self, kind: RequestKind) -> None:
        """Every issued request is known to lsprotocol."""
        assert kind.value in types.METHOD_TO_TYPES

    def test_unknown_method_raises(self) -> None:
        """Unsupported methods are rejected."""
        with pytest.raises(ValueError):
            get_spec("textDocument/telepathy")


class TestRequestSpec:
    """Tests for individual request specs."""

    def test_hover_needs_cursor(self) -> None:
        """Position-based requests require a cursor."""
        spec = get_spec(RequestKind.HOVER)
        assert spec.placeholders == {"text_document", "position"}
        assert spec.requires_cursor

    def test_document_requests_need_no_cursor(self) -> None:
        """Whole-document requests do not require a cursor."""
        assert not get_spec(RequestKind.DOCUMENT_SYMBOL).requires_cursor
        assert not get_spec(RequestKind.FORMATTING).requires_cursor

    def test_selection_range_needs_positions(self) -> None:
        """Selection ranges fall back to the cursor for their positions."""
        assert get_spec(RequestKind.SELECTION_RANGE).requires_cursor

    def test_references_default_includes_declaration(self) -> None:
        """includeDeclaration defaults to true."""
        spec = get_spec(RequestKind.REFERENCES)
        assert spec.defaults["include_declaration"] is True
        assert "include_declaration" in spec.placeholders

    def test_optional_context_is_omitted(self) -> None:
        """Completion context is dropped unless given."""
        assert get_spec(RequestKind.COMPLETION).defaults["context"] is OMIT

    def test_formatting_supports_end_state(self) -> None:
        """Only edit-producing formatting kinds support end states."""
        assert get_spec(RequestKind.FORMATTING).supports_end_state
        assert get_spec(RequestKind.RANGE_FORMATTING).supports_end_state
        assert not get_spec(RequestKind.HOVER).supports_end_state

    def test_semantic_tokens_delta_fetches_base(self) -> None:
        """The delta request is preceded by a full request."""
        spec = get_spec(RequestKind.SEMANTIC_TOKENS_FULL_DELTA)
        assert spec.hook is RequestHook.BASE_THEN_DELTA
        assert spec.base_method == types.TEXT_DOCUMENT_SEMANTIC_TOKENS_FULL

    def test_resolve_kinds_list_fields(self) -> None:
        """Resolve requests re-submit an explicit field list."""
        spec = get_spec(RequestKind.COMPLETION_RESOLVE)
        assert spec.hook is RequestHook.RESOLVE
        assert "label" in spec.resolve_fields
        assert spec.placeholders == {"completion_item"}

    def test_diagnostics_is_a_notification(self) -> None:
        """Published diagnostics are captured, not requested."""
        spec = get_spec(RequestKind.PUBLISH_DIAGNOSTICS)
        assert spec.hook is RequestHook.NOTIFICATION
        assert spec.template is None
        assert not spec.requires_cursor

    def test_omit_is_singleton(self) -> None:
        """OMIT compares by identity."""
        assert type(OMIT)() is OMIT
        assert repr(OMIT) == "OMIT"
