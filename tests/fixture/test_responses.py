"""Tests for the fixture server's canned responses."""

from __future__ import annotations

import pytest
from lsprotocol import types
from lsprotocol.converters import get_converter

from lsprig.fixture import responses
from lsprig.fixture.responses import (
    get_diagnostics_response,
    get_response,
    supported_methods,
)
from lsprig.harness.compare import deserialize
from lsprig.harness.normalize import empty_variant
from lsprig.harness.requests import RequestKind

converter = get_converter()


class TestSupportedMethods:
    """Tests for the served method table."""

    def test_every_request_kind_is_served(self) -> None:
        """The fixture answers every request the harness can issue."""
        served = set(supported_methods())
        expected = {k.value for k in RequestKind if k is not RequestKind.PUBLISH_DIAGNOSTICS}
        assert served == expected

    def test_unknown_method_raises(self) -> None:
        """Unknown methods are a programming error."""
        with pytest.raises(KeyError):
            get_response("textDocument/telepathy", 1)

    def test_unknown_number_is_none(self) -> None:
        """Numbers without an entry yield None."""
        assert get_response(types.TEXT_DOCUMENT_HOVER, 99) is None
        assert get_diagnostics_response(99) is None


class TestResponses:
    """Tests for response shapes."""

    @pytest.mark.parametrize("method", supported_methods())
    def test_zero_is_empty(self, method: str) -> None:
        """Response number 0 is always an empty variant."""
        value = converter.unstructure(get_response(method, 0))
        assert empty_variant(value) is not None or value.get("items") == []

    @pytest.mark.parametrize("method", supported_methods())
    def test_first_response_matches_result_type(self, method: str) -> None:
        """Every canned response deserializes as the method's result."""
        payload = converter.unstructure(get_response(method, 1))
        deserialize(RequestKind(method), payload)

    def test_uri_for_is_applied(self) -> None:
        """Locations embed the URIs produced by uri_for."""
        result = get_response(
            types.TEXT_DOCUMENT_REFERENCES, 3, lambda path: f"file:///w/src/{path}"
        )
        assert [loc.uri for loc in result] == [
            "file:///w/src/main.rs",
            "file:///w/src/main.rs",
            "file:///w/src/src/other.rs",
        ]

    def test_relative_uri_is_identity(self) -> None:
        """Tests build expectations with relative paths."""
        assert responses.relative_uri("src/other.rs") == "src/other.rs"

    def test_hover_variants_differ_in_markup_kind(self) -> None:
        """Variants 1 and 2 only differ in contents.kind."""
        markdown = get_response(types.TEXT_DOCUMENT_HOVER, 1)
        plaintext = get_response(types.TEXT_DOCUMENT_HOVER, 2)
        assert markdown.contents.kind is types.MarkupKind.Markdown
        assert plaintext.contents.kind is types.MarkupKind.PlainText
        assert markdown.range == plaintext.range

    def test_diagnostics_variants(self) -> None:
        """Diagnostic variants hold zero, one and two entries."""
        assert [len(get_diagnostics_response(n) or []) for n in range(3)] == [0, 1, 2]
