"""Supported request kinds and their parameter templates.

Each kind maps to a ``RequestSpec``: a JSON parameter template whose string
leaves of the form ``"${name}"`` are placeholders, plus the few hooks that
genuinely differ between methods. Rendering happens in ``harness.plan``.
"""

from __future__ import annotations

import dataclasses
import re
from collections.abc import Mapping
from typing import Any

from lsprotocol import types

from lsprig.types import StrEnum

__all__ = [
    "BUILTIN_PLACEHOLDERS",
    "OMIT",
    "PLACEHOLDER_RE",
    "RequestHook",
    "RequestKind",
    "RequestSpec",
    "get_spec",
]

PLACEHOLDER_RE = re.compile(r"^\$\{([a-z_]+)\}$")

BUILTIN_PLACEHOLDERS = frozenset({"text_document", "position", "positions", "uri"})


class _Omit:
    """Default that removes the key from the rendered parameters."""

    _instance: _Omit | None = None

    def __new__(cls) -> _Omit:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "OMIT"


OMIT: Any = _Omit()


class RequestKind(StrEnum):
    """Every method the harness can test; values are LSP method names."""

    CODE_ACTION = types.TEXT_DOCUMENT_CODE_ACTION
    CODE_ACTION_RESOLVE = types.CODE_ACTION_RESOLVE
    CODE_LENS = types.TEXT_DOCUMENT_CODE_LENS
    CODE_LENS_RESOLVE = types.CODE_LENS_RESOLVE
    COLOR_PRESENTATION = types.TEXT_DOCUMENT_COLOR_PRESENTATION
    COMPLETION = types.TEXT_DOCUMENT_COMPLETION
    COMPLETION_RESOLVE = types.COMPLETION_ITEM_RESOLVE
    DECLARATION = types.TEXT_DOCUMENT_DECLARATION
    DEFINITION = types.TEXT_DOCUMENT_DEFINITION
    DIAGNOSTIC = types.TEXT_DOCUMENT_DIAGNOSTIC
    DOCUMENT_COLOR = types.TEXT_DOCUMENT_DOCUMENT_COLOR
    DOCUMENT_HIGHLIGHT = types.TEXT_DOCUMENT_DOCUMENT_HIGHLIGHT
    DOCUMENT_LINK = types.TEXT_DOCUMENT_DOCUMENT_LINK
    DOCUMENT_LINK_RESOLVE = types.DOCUMENT_LINK_RESOLVE
    DOCUMENT_SYMBOL = types.TEXT_DOCUMENT_DOCUMENT_SYMBOL
    FOLDING_RANGE = types.TEXT_DOCUMENT_FOLDING_RANGE
    FORMATTING = types.TEXT_DOCUMENT_FORMATTING
    HOVER = types.TEXT_DOCUMENT_HOVER
    IMPLEMENTATION = types.TEXT_DOCUMENT_IMPLEMENTATION
    INCOMING_CALLS = types.CALL_HIERARCHY_INCOMING_CALLS
    INLAY_HINT = types.TEXT_DOCUMENT_INLAY_HINT
    LINKED_EDITING_RANGE = types.TEXT_DOCUMENT_LINKED_EDITING_RANGE
    MONIKER = types.TEXT_DOCUMENT_MONIKER
    ON_TYPE_FORMATTING = types.TEXT_DOCUMENT_ON_TYPE_FORMATTING
    OUTGOING_CALLS = types.CALL_HIERARCHY_OUTGOING_CALLS
    PREPARE_CALL_HIERARCHY = types.TEXT_DOCUMENT_PREPARE_CALL_HIERARCHY
    PREPARE_RENAME = types.TEXT_DOCUMENT_PREPARE_RENAME
    PREPARE_TYPE_HIERARCHY = types.TEXT_DOCUMENT_PREPARE_TYPE_HIERARCHY
    PUBLISH_DIAGNOSTICS = types.TEXT_DOCUMENT_PUBLISH_DIAGNOSTICS
    RANGE_FORMATTING = types.TEXT_DOCUMENT_RANGE_FORMATTING
    REFERENCES = types.TEXT_DOCUMENT_REFERENCES
    RENAME = types.TEXT_DOCUMENT_RENAME
    SELECTION_RANGE = types.TEXT_DOCUMENT_SELECTION_RANGE
    SEMANTIC_TOKENS_FULL = types.TEXT_DOCUMENT_SEMANTIC_TOKENS_FULL
    SEMANTIC_TOKENS_FULL_DELTA = types.TEXT_DOCUMENT_SEMANTIC_TOKENS_FULL_DELTA
    SEMANTIC_TOKENS_RANGE = types.TEXT_DOCUMENT_SEMANTIC_TOKENS_RANGE
    SIGNATURE_HELP = types.TEXT_DOCUMENT_SIGNATURE_HELP
    TYPE_DEFINITION = types.TEXT_DOCUMENT_TYPE_DEFINITION
    WORKSPACE_DIAGNOSTIC = types.WORKSPACE_DIAGNOSTIC
    WORKSPACE_EXECUTE_COMMAND = types.WORKSPACE_EXECUTE_COMMAND
    WORKSPACE_SYMBOL = types.WORKSPACE_SYMBOL
    WORKSPACE_SYMBOL_RESOLVE = types.WORKSPACE_SYMBOL_RESOLVE
    WORKSPACE_WILL_CREATE_FILES = types.WORKSPACE_WILL_CREATE_FILES
    WORKSPACE_WILL_DELETE_FILES = types.WORKSPACE_WILL_DELETE_FILES
    WORKSPACE_WILL_RENAME_FILES = types.WORKSPACE_WILL_RENAME_FILES


class RequestHook(StrEnum):
    """Per-method special cases of the single request executor."""

    NONE = "none"
    # Fetch a base result first, then request the delta against its resultId
    BASE_THEN_DELTA = "base-then-delta"
    # Re-submit a caller-supplied object field by field
    RESOLVE = "resolve"
    # Capture a server notification instead of issuing a request
    NOTIFICATION = "notification"


@dataclasses.dataclass(frozen=True)
class RequestSpec:
    """How to build and issue one kind of request."""

    kind: RequestKind
    template: Any
    defaults: Mapping[str, Any] = dataclasses.field(default_factory=dict)
    hook: RequestHook = RequestHook.NONE
    resolve_fields: tuple[str, ...] = ()
    base_method: str | None = None
    supports_end_state: bool = False

    @property
    def method(self) -> str:
        return self.kind.value

    @property
    def placeholders(self) -> frozenset[str]:
        """Names of every placeholder in the template."""
        return frozenset(_collect_placeholders(self.template))

    @property
    def requires_cursor(self) -> bool:
        names = self.placeholders
        return "position" in names or (
            "positions" in names and "positions" not in self.defaults
        )


def _collect_placeholders(template: Any) -> list[str]:
    if isinstance(template, str):
        match = PLACEHOLDER_RE.match(template)
        return [match.group(1)] if match else []
    if isinstance(template, Mapping):
        names: list[str] = []
        for value in template.values():
            names.extend(_collect_placeholders(value))
        return names
    if isinstance(template, (list, tuple)):
        names = []
        for value in template:
            names.extend(_collect_placeholders(value))
        return names
    return []


_DOC = {"textDocument": "${text_document}"}
_DOC_POS = {"textDocument": "${text_document}", "position": "${position}"}
_DOC_RANGE = {"textDocument": "${text_document}", "range": "${range}"}
_DEFAULT_FORMATTING_OPTIONS = {"tabSize": 4, "insertSpaces": True}

_COMPLETION_ITEM_FIELDS = (
    "label",
    "labelDetails",
    "kind",
    "tags",
    "detail",
    "documentation",
    "deprecated",
    "preselect",
    "sortText",
    "filterText",
    "insertText",
    "insertTextFormat",
    "insertTextMode",
    "textEdit",
    "textEditText",
    "additionalTextEdits",
    "commitCharacters",
    "command",
    "data",
)
_CODE_ACTION_FIELDS = (
    "title",
    "kind",
    "diagnostics",
    "isPreferred",
    "disabled",
    "edit",
    "command",
    "data",
)
_CODE_LENS_FIELDS = ("range", "command", "data")
_DOCUMENT_LINK_FIELDS = ("range", "target", "tooltip", "data")
_WORKSPACE_SYMBOL_FIELDS = ("name", "kind", "tags", "containerName", "location", "data")


def _specs() -> dict[RequestKind, RequestSpec]:
    k = RequestKind
    specs = [
        RequestSpec(
            k.CODE_ACTION,
            {**_DOC_RANGE, "context": "${context}"},
            defaults={"context": {"diagnostics": []}},
        ),
        RequestSpec(
            k.CODE_ACTION_RESOLVE,
            "${code_action}",
            hook=RequestHook.RESOLVE,
            resolve_fields=_CODE_ACTION_FIELDS,
        ),
        RequestSpec(k.CODE_LENS, dict(_DOC)),
        RequestSpec(
            k.CODE_LENS_RESOLVE,
            "${code_lens}",
            hook=RequestHook.RESOLVE,
            resolve_fields=_CODE_LENS_FIELDS,
        ),
        RequestSpec(
            k.COLOR_PRESENTATION,
            {**_DOC_RANGE, "color": "${color}"},
        ),
        RequestSpec(
            k.COMPLETION,
            {**_DOC_POS, "context": "${context}"},
            defaults={"context": OMIT},
        ),
        RequestSpec(
            k.COMPLETION_RESOLVE,
            "${completion_item}",
            hook=RequestHook.RESOLVE,
            resolve_fields=_COMPLETION_ITEM_FIELDS,
        ),
        RequestSpec(k.DECLARATION, dict(_DOC_POS)),
        RequestSpec(k.DEFINITION, dict(_DOC_POS)),
        RequestSpec(
            k.DIAGNOSTIC,
            {
                **_DOC,
                "identifier": "${identifier}",
                "previousResultId": "${previous_result_id}",
            },
            defaults={"identifier": OMIT, "previous_result_id": OMIT},
        ),
        RequestSpec(k.DOCUMENT_COLOR, dict(_DOC)),
        RequestSpec(k.DOCUMENT_HIGHLIGHT, dict(_DOC_POS)),
        RequestSpec(k.DOCUMENT_LINK, dict(_DOC)),
        RequestSpec(
            k.DOCUMENT_LINK_RESOLVE,
            "${document_link}",
            hook=RequestHook.RESOLVE,
            resolve_fields=_DOCUMENT_LINK_FIELDS,
        ),
        RequestSpec(k.DOCUMENT_SYMBOL, dict(_DOC)),
        RequestSpec(k.FOLDING_RANGE, dict(_DOC)),
        RequestSpec(
            k.FORMATTING,
            {**_DOC, "options": "${options}"},
            defaults={"options": _DEFAULT_FORMATTING_OPTIONS},
            supports_end_state=True,
        ),
        RequestSpec(k.HOVER, dict(_DOC_POS)),
        RequestSpec(k.IMPLEMENTATION, dict(_DOC_POS)),
        RequestSpec(k.INCOMING_CALLS, {"item": "${item}"}),
        RequestSpec(k.INLAY_HINT, dict(_DOC_RANGE)),
        RequestSpec(k.LINKED_EDITING_RANGE, dict(_DOC_POS)),
        RequestSpec(k.MONIKER, dict(_DOC_POS)),
        RequestSpec(
            k.ON_TYPE_FORMATTING,
            {**_DOC_POS, "ch": "${ch}", "options": "${options}"},
            defaults={"options": _DEFAULT_FORMATTING_OPTIONS},
            supports_end_state=True,
        ),
        RequestSpec(k.OUTGOING_CALLS, {"item": "${item}"}),
        RequestSpec(k.PREPARE_CALL_HIERARCHY, dict(_DOC_POS)),
        RequestSpec(k.PREPARE_RENAME, dict(_DOC_POS)),
        RequestSpec(k.PREPARE_TYPE_HIERARCHY, dict(_DOC_POS)),
        RequestSpec(k.PUBLISH_DIAGNOSTICS, None, hook=RequestHook.NOTIFICATION),
        RequestSpec(
            k.RANGE_FORMATTING,
            {**_DOC_RANGE, "options": "${options}"},
            defaults={"options": _DEFAULT_FORMATTING_OPTIONS},
            supports_end_state=True,
        ),
        RequestSpec(
            k.REFERENCES,
            {**_DOC_POS, "context": {"includeDeclaration": "${include_declaration}"}},
            defaults={"include_declaration": True},
        ),
        RequestSpec(k.RENAME, {**_DOC_POS, "newName": "${new_name}"}),
        RequestSpec(k.SELECTION_RANGE, {**_DOC, "positions": "${positions}"}),
        RequestSpec(k.SEMANTIC_TOKENS_FULL, dict(_DOC)),
        RequestSpec(
            k.SEMANTIC_TOKENS_FULL_DELTA,
            dict(_DOC),
            hook=RequestHook.BASE_THEN_DELTA,
            base_method=types.TEXT_DOCUMENT_SEMANTIC_TOKENS_FULL,
        ),
        RequestSpec(k.SEMANTIC_TOKENS_RANGE, dict(_DOC_RANGE)),
        RequestSpec(
            k.SIGNATURE_HELP,
            {**_DOC_POS, "context": "${context}"},
            defaults={"context": OMIT},
        ),
        RequestSpec(k.TYPE_DEFINITION, dict(_DOC_POS)),
        RequestSpec(
            k.WORKSPACE_DIAGNOSTIC,
            {
                "identifier": "${identifier}",
                "previousResultIds": "${previous_result_ids}",
            },
            defaults={"identifier": OMIT, "previous_result_ids": []},
        ),
        RequestSpec(
            k.WORKSPACE_EXECUTE_COMMAND,
            {"command": "${command}", "arguments": "${arguments}"},
            defaults={"arguments": OMIT},
        ),
        RequestSpec(
            k.WORKSPACE_SYMBOL,
            {"query": "${query}"},
            defaults={"query": ""},
        ),
        RequestSpec(
            k.WORKSPACE_SYMBOL_RESOLVE,
            "${workspace_symbol}",
            hook=RequestHook.RESOLVE,
            resolve_fields=_WORKSPACE_SYMBOL_FIELDS,
        ),
        RequestSpec(k.WORKSPACE_WILL_CREATE_FILES, {"files": "${files}"}),
        RequestSpec(k.WORKSPACE_WILL_DELETE_FILES, {"files": "${files}"}),
        RequestSpec(k.WORKSPACE_WILL_RENAME_FILES, {"files": "${files}"}),
    ]
    return {spec.kind: spec for spec in specs}


_SPECS = _specs()


def get_spec(kind: RequestKind | str) -> RequestSpec:
    """
    Look up the ``RequestSpec`` for ``kind``.

    Raises:
        ValueError: If ``kind`` is not a supported method.
    """
    return _SPECS[RequestKind(kind)]
