"""Canonicalizing captured payloads before comparison.

Servers answer with absolute ``file://`` URIs inside a per-run workspace, so
those are rewritten to paths relative to ``src/``. Everything else is left
as the server sent it.
"""

from __future__ import annotations

import dataclasses
from collections.abc import Callable
from typing import Any

from lsprig.harness.requests import RequestKind
from lsprig.harness.workspace import Workspace

__all__ = [
    "URI_KEYS",
    "NormalizedPayload",
    "collapse_escapes",
    "empty_variant",
    "normalize",
    "rewrite_uris",
]

URI_KEYS = frozenset({"uri", "targetUri", "oldUri", "newUri", "target", "baseUri"})

_DIAGNOSTIC_KINDS = frozenset(
    {
        RequestKind.PUBLISH_DIAGNOSTICS,
        RequestKind.DIAGNOSTIC,
        RequestKind.WORKSPACE_DIAGNOSTIC,
    }
)
_COMPLETION_KINDS = frozenset({RequestKind.COMPLETION, RequestKind.COMPLETION_RESOLVE})
_WORKSPACE_EDIT_KINDS = frozenset(
    {
        RequestKind.RENAME,
        RequestKind.WORKSPACE_WILL_CREATE_FILES,
        RequestKind.WORKSPACE_WILL_DELETE_FILES,
        RequestKind.WORKSPACE_WILL_RENAME_FILES,
    }
)


@dataclasses.dataclass(frozen=True)
class NormalizedPayload:
    """A payload that has already been through ``normalize``."""

    value: Any


def rewrite_uris(payload: Any, rewrite: Callable[[str], str | None]) -> Any:
    """
    Return a copy of ``payload`` with URI values (and ``changes`` keys) rewritten.

    ``rewrite`` returns the replacement, or None to keep the original.
    """
    if isinstance(payload, list):
        return [rewrite_uris(item, rewrite) for item in payload]
    if not isinstance(payload, dict):
        return payload

    result: dict[str, Any] = {}
    for key, value in payload.items():
        if key in URI_KEYS and isinstance(value, str):
            replaced = rewrite(value)
            result[key] = value if replaced is None else replaced
        elif key == "changes" and isinstance(value, dict):
            changes: dict[str, Any] = {}
            for uri, edits in value.items():
                replaced = rewrite(uri)
                changes[uri if replaced is None else replaced] = rewrite_uris(
                    edits, rewrite
                )
            result[key] = changes
        else:
            result[key] = rewrite_uris(value, rewrite)
    return result


def _collapse(text: str) -> str:
    return text.replace("\\\\", "\\")


def _collapse_markup(value: Any) -> Any:
    if isinstance(value, str):
        return _collapse(value)
    if isinstance(value, list):
        return [_collapse_markup(item) for item in value]
    if isinstance(value, dict) and isinstance(value.get("value"), str):
        return {**value, "value": _collapse(value["value"])}
    return value


def _collapse_completion(payload: Any) -> Any:
    if isinstance(payload, list):
        return [_collapse_completion(item) for item in payload]
    if not isinstance(payload, dict):
        return payload
    if isinstance(payload.get("items"), list):
        return {**payload, "items": _collapse_completion(payload["items"])}
    if "documentation" in payload:
        return {**payload, "documentation": _collapse_markup(payload["documentation"])}
    return payload


def _collapse_diagnostics(payload: Any) -> Any:
    if isinstance(payload, list):
        return [_collapse_diagnostics(item) for item in payload]
    if not isinstance(payload, dict):
        return payload
    result = {key: _collapse_diagnostics(value) for key, value in payload.items()}
    if "range" in payload and isinstance(payload.get("message"), str):
        result["message"] = _collapse(payload["message"])
    return result


def collapse_escapes(payload: Any, kind: RequestKind) -> Any:
    """
    Turn doubled backslashes into single ones, once.

    Only hover contents, completion documentation and diagnostic messages are
    touched; every other kind is returned unchanged.
    """
    if kind is RequestKind.HOVER and isinstance(payload, dict) and "contents" in payload:
        return {**payload, "contents": _collapse_markup(payload["contents"])}
    if kind in _COMPLETION_KINDS:
        return _collapse_completion(payload)
    if kind in _DIAGNOSTIC_KINDS:
        return _collapse_diagnostics(payload)
    return payload


def empty_variant(value: Any, kind: RequestKind | None = None) -> str | None:
    """
    Name the kind of "nothing" ``value`` is, or None if it holds something.

    Variants: ``null``, ``empty-list``, ``empty-completion-list`` and
    ``empty-workspace-edit``.
    """
    if value is None:
        return "null"
    if isinstance(value, list) and not value:
        return "empty-list"
    if not isinstance(value, dict):
        return None
    if (kind is None or kind in _COMPLETION_KINDS) and set(value) <= {
        "isIncomplete",
        "items",
        "itemDefaults",
    }:
        if value.get("items") == []:
            return "empty-completion-list"
    if kind is None or kind in _WORKSPACE_EDIT_KINDS:
        if set(value) <= {"changes", "documentChanges", "changeAnnotations"} and not any(
            value.get(key) for key in ("changes", "documentChanges")
        ):
            return "empty-workspace-edit"
    return None


def normalize(
    payload: Any,
    workspace: Workspace,
    kind: RequestKind,
    *,
    collapse: bool = False,
) -> NormalizedPayload:
    """
    Canonicalize a captured payload for comparison.

    Normalizing an already normalized payload returns it unchanged.

    Args:
        payload: Parsed JSON from the results artifact.
        workspace: The run's workspace, used to relativize URIs.
        kind: The request kind that produced ``payload``.
        collapse: Apply the double-escape correction.
    """
    if isinstance(payload, NormalizedPayload):
        return payload
    value = rewrite_uris(payload, workspace.relative_uri)
    if collapse:
        value = collapse_escapes(value, kind)
    return NormalizedPayload(value)
