"""Structural comparison of expected and actual responses.

Both sides are pushed through the lsprotocol converter for the method's
result type, so a response that round-trips differently (for instance a
``MarkedString`` versus a ``MarkupContent``) is caught as a mismatch, and a
payload that does not fit the schema at all is reported separately as a
``DeserializeError``.
"""

from __future__ import annotations

import dataclasses
import difflib
import json
import re
from collections.abc import Iterator
from typing import Any, List

from lsprotocol import types
from lsprotocol.converters import get_converter

from lsprig.errors import DeserializeError, SetupError
from lsprig.harness.models import Contains
from lsprig.harness.normalize import NormalizedPayload, empty_variant
from lsprig.harness.requests import RequestKind
from lsprig.logging import get_logger

__all__ = [
    "Comparison",
    "canonical_json",
    "compare",
    "compare_contains",
    "compare_text",
    "deserialize",
    "first_difference",
    "result_type",
]

_converter = get_converter()
_logger = get_logger("harness.compare")

_IDENTIFIER_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")
_MAX_LISTED_DIFFERENCES = 20


@dataclasses.dataclass(frozen=True)
class Comparison:
    """Outcome of comparing one response with its expectation."""

    passed: bool
    path: str = ""
    expected: Any = None
    actual: Any = None
    rendered: str = ""
    warnings: tuple[str, ...] = ()


def result_type(kind: RequestKind) -> Any:
    """The lsprotocol type a ``kind`` response deserializes into."""
    if kind is RequestKind.PUBLISH_DIAGNOSTICS:
        return List[types.Diagnostic]
    return types.METHOD_TO_TYPES[kind.value][1]


def _type_name(kind: RequestKind) -> str:
    target = result_type(kind)
    return getattr(target, "__name__", str(target))


def deserialize(kind: RequestKind, payload: Any) -> Any:
    """
    Structure ``payload`` as the result of a ``kind`` request.

    Raises:
        DeserializeError: If the payload does not fit the result type.
    """
    if isinstance(payload, NormalizedPayload):
        payload = payload.value
    target = result_type(kind)
    try:
        if kind is RequestKind.PUBLISH_DIAGNOSTICS:
            return _converter.structure(payload, target)
        response = _converter.structure(
            {"jsonrpc": "2.0", "id": 0, "result": payload}, target
        )
        return response.result
    except Exception as e:
        raise DeserializeError(_type_name(kind), str(e), payload=payload) from e


def canonical_json(kind: RequestKind, value: Any) -> Any:
    """Deserialize then unstructure, so both sides share one JSON shape."""
    return _converter.unstructure(deserialize(kind, value))


def _expected_json(kind: RequestKind, expected: Any) -> Any:
    try:
        return canonical_json(kind, _converter.unstructure(expected))
    except DeserializeError as e:
        raise SetupError(
            f"Expected value is not a valid {e.type_name}: {e.detail}"
        ) from e


def _join(path: str, key: str | int) -> str:
    if isinstance(key, int):
        return f"{path}[{key}]"
    if _IDENTIFIER_RE.match(key):
        return f"{path}.{key}" if path else key
    return f"{path}[{json.dumps(key)}]"


_MISSING = object()


def _differences(
    expected: Any, actual: Any, path: str = "", depth: int = 0
) -> Iterator[tuple[str, int, Any, Any]]:
    if isinstance(expected, dict) and isinstance(actual, dict):
        for key in list(expected) + [k for k in actual if k not in expected]:
            yield from _differences(
                expected.get(key, _MISSING),
                actual.get(key, _MISSING),
                _join(path, key),
                depth + 1,
            )
        return
    if isinstance(expected, list) and isinstance(actual, list):
        for index in range(max(len(expected), len(actual))):
            yield from _differences(
                expected[index] if index < len(expected) else _MISSING,
                actual[index] if index < len(actual) else _MISSING,
                _join(path, index),
                depth + 1,
            )
        return
    if expected != actual or type(expected) is not type(actual):
        yield path, depth, expected, actual


def first_difference(expected: Any, actual: Any) -> tuple[str, Any, Any] | None:
    """
    The shallowest path at which ``expected`` and ``actual`` differ.

    Returns:
        ``(path, expected_value, actual_value)`` or None if they are equal.
        Missing values are reported as ``"<missing>"``.
    """
    best: tuple[str, int, Any, Any] | None = None
    for difference in _differences(expected, actual):
        if best is None or difference[1] < best[1]:
            best = difference
    if best is None:
        return None
    path, _, exp, act = best
    return path, _show(exp), _show(act)


def _show(value: Any) -> Any:
    return "<missing>" if value is _MISSING else value


def _render(expected: Any, actual: Any) -> str:
    lines = ["Expected:", _pretty(expected), "Actual:", _pretty(actual), "Differences:"]
    differences = list(_differences(expected, actual))
    for path, _, exp, act in differences[:_MAX_LISTED_DIFFERENCES]:
        lines.append(f"  {path or '<root>'}: {_short(_show(exp))} != {_short(_show(act))}")
    if len(differences) > _MAX_LISTED_DIFFERENCES:
        lines.append(f"  ... {len(differences) - _MAX_LISTED_DIFFERENCES} more")
    for path, _, exp, act in differences[:_MAX_LISTED_DIFFERENCES]:
        if isinstance(exp, str) and isinstance(act, str) and ("\n" in exp or "\n" in act):
            lines.append(_unified(exp, act, path or "<root>"))
    return "\n".join(lines)


def _pretty(value: Any) -> str:
    return json.dumps(value, indent=2, sort_keys=True, default=repr)


def _short(value: Any) -> str:
    text = json.dumps(value, default=repr)
    return text if len(text) <= 80 else text[:77] + "..."


def _unified(expected: str, actual: str, label: str) -> str:
    diff = difflib.unified_diff(
        expected.splitlines(keepends=True),
        actual.splitlines(keepends=True),
        fromfile=f"expected {label}",
        tofile=f"actual {label}",
    )
    return "".join(diff).rstrip("\n")


def compare(kind: RequestKind, expected: Any, actual: Any) -> Comparison:
    """
    Compare an expected value with a captured, normalized payload.

    Empty values of different shapes (an empty array, a completion list with
    no items, a workspace edit without changes) compare equal; the
    difference in shape is logged and attached as a warning.

    Raises:
        DeserializeError: If ``actual`` does not fit the result type.
        SetupError: If ``expected`` does not fit the result type.
    """
    actual_json = canonical_json(kind, actual)
    expected_json = _expected_json(kind, expected)

    expected_empty = empty_variant(expected_json, kind)
    actual_empty = empty_variant(actual_json, kind)
    if expected_empty and actual_empty:
        warnings: tuple[str, ...] = ()
        if expected_empty != actual_empty:
            warning = (
                f"Expected {expected_empty} response, got {actual_empty}; "
                "treating both as empty"
            )
            _logger.warning(warning)
            warnings = (warning,)
        return Comparison(True, expected=expected_json, actual=actual_json, warnings=warnings)

    difference = first_difference(expected_json, actual_json)
    if difference is None:
        return Comparison(True, expected=expected_json, actual=actual_json)
    path, exp, act = difference
    return Comparison(
        False,
        path=path,
        expected=exp,
        actual=act,
        rendered=_render(expected_json, actual_json),
    )


def compare_contains(kind: RequestKind, expected: Contains, actual: Any) -> Comparison:
    """Pass if every expected item appears in the actual list, in any order."""
    actual_json = canonical_json(kind, actual)
    items = actual_json.get("items") if isinstance(actual_json, dict) else actual_json
    if not isinstance(items, list):
        return Comparison(
            False,
            path="<root>",
            expected=list(expected.items),
            actual=actual_json,
            rendered=f"Expected a list of items, got:\n{_pretty(actual_json)}",
        )

    remaining = list(items)
    missing = []
    for item in (_converter.unstructure(i) for i in expected.items):
        if item in remaining:
            remaining.remove(item)
        else:
            missing.append(item)
    if not missing:
        return Comparison(True, expected=list(expected.items), actual=items)

    rendered = "\n".join(
        ["Missing items:", *(f"  {_short(item)}" for item in missing), "Actual items:", _pretty(items)]
    )
    return Comparison(False, path="items", expected=missing, actual=items, rendered=rendered)


def compare_text(expected: str, actual: str) -> Comparison:
    """Compare end-state document text."""
    if expected == actual:
        return Comparison(True, expected=expected, actual=actual)
    return Comparison(
        False,
        path="<document>",
        expected=expected,
        actual=actual,
        rendered=_unified(expected, actual, "document") or f"{expected!r} != {actual!r}",
    )
