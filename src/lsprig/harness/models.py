"""Test case model consumed by every stage of the pipeline."""

from __future__ import annotations

import dataclasses
import os
import secrets
import shutil
from collections.abc import Mapping, Sequence
from pathlib import Path, PurePosixPath
from types import MappingProxyType
from typing import Any, ClassVar, Union

from lsprotocol import types

from lsprig.errors import SetupError
from lsprig.settings import Retention

__all__ = [
    "Contains",
    "EndState",
    "ProgressStart",
    "SimpleStart",
    "SourceFile",
    "StartType",
    "TestCase",
    "generate_test_id",
    "language_id_for",
]

_LANGUAGE_IDS: dict[str, str] = {
    ".c": "c",
    ".cpp": "cpp",
    ".go": "go",
    ".js": "javascript",
    ".json": "json",
    ".lua": "lua",
    ".md": "markdown",
    ".py": "python",
    ".rs": "rust",
    ".sh": "shellscript",
    ".toml": "toml",
    ".ts": "typescript",
}


def language_id_for(path: str) -> str:
    """Language identifier for a file, derived from its extension."""
    suffix = PurePosixPath(path).suffix
    return _LANGUAGE_IDS.get(suffix, suffix.lstrip(".") or "plaintext")


def generate_test_id() -> str:
    """Return a random 64-bit identifier rendered as hex."""
    return f"{secrets.randbits(64):016x}"


@dataclasses.dataclass(frozen=True)
class SourceFile:
    """A file materialized under the workspace ``src/`` directory."""

    path: str
    contents: str = ""

    def __post_init__(self) -> None:
        object.__setattr__(self, "path", PurePosixPath(self.path).as_posix())

    def validate(self) -> None:
        """
        Reject paths that are empty, absolute, or escape ``src/``.

        Raises:
            SetupError: If the path is invalid.
        """
        pure = PurePosixPath(self.path)
        if (
            not self.path
            or self.path == "."
            or pure.is_absolute()
            or Path(self.path).is_absolute()
            or ".." in pure.parts
        ):
            raise SetupError(f'Source file path "{self.path}" is invalid')


@dataclasses.dataclass(frozen=True)
class SimpleStart:
    """Issue the request on the ``threshold``-th readiness trigger."""

    threshold: int = 1

    def __post_init__(self) -> None:
        if self.threshold < 1:
            raise SetupError(f"Simple start threshold must be >= 1, got {self.threshold}")


@dataclasses.dataclass(frozen=True)
class ProgressStart:
    """Issue the request after the ``ordinal``-th ``end`` progress event for ``token``."""

    ordinal: int
    token: str

    def __post_init__(self) -> None:
        if self.ordinal < 1:
            raise SetupError(f"Progress ordinal must be >= 1, got {self.ordinal}")
        if not self.token:
            raise SetupError("Progress token must not be empty")


StartType = Union[SimpleStart, ProgressStart]


@dataclasses.dataclass(frozen=True)
class Contains:
    """Expect at least these items, in any order."""

    items: Sequence[Any]


@dataclasses.dataclass(frozen=True)
class EndState:
    """Expect the primary file to read ``text`` after applying the response's edits."""

    text: str


def _is_executable(command: str) -> bool:
    if shutil.which(command) is not None:
        return True
    path = Path(command)
    return path.is_file() and os.access(path, os.X_OK)


@dataclasses.dataclass(frozen=True)
class TestCase:
    """
    Description of one run against a server-under-test.

    Instances are immutable; use ``with_params`` or ``dataclasses.replace``
    to derive variants. Each instance carries its own random ``test_id``, so
    derived copies share the identifier only when it is passed explicitly.
    """

    __test__: ClassVar[bool] = False

    server: Sequence[str] | str
    source: SourceFile
    other_files: Sequence[SourceFile] = ()
    side_files: Mapping[str, str] = dataclasses.field(default_factory=dict)
    cursor: types.Position | None = None
    params: Mapping[str, Any] = dataclasses.field(default_factory=dict)
    start: StartType = dataclasses.field(default_factory=SimpleStart)
    timeout: float | None = None
    commands: Sequence[str] = ()
    language_id: str | None = None
    retention: Retention | None = None
    collapse_escapes: bool = False
    open_all: bool = False
    test_id: str = dataclasses.field(default_factory=generate_test_id)

    def __post_init__(self) -> None:
        server = (self.server,) if isinstance(self.server, str) else tuple(self.server)
        object.__setattr__(self, "server", server)
        object.__setattr__(self, "other_files", tuple(self.other_files))
        object.__setattr__(self, "commands", tuple(self.commands))
        object.__setattr__(self, "side_files", MappingProxyType(dict(self.side_files)))
        object.__setattr__(self, "params", MappingProxyType(dict(self.params)))
        if self.timeout is not None and self.timeout <= 0:
            raise SetupError(f"Timeout must be positive, got {self.timeout}")

    @property
    def files(self) -> tuple[SourceFile, ...]:
        """The primary file followed by the auxiliary files."""
        return (self.source, *self.other_files)

    @property
    def resolved_language_id(self) -> str:
        if self.language_id:
            return self.language_id
        return language_id_for(self.source.path)

    def with_params(self, **values: Any) -> TestCase:
        """Return a copy with ``values`` merged into ``params``, keeping ``test_id``."""
        return dataclasses.replace(self, params={**self.params, **values})

    def validate(self) -> None:
        """
        Check everything that can be checked before provisioning.

        Raises:
            SetupError: If the server is not executable, a file path is
                invalid, a file is declared twice, or a side file name is not
                a plain file name.
        """
        if not self.server or not self.server[0]:
            raise SetupError("Server command is empty", test_id=self.test_id)
        if not _is_executable(self.server[0]):
            raise SetupError(
                f'The server command/path "{self.server[0]}" is not executable',
                test_id=self.test_id,
            )

        seen: set[str] = set()
        for source_file in self.files:
            try:
                source_file.validate()
            except SetupError as e:
                raise SetupError(e.message, test_id=self.test_id) from None
            if source_file.path in seen:
                raise SetupError(
                    f'Source file "{source_file.path}" declared more than once',
                    test_id=self.test_id,
                )
            seen.add(source_file.path)

        for name in self.side_files:
            if not name or PurePosixPath(name).name != name or name in {".", ".."}:
                raise SetupError(
                    f'Side file name "{name}" is invalid', test_id=self.test_id
                )
