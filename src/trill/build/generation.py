"""Build generations.

Each ``bundle()`` writes a complete server/client pair into its own
directory, ``<cache>/builds/<build_id>/``.  A generation becomes live
only when both passes succeeded, and requests always read the server
module and the client files of the same generation.
"""

from __future__ import annotations

import importlib.util
import itertools
import sys
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path
from types import ModuleType

from trill.build.templates import SERVER_ENTRY
from trill.errors import ConfigurationError
from trill.runtime.app import module_prefix, release_build


class BuildIdentifier:
    """Issues ``"<start-ms>-<counter>"`` ids, unique per process.

    The millisecond prefix is fixed at construction, so ids sort by
    issue order within a process and differ across restarts.
    """

    __slots__ = ("_counter", "_prefix")

    def __init__(self, clock: Callable[[], float] = time.time) -> None:
        self._prefix = str(int(clock() * 1000))
        self._counter = itertools.count(1)

    def next(self) -> str:
        return f"{self._prefix}-{next(self._counter)}"


def build_sort_key(build_id: str) -> tuple[int, ...]:
    """Numeric sort key for ids issued by ``BuildIdentifier``."""
    try:
        return tuple(int(part) for part in build_id.split("-"))
    except ValueError:
        return (-1,)


@dataclass(slots=True)
class Generation:
    """One complete, live-able build."""

    build_id: str
    directory: Path
    esm: bool = False
    _module: ModuleType | None = field(default=None, repr=False, compare=False)

    @property
    def server_dir(self) -> Path:
        return self.directory / "server"

    @property
    def client_dir(self) -> Path:
        return self.directory / "client"

    @property
    def module_format(self) -> str:
        return "esm" if self.esm else "cjs"

    @classmethod
    def open(cls, builds_dir: Path, build_id: str, *, esm: bool = False) -> Generation:
        """Reattach to a generation written by an earlier process.

        Raises ``ConfigurationError`` if its files are missing.
        """
        generation = cls(build_id=build_id, directory=builds_dir / build_id, esm=esm)
        entry = generation.server_dir / SERVER_ENTRY
        if not entry.is_file() or not generation.client_dir.is_dir():
            msg = f"Build {build_id} is incomplete or missing under {builds_dir}"
            raise ConfigurationError(msg)
        return generation

    def server_module(self) -> ModuleType:
        """Import the server entry once and return it."""
        if self._module is None:
            self._module = self._load()
        return self._module

    def _load(self) -> ModuleType:
        path = self.server_dir / SERVER_ENTRY
        name = module_prefix(self.build_id) + "routes"
        spec = importlib.util.spec_from_file_location(name, path)
        if spec is None or spec.loader is None:
            msg = f"Cannot import server entry {path}"
            raise ConfigurationError(msg)
        module = importlib.util.module_from_spec(spec)
        sys.modules[name] = module
        try:
            spec.loader.exec_module(module)
        except BaseException:
            release_build(self.build_id)
            raise
        return module

    def release(self) -> None:
        """Forget the imported server module and its page modules."""
        self._module = None
        release_build(self.build_id)
