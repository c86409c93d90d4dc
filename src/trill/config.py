"""Runtime configuration.

BuildOptions is a frozen dataclass, fixed at startup and IDE-autocompletable,
no string-key dict lookups.  Changing an option requires a restart.

The one piece of state that outlives a process is the module format
chosen at ``trill build``: it is persisted to ``build-meta.json`` in the
cache directory so a later ``trill start`` serves the same format.
"""

import json
from dataclasses import asdict, dataclass, field
from pathlib import Path

from trill.errors import ConfigurationError

META_FILENAME = "build-meta.json"


@dataclass(frozen=True, slots=True)
class BuildOptions:
    """Process-wide build and serve options. Immutable after creation.

    All fields have sensible defaults. Override what you need::

        options = BuildOptions(root="site", dev=True, watch=("content/**/*.md",))
    """

    # Project
    root: Path = field(default_factory=Path.cwd)
    pages_dir: str = "pages"
    public_dir: str = "public"
    cache_dir: str = ".trill"

    # Mode
    dev: bool = False
    esm: bool = False  # Split ES-module client output instead of one bundle

    # Dev loop
    watch: tuple[str, ...] = ()  # Extra globs (relative to root) that trigger a rebuild
    poll_interval: float = 0.5

    # Server
    host: str = "127.0.0.1"
    port: int = 3000
    workers: int = 0  # Production only; 0 = let pounce decide

    # Requests
    loader_timeout: float | None = 30.0

    # Compiler
    esbuild: str = "esbuild"

    def __post_init__(self) -> None:
        object.__setattr__(self, "root", Path(self.root).resolve())
        object.__setattr__(self, "watch", tuple(self.watch))
        if self.poll_interval <= 0:
            msg = f"poll_interval must be positive, got {self.poll_interval!r}"
            raise ConfigurationError(msg)
        if self.loader_timeout is not None and self.loader_timeout <= 0:
            msg = f"loader_timeout must be positive or None, got {self.loader_timeout!r}"
            raise ConfigurationError(msg)

    @property
    def module_format(self) -> str:
        """``"esm"`` for split ES-module output, ``"cjs"`` for one bundle."""
        return "esm" if self.esm else "cjs"

    @property
    def pages_path(self) -> Path:
        return self.root / self.pages_dir

    @property
    def public_path(self) -> Path:
        return self.root / self.public_dir

    @property
    def cache_path(self) -> Path:
        return self.root / self.cache_dir


@dataclass(frozen=True, slots=True)
class BuildMeta:
    """What ``trill build`` leaves behind for ``trill start``."""

    build_id: str
    format: str = "cjs"

    @property
    def esm(self) -> bool:
        return self.format == "esm"


def save_build_meta(cache_path: Path, meta: BuildMeta) -> Path:
    """Persist *meta* to ``<cache>/build-meta.json`` and return the path."""
    cache_path.mkdir(parents=True, exist_ok=True)
    path = cache_path / META_FILENAME
    tmp = path.with_suffix(".tmp")
    tmp.write_text(json.dumps(asdict(meta), indent=2), encoding="utf-8")
    tmp.replace(path)
    return path


def load_build_meta(cache_path: Path) -> BuildMeta:
    """Read the metadata written by the last production build.

    Raises ``ConfigurationError`` if no build has been made or the file
    is unreadable.
    """
    path = cache_path / META_FILENAME
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        msg = f"No build found at {path}. Run `trill build` first."
        raise ConfigurationError(msg) from None
    except json.JSONDecodeError as exc:
        msg = f"Corrupt build metadata at {path}: {exc}"
        raise ConfigurationError(msg) from exc

    build_id = data.get("build_id")
    if not build_id:
        msg = f"Build metadata at {path} has no build_id"
        raise ConfigurationError(msg)
    fmt = data.get("format", "cjs")
    if fmt not in ("cjs", "esm"):
        msg = f"Unknown module format {fmt!r} in {path}"
        raise ConfigurationError(msg)
    return BuildMeta(build_id=str(build_id), format=fmt)
