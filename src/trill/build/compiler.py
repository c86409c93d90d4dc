"""Compiler services for the server and browser targets.

A compiler turns entry points into an artifact directory::

    artifact = await compiler.compile([entry], options)

Compilers are long-lived: the orchestrator starts one per platform on
first use, keeps it across rebuilds, and closes it on dispose.

- ``ModuleCompiler`` builds the server target.  Python resolves imports
  at runtime, so "bundling" the server entry means injecting the build
  defines as module constants, checking that the result compiles, and
  writing it with a manifest next to it.
- ``EsbuildCompiler`` builds the browser target by running the
  ``esbuild`` binary as a subprocess.
"""

import asyncio
import builtins
import json
import logging
import shutil
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol

from trill.errors import CompilationError

logger = logging.getLogger("trill.build")

MANIFEST = "manifest.json"

# Static assets copied to the output directory and referenced by URL
ASSET_LOADERS: dict[str, str] = {
    ext: "file"
    for ext in (".svg", ".jpg", ".jpeg", ".png", ".gif", ".webp", ".css", ".woff", ".woff2")
}


@dataclass(frozen=True, slots=True)
class CompileOptions:
    """Options for one compilation pass.

    ``define`` maps names to JavaScript literal source (``"true"``,
    ``'"production"'``), the way esbuild takes them.
    """

    platform: str  # "server" | "browser"
    format: str  # "cjs" | "esm" | "iife"
    out_dir: Path
    bundle: bool = True
    minify: bool = False
    sourcemap: bool = False
    splitting: bool = False
    define: Mapping[str, str] = field(default_factory=dict)
    external: tuple[str, ...] = ()
    loader: Mapping[str, str] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class BuildArtifact:
    """Files one compilation pass produced."""

    platform: str
    out_dir: Path
    files: tuple[Path, ...] = ()


class Compiler(Protocol):
    async def compile(self, entry_points: Sequence[Path], options: CompileOptions) -> BuildArtifact: ...

    async def close(self) -> None: ...


def _python_literal(name: str, value: str) -> str:
    try:
        parsed = json.loads(value)
    except json.JSONDecodeError as exc:
        raise CompilationError("server", f"define {name}={value!r} is not a literal") from exc
    return repr(parsed)


class ModuleCompiler:
    """Compiles the generated server entry into a loadable module."""

    __slots__ = ("_closed",)

    def __init__(self) -> None:
        self._closed = False

    async def compile(self, entry_points: Sequence[Path], options: CompileOptions) -> BuildArtifact:
        if self._closed:
            raise CompilationError(options.platform, "compiler has been closed")
        if options.platform != "server":
            raise CompilationError(options.platform, "ModuleCompiler only builds the server target")

        header = "".join(
            f"{name} = {_python_literal(name, value)}\n"
            for name, value in sorted(options.define.items())
            if name.isidentifier()
        )
        optimize = 2 if options.minify else 0
        options.out_dir.mkdir(parents=True, exist_ok=True)

        files: list[Path] = []
        for entry in entry_points:
            target = options.out_dir / entry.name
            try:
                source = header + entry.read_text(encoding="utf-8")
            except OSError as exc:
                raise CompilationError("server", f"cannot read {entry}: {exc}") from exc
            try:
                builtins.compile(source, str(target), "exec", optimize=optimize)
            except SyntaxError as exc:
                raise CompilationError("server", f"{entry.name}:{exc.lineno}: {exc.msg}") from exc
            target.write_text(source, encoding="utf-8")
            files.append(target)

        manifest = options.out_dir / MANIFEST
        manifest.write_text(
            json.dumps(
                {
                    "entry_points": [f.name for f in files],
                    "format": options.format,
                    "optimize": optimize,
                    "external": list(options.external),
                    "define": dict(sorted(options.define.items())),
                },
                indent=2,
            ),
            encoding="utf-8",
        )
        files.append(manifest)
        return BuildArtifact(platform="server", out_dir=options.out_dir, files=tuple(files))

    async def close(self) -> None:
        self._closed = True


class EsbuildCompiler:
    """Runs the esbuild binary for the browser target.

    In-flight processes are tracked so ``close()`` can stop them.
    """

    __slots__ = ("_binary", "_executable", "_procs")

    def __init__(self, binary: str = "esbuild") -> None:
        self._binary = binary
        self._executable: str | None = None
        self._procs: set[asyncio.subprocess.Process] = set()

    def _resolve(self) -> str:
        if self._executable is None:
            found = shutil.which(self._binary)
            if found is None:
                raise CompilationError(
                    "browser", f"esbuild executable {self._binary!r} not found on PATH"
                )
            self._executable = found
        return self._executable

    def command(self, entry_points: Sequence[Path], options: CompileOptions) -> list[str]:
        """The esbuild argument list for one pass (without the executable)."""
        args = [str(p) for p in entry_points]
        if options.bundle:
            args.append("--bundle")
        platform = "node" if options.platform == "server" else "browser"
        args += [
            f"--platform={platform}",
            f"--format={options.format}",
            f"--outdir={options.out_dir}",
            "--log-level=warning",
        ]
        if options.splitting:
            args.append("--splitting")
        if options.minify:
            args.append("--minify")
        if options.sourcemap:
            args.append("--sourcemap")
        args += [f"--define:{name}={value}" for name, value in sorted(options.define.items())]
        args += [f"--external:{name}" for name in options.external]
        args += [f"--loader:{ext}={kind}" for ext, kind in sorted(options.loader.items())]
        return args

    async def compile(self, entry_points: Sequence[Path], options: CompileOptions) -> BuildArtifact:
        executable = self._resolve()
        options.out_dir.mkdir(parents=True, exist_ok=True)
        proc = await asyncio.create_subprocess_exec(
            executable,
            *self.command(entry_points, options),
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
        self._procs.add(proc)
        try:
            _, stderr = await proc.communicate()
        finally:
            self._procs.discard(proc)

        detail = stderr.decode("utf-8", errors="replace").strip()
        if proc.returncode != 0:
            raise CompilationError(options.platform, detail or f"esbuild exited with {proc.returncode}")
        if detail:
            logger.warning("esbuild: %s", detail)

        files = tuple(sorted(p for p in options.out_dir.rglob("*") if p.is_file()))
        return BuildArtifact(platform=options.platform, out_dir=options.out_dir, files=files)

    async def close(self) -> None:
        for proc in list(self._procs):
            if proc.returncode is None:
                proc.kill()
                await proc.wait()
        self._procs.clear()
