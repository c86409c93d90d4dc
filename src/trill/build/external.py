"""External dependency resolution for the server build.

Packages listed here are left to the runtime import system instead of
being pulled into the compiled server output: trill itself, trill's own
requirements, and the project's declared dependencies.
"""

import importlib.metadata
import logging
import re
import tomllib
from pathlib import Path

logger = logging.getLogger("trill.build")

_NAME_RE = re.compile(r"^\s*([A-Za-z0-9][A-Za-z0-9._-]*)")


def requirement_name(requirement: str) -> str | None:
    """``"kida-templates>=0.2; python_version>'3'"`` -> ``"kida-templates"``."""
    match = _NAME_RE.match(requirement)
    return match.group(1) if match else None


def framework_externals() -> list[str]:
    """trill plus its installed runtime requirements (extras excluded)."""
    names = ["trill"]
    try:
        requires = importlib.metadata.requires("trill") or []
    except importlib.metadata.PackageNotFoundError:
        return names
    for requirement in requires:
        if "extra ==" in requirement.replace('"', "").replace("'", ""):
            continue
        if name := requirement_name(requirement):
            names.append(name)
    return names


def find_pyproject(root: Path) -> Path | None:
    """Nearest ``pyproject.toml`` at or above *root*."""
    for directory in (root, *root.parents):
        candidate = directory / "pyproject.toml"
        if candidate.is_file():
            return candidate
    return None


def project_dependencies(root: Path) -> list[str]:
    """Names from ``[project].dependencies`` of the project at *root*."""
    path = find_pyproject(root)
    if path is None:
        return []
    try:
        data = tomllib.loads(path.read_text(encoding="utf-8"))
    except tomllib.TOMLDecodeError as exc:
        logger.warning("Ignoring unreadable %s: %s", path, exc)
        return []
    declared = data.get("project", {}).get("dependencies", [])
    return [name for req in declared if (name := requirement_name(req))]


def get_external_deps(root: Path) -> tuple[str, ...]:
    """Deduplicated externals, framework first, in declaration order."""
    seen: dict[str, None] = {}
    for name in (*framework_externals(), *project_dependencies(root)):
        seen.setdefault(name, None)
    return tuple(seen)
