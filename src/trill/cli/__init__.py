"""Trill CLI: dev server, production build, production server.

Entry point registered as ``trill`` in ``pyproject.toml``::

    [project.scripts]
    trill = "trill.cli:main"

Commands::

    trill dev [DIR] [-w GLOB]... [--esm] [--host H] [--port P]
    trill build [DIR] [--esm]
    trill start [DIR] [--host H] [--port P] [--workers N]
"""

import argparse
import asyncio
import logging
import sys

from trill.config import BuildOptions, load_build_meta
from trill.errors import TrillError


def _add_server_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--host", default=None, help="Bind host address")
    parser.add_argument("--port", type=int, default=None, help="Bind port number")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="trill",
        description="Trill: file-routed server rendering with browser hydration.",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    subparsers = parser.add_subparsers(dest="command")

    # -- trill dev ---------------------------------------------------------
    dev_parser = subparsers.add_parser("dev", help="Start the development server")
    dev_parser.add_argument("dir", nargs="?", default=".", help="Project directory")
    dev_parser.add_argument(
        "-w",
        "--watch",
        action="append",
        default=[],
        metavar="GLOB",
        help="Extra files that trigger a rebuild (repeatable)",
    )
    dev_parser.add_argument("--esm", action="store_true", help="Split ES-module client output")
    _add_server_args(dev_parser)

    # -- trill build -------------------------------------------------------
    build_cmd = subparsers.add_parser("build", help="Build for production")
    build_cmd.add_argument("dir", nargs="?", default=".", help="Project directory")
    build_cmd.add_argument("--esm", action="store_true", help="Split ES-module client output")

    # -- trill start -------------------------------------------------------
    start_parser = subparsers.add_parser("start", help="Serve the last production build")
    start_parser.add_argument("dir", nargs="?", default=".", help="Project directory")
    start_parser.add_argument(
        "--workers",
        type=int,
        default=None,
        help="Worker count (0=auto-detect)",
    )
    _add_server_args(start_parser)
    return parser


def options_from_args(args: argparse.Namespace) -> BuildOptions:
    """Translate parsed arguments into ``BuildOptions``."""
    kwargs: dict[str, object] = {"root": args.dir, "dev": args.command == "dev"}
    if getattr(args, "esm", False):
        kwargs["esm"] = True
    if getattr(args, "watch", None):
        kwargs["watch"] = tuple(args.watch)
    if getattr(args, "host", None):
        kwargs["host"] = args.host
    if getattr(args, "port", None):
        kwargs["port"] = args.port
    if getattr(args, "workers", None) is not None:
        kwargs["workers"] = args.workers
    return BuildOptions(**kwargs)  # type: ignore[arg-type]


def main(argv: list[str] | None = None) -> None:
    """CLI entry point for the ``trill`` command."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(0)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    from trill.app import Trill

    try:
        app = Trill(options_from_args(args))
        if args.command == "build":
            generation = asyncio.run(app.build())
            print(f"Built {generation.build_id} -> {generation.directory}")
        else:
            if args.command == "start":
                # Fail before binding the port if there is nothing to serve
                load_build_meta(app.options.cache_path)
            app.start_server()
    except TrillError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        raise SystemExit(1) from exc
