"""Main CLI entry point: `crossbuild [options] [token ...]`."""

from __future__ import annotations

import argparse
import logging
import signal
import sys
import threading
from pathlib import Path

from crossbuild_tooling import __version__
from crossbuild_tooling.build.clean import clean
from crossbuild_tooling.build.deps import check_dependencies, zig_version_info
from crossbuild_tooling.build.orchestrator import run_build
from crossbuild_tooling.config import Backend, make_config
from crossbuild_tooling.errors import CrossbuildError, InvalidArgument
from crossbuild_tooling.platforms.registry import PLATFORM_TABLE, list_known

EPILOG = """\
examples:
  crossbuild linux-amd64                 build for the host (debug, gzip)
  crossbuild -r -z linux-arm64 linux-armv7
  crossbuild -r -c --all -o dist
  crossbuild --list

Mode defaults to debug; pass -r for release builds.
Settings may also come from crossbuild.yaml in the source dir; flags win.
"""


class _Parser(argparse.ArgumentParser):
    """ArgumentParser that exits 1 (not 2) on usage errors."""

    def error(self, message: str) -> None:  # type: ignore[override]
        self.print_usage(sys.stderr)
        print(f"❌ {message}", file=sys.stderr)
        sys.exit(1)


def build_parser() -> argparse.ArgumentParser:
    ap = _Parser(
        prog="crossbuild",
        description="Build, package and checksum a Rust binary for one or more os-arch targets.",
        epilog=EPILOG,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    ap.add_argument("tokens", nargs="*", metavar="token", help="platform token, e.g. linux-amd64")
    ap.add_argument(
        "-o", "--output", default=None, help="output dir (default: dist in the source dir)"
    )
    ap.add_argument("-s", "--source", default=".", help="cargo project dir (default: cwd)")
    backend = ap.add_argument_group("backend")
    backend.add_argument(
        "-z", "--zig", action="store_true", help="cross-compile with cargo zigbuild"
    )
    backend.add_argument(
        "-c", "--cross", action="store_true", help="cross-compile with cross (containers)"
    )
    ap.add_argument("-r", "--release", action="store_true", help="release build (default: debug)")
    ap.add_argument("--features", default=None, help="cargo features, comma separated")
    ap.add_argument("--no-compress", action="store_true", help="do not gzip artifacts")
    ap.add_argument("-a", "--all", action="store_true", help="build every known platform")
    ap.add_argument(
        "-f",
        "--force-install",
        action="store_true",
        help="fail if a rust target cannot be installed",
    )
    ap.add_argument(
        "-j", "--jobs", type=int, default=None, help="targets to build in parallel (default: 1)"
    )
    ap.add_argument(
        "--timeout",
        type=float,
        default=None,
        help="seconds per toolchain call, 0 = none (default: 3600)",
    )
    ap.add_argument(
        "--name", default=None, help="project/binary name (default: Cargo.toml package name)"
    )
    ap.add_argument("--report", type=Path, default=None, help="write a JSON build report here")
    ap.add_argument("-v", "--verbose", action="store_true", help="debug logging")
    actions = ap.add_argument_group("standalone actions")
    actions.add_argument("-l", "--list", action="store_true", help="list known platforms and exit")
    actions.add_argument("--clean", action="store_true", help="remove build output and exit")
    actions.add_argument("--check-deps", action="store_true", help="check dependencies and exit")
    actions.add_argument(
        "--zig-version", action="store_true", help="show zig toolchain versions and exit"
    )
    ap.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return ap


def print_registry() -> None:
    print(f"{'TOKEN':<15} {'TARGET':<32} {'ZIG TARGET':<36} LABEL")
    for spec in PLATFORM_TABLE:
        print(
            f"{spec.token:<15} {spec.host_triple:<32} {spec.zig_triple or '-':<36} {spec.arch_label}"
        )


def _select_backend(args: argparse.Namespace) -> Backend:
    if args.zig and args.cross:
        msg = "--zig and --cross are mutually exclusive"
        raise InvalidArgument(msg)
    if args.zig:
        return Backend.ZIG
    if args.cross:
        return Backend.CROSS
    return Backend.DIRECT


def _requested_tokens(args: argparse.Namespace) -> list[str]:
    if args.all and args.tokens:
        msg = "pass platform tokens or --all, not both"
        raise InvalidArgument(msg)
    if args.all:
        return list_known()
    if not args.tokens:
        msg = "no targets requested (pass platform tokens or --all; see --list)"
        raise InvalidArgument(msg)
    return list(args.tokens)


def run(argv: list[str] | None = None) -> int:
    """Parse argv and run one action. Returns the process exit code. CrossbuildError propagates."""
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    if args.list:
        print_registry()
        return 0
    if args.zig_version:
        for line in zig_version_info():
            print(line)
        return 0

    source_dir = Path(args.source).resolve()
    if args.clean:
        return clean(source_dir)

    backend = _select_backend(args)
    overrides = {
        "output_dir": str(Path(args.output).resolve()) if args.output else None,
        "features": args.features,
        "mode": "release" if args.release else None,
        "compress": False if args.no_compress else None,
        "timeout": args.timeout,
        "jobs": args.jobs,
        "project_name": args.name,
    }
    config = make_config(
        source_dir,
        backend=backend,
        force_install_targets=args.force_install,
        overrides=overrides,
    )

    if args.check_deps:
        deps = check_dependencies(config)
        deps.print()
        return 0 if deps.ok else 1

    tokens = _requested_tokens(args)
    cancel = threading.Event()
    previous = None
    if threading.current_thread() is threading.main_thread():
        previous = signal.signal(signal.SIGTERM, lambda *_: cancel.set())
    try:
        report = run_build(config, tokens, cancel=cancel)
    finally:
        if previous is not None:
            signal.signal(signal.SIGTERM, previous)

    report.print_summary()
    if args.report is not None:
        report.write_json(args.report)
        print(f"📝 Report written to {args.report}")
    return report.exit_code


def main() -> None:
    """Console script entry point."""
    try:
        rc = run(sys.argv[1:])
    except CrossbuildError as e:
        print(f"❌ {e}", file=sys.stderr)
        rc = 1
    except OSError as e:
        print(f"❌ {e}", file=sys.stderr)
        rc = 1
    except KeyboardInterrupt:
        print("❌ Interrupted", file=sys.stderr)
        rc = 1
    sys.exit(rc)


if __name__ == "__main__":
    main()
