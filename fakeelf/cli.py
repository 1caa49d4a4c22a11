"""
fakeelf.cli
===========
Command-line front end for :mod:`fakeelf.builder`.

Every diagnostic goes to stdout and every failure exits with status 1.
Log records go to stderr so they never interleave with the diagnostics.
"""

from __future__ import annotations

import argparse
import logging
import sys
from typing import Sequence

from fakeelf import __version__
from fakeelf.builder import BuildConfig, BuildError, MissingShebangError, build

logger = logging.getLogger(__name__)

_STAGE_MESSAGES: dict[str, str] = {
    "read":    "Error reading script file",
    "create":  "Error creating output file",
    "header":  "Error writing ELF header to file",
    "shebang": "Error writing shebang to file",
    "printf":  "Error writing printf command to file",
    "body":    "Error writing script content to file",
    "chmod":   "Error setting file permissions",
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="fake-elf",
        description="Prefix a shebang script with a decoy ELF header.",
    )
    parser.add_argument("--input-script", default="", metavar="PATH",
                        help="Path to the input script")
    parser.add_argument("--output-to", default="", metavar="PATH",
                        help="Path to the output ELF file")
    parser.add_argument("-v", "--verbose", action="store_true",
                        help="Log each build step")
    parser.add_argument("--version", action="version",
                        version=f"%(prog)s {__version__}")
    return parser


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)-8s %(name)s — %(message)s",
        datefmt="%H:%M:%S",
        stream=sys.stderr,
    )


def format_error(exc: BuildError) -> str:
    """Return the one-line diagnostic printed for *exc*."""
    if isinstance(exc, MissingShebangError):
        return f"Error: {exc.reason}"
    prefix = _STAGE_MESSAGES.get(exc.stage, "Error")
    return f"{prefix}: {exc.reason}"


def main(argv: Sequence[str] | None = None) -> int:
    """Run the tool and return the process exit status."""
    parser = build_parser()
    args = parser.parse_args(argv)
    _configure_logging(args.verbose)

    if not args.input_script or not args.output_to:
        print("Error: --input-script and --output-to flags are required")
        parser.print_usage(sys.stdout)
        return 1

    config = BuildConfig(input_script=args.input_script, output_to=args.output_to)
    try:
        result = build(config)
    except BuildError as exc:
        logger.debug("Build failed at stage %r", exc.stage)
        print(format_error(exc))
        return 1

    print(f"Created ELF file with embedded script: {result.output}")
    return 0


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

def launch() -> None:
    """Run :func:`main` and exit with its status."""
    raise SystemExit(main())
