"""
fakeelf.builder
===============
Core engine: wraps a shebang script in a decoy ELF prefix.

Output layout
-------------
::

    offset 0..7   7F 45 4C 46 02 01 01 00      decoy magic / ident bytes
    offset 8..n   #!/path/to/interpreter       shebang, as matched
    then          \\n printf "\\x1B[1F\\x1B[2K"   clear-line command (no newline)
    then          remaining script bytes       everything after the shebang

The header is never a loadable ELF image.  It only makes the first bytes
look like one to tools that sniff magic numbers.  The ``printf`` command
moves the cursor up one line and clears it, erasing the line of noise a
shell prints when it falls back to running the file as a script.

This module does no printing; failures are raised as :class:`BuildError`
and reported by :mod:`fakeelf.cli`.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

HEADER = bytes((
    0x7F, 0x45, 0x4C, 0x46,   # \x7fELF
    0x02, 0x01, 0x01, 0x00,   # class 64, little-endian, version 1, pad
))

# Literal backslashes: the escapes are interpreted by the shell's printf
PRINTF_COMMAND = rb'printf "\x1B[1F\x1B[2K"'

DEFAULT_MODE = 0o755

# Whitespace is [\t\n\f\r ] only (no \x0b); ``\Z`` is end of content, not end of line
SHEBANG_PATTERN = re.compile(rb"#![\t\n\f\r ]*(/.*?)(?:[\t\n\f\r ]|\Z)")

MISSING_SHEBANG_MESSAGE = "The script must have a shebang as the first line."


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------

class BuildError(Exception):
    """A build step failed.

    *stage* names the step: ``read``, ``create``, ``header``, ``detect``,
    ``shebang``, ``printf``, ``body`` or ``chmod``.
    """

    def __init__(self, stage: str, path: Path, reason: str) -> None:
        super().__init__(reason)
        self.stage  = stage
        self.path   = path
        self.reason = reason


class MissingShebangError(BuildError, ValueError):
    """The input does not start with ``#!/...``."""

    def __init__(self, path: Path) -> None:
        super().__init__("detect", path, MISSING_SHEBANG_MESSAGE)


# ---------------------------------------------------------------------------
# Data containers
# ---------------------------------------------------------------------------

@dataclass(slots=True, frozen=True)
class ScriptParts:
    """A script split at the end of its shebang."""
    shebang:     bytes
    interpreter: bytes
    body:        bytes

    def join(self) -> bytes:
        """Reassemble the original script."""
        return self.shebang + self.body


@dataclass
class BuildConfig:
    """Configuration for a single build run."""
    input_script: Path
    output_to:    Path
    mode:         int = DEFAULT_MODE

    def __post_init__(self) -> None:
        self.input_script = Path(self.input_script)
        self.output_to    = Path(self.output_to)


@dataclass(slots=True)
class BuildResult:
    output:      Path
    interpreter: bytes
    size:        int


# ---------------------------------------------------------------------------
# Pure helpers
# ---------------------------------------------------------------------------

def find_shebang(content: bytes) -> ScriptParts | None:
    """
    Match the shebang at offset 0 of *content*.

    The split point is the end of the interpreter path.  The whitespace
    that terminated the match stays with the body, so the newline ending
    the first line survives into the output.
    """
    match = SHEBANG_PATTERN.match(content)
    if match is None:
        return None
    # Split at end(1), not end(): the boundary byte the match consumed
    # belongs to the body.
    end = match.end(1)
    return ScriptParts(
        shebang=content[:end],
        interpreter=match.group(1),
        body=content[end:],
    )


def split_shebang(content: bytes, path: Path | str = "<bytes>") -> ScriptParts:
    """Like :func:`find_shebang` but raise :class:`MissingShebangError` on no match."""
    parts = find_shebang(content)
    if parts is None:
        raise MissingShebangError(Path(path))
    return parts


def _sections(parts: ScriptParts) -> tuple[tuple[str, bytes], ...]:
    """The (stage, bytes) pairs written after the header, in file order."""
    return (
        ("shebang", parts.shebang),
        ("printf",  b"\n" + PRINTF_COMMAND),
        ("body",    parts.body),
    )


def render(parts: ScriptParts) -> bytes:
    """Return the complete disguised file contents for *parts*."""
    return HEADER + b"".join(data for _, data in _sections(parts))


def read_script(path: Path | str) -> bytes:
    path = Path(path)
    try:
        content = path.read_bytes()
    except OSError as exc:
        raise BuildError("read", path, str(exc)) from exc
    logger.debug("Read %d bytes from %s", len(content), path)
    return content


# ---------------------------------------------------------------------------
# File writer
# ---------------------------------------------------------------------------

def _write(fh, data: bytes, stage: str, path: Path) -> int:
    view = memoryview(data)
    try:
        # Raw writes may be short
        while view:
            view = view[fh.write(view):]
    except OSError as exc:
        raise BuildError(stage, path, str(exc)) from exc
    logger.debug("%-7s %d bytes → %s", stage, len(data), path)
    return len(data)


def build(config: BuildConfig) -> BuildResult:
    """
    Write the disguised executable described by *config*.

    Steps run in a fixed order and each failure is final.  The header is
    written before the shebang is checked, so a script without one leaves
    an 8-byte file behind.  Nothing is rolled back.

    Raises
    ------
    BuildError
        Any read, create, write or chmod failure.
    MissingShebangError
        The input does not begin with a shebang.
    """
    source = config.input_script
    target = config.output_to

    content = read_script(source)

    try:
        # Unbuffered: close() has nothing left to flush
        fh = target.open("wb", buffering=0)
    except OSError as exc:
        raise BuildError("create", target, str(exc)) from exc

    size = 0
    with fh:
        size += _write(fh, HEADER, "header", target)

        try:
            parts = split_shebang(content, source)
        except MissingShebangError:
            logger.debug("No shebang in %s; %d bytes left on disk", source, size)
            raise

        for stage, data in _sections(parts):
            size += _write(fh, data, stage, target)

    try:
        target.chmod(config.mode)
    except OSError as exc:
        raise BuildError("chmod", target, str(exc)) from exc

    logger.info(
        "Wrapped %s (%s) → %s, %d bytes, mode %o",
        source, parts.interpreter.decode("utf-8", errors="replace"), target, size, config.mode,
    )
    return BuildResult(output=target, interpreter=parts.interpreter, size=size)
