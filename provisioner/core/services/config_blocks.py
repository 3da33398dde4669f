"""
Config-block writer — idempotent edits to the shell startup file.

The startup file is the only persisted state the provisioner mutates.
Blocks are identified by a marker line; a block's body runs from the
line after the marker to the next blank line (or end of file).

    ensure_block(block)  →  applied | skipped | conflict

A diverged block is never overwritten unless the operator passes
``replace=True``. Writes are atomic (temp file, then rename).
"""

from __future__ import annotations

import logging
import os
import shutil
import tempfile
from enum import Enum
from pathlib import Path

from provisioner.core.models.config_block import ConfigBlock

logger = logging.getLogger(__name__)


class BlockResult(str, Enum):
    APPLIED = "applied"
    SKIPPED = "skipped"
    CONFLICT = "conflict"


class BlockState(str, Enum):
    ABSENT = "absent"
    IN_SYNC = "in-sync"
    DIVERGED = "diverged"
    DUPLICATED = "duplicated"  # marker appears more than once


# ── Parsing ─────────────────────────────────────────────────────
#
# Only "\n" ends a line. Lines keep their terminators so rewrites
# leave CRLF endings and other control characters as they were.


def _read_text(path: Path) -> str:
    """File contents with line endings untranslated ("" if absent)."""
    if not path.exists():
        return ""
    with open(path, encoding="utf-8", newline="") as f:
        return f.read()


def _split_lines(text: str) -> list[str]:
    """Lines with their terminators; the last may have none."""
    parts = text.split("\n")
    lines = [part + "\n" for part in parts[:-1]]
    if parts[-1]:
        lines.append(parts[-1])
    return lines


def _bare(line: str) -> str:
    """A line without its "\\n" or "\\r\\n" terminator."""
    return line.removesuffix("\n").removesuffix("\r")


def _read_lines(path: Path) -> list[str]:
    return _split_lines(_read_text(path))


def _marker_indexes(lines: list[str], marker: str) -> list[int]:
    return [i for i, line in enumerate(lines) if _bare(line) == marker]


def _body_span(lines: list[str], marker_index: int) -> tuple[int, int]:
    """[start, end) of the body following a marker line."""
    start = marker_index + 1
    end = start
    while end < len(lines) and _bare(lines[end]).strip():
        end += 1
    return start, end


def _state_of(lines: list[str], block: ConfigBlock) -> BlockState:
    indexes = _marker_indexes(lines, block.marker)
    if not indexes:
        return BlockState.ABSENT
    if len(indexes) > 1:
        return BlockState.DUPLICATED
    start, end = _body_span(lines, indexes[0])
    if [_bare(line) for line in lines[start:end]] == block.lines:
        return BlockState.IN_SYNC
    return BlockState.DIVERGED


def inspect_block(block: ConfigBlock) -> BlockState:
    """Read-only check of a block against its target file.

    Raises:
        OSError: If the file exists but cannot be read.
    """
    return _state_of(_read_lines(block.path), block)


# ── Writing ─────────────────────────────────────────────────────


def _atomic_write(path: Path, text: str) -> None:
    """Replace a file's contents via temp file + rename, keeping its mode.

    A symlinked path is resolved first so the link survives and the
    file it points to receives the new contents.
    """
    path = path.resolve()
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    tmp = Path(tmp_name)
    try:
        with os.fdopen(fd, "w", encoding="utf-8", newline="") as f:
            f.write(text)
        if path.exists():
            shutil.copymode(path, tmp)
        os.replace(tmp, path)
    except Exception:
        tmp.unlink(missing_ok=True)
        raise


def ensure_block(block: ConfigBlock, replace: bool = False) -> BlockResult:
    """Make sure a block is present in its target file exactly once.

    Args:
        block: The block to maintain.
        replace: Operator confirmation to rewrite a diverged block body.

    Returns:
        APPLIED if the file was changed, SKIPPED if the block was already
        there verbatim, CONFLICT if it exists with different content (or
        more than once) and was left untouched.
    """
    path = block.path.resolve()
    if not path.exists():
        path.parent.mkdir(parents=True, exist_ok=True)
        path.touch()
        logger.info("Created %s", path)

    text = _read_text(path)
    lines = _split_lines(text)
    state = _state_of(lines, block)

    if state is BlockState.IN_SYNC:
        logger.debug("Block '%s' already present in %s", block.marker, path)
        return BlockResult.SKIPPED

    if state is BlockState.DUPLICATED:
        logger.warning("Block '%s' appears more than once in %s", block.marker, path)
        return BlockResult.CONFLICT

    if state is BlockState.DIVERGED:
        if not replace:
            logger.warning("Block '%s' in %s differs from the desired content", block.marker, path)
            return BlockResult.CONFLICT
        index = _marker_indexes(lines, block.marker)[0]
        eol = "\r\n" if lines[index].endswith("\r\n") else "\n"
        if not lines[index].endswith("\n"):
            lines[index] += eol
        start, end = _body_span(lines, index)
        lines[start:end] = [line + eol for line in block.lines]
        _atomic_write(path, "".join(lines))
        logger.info("Replaced block '%s' in %s", block.marker, path)
        return BlockResult.APPLIED

    # Absent: blank line, marker, content, trailing newline
    prefix = text
    if prefix and not prefix.endswith("\n"):
        prefix += "\n"
    addition = "\n" + block.marker + "\n" + block.content + "\n"
    _atomic_write(path, prefix + addition)
    logger.info("Added block '%s' to %s", block.marker, path)
    return BlockResult.APPLIED


def has_line(path: Path, line: str) -> bool:
    """Whether a file contains a line exactly equal to ``line``."""
    return any(_bare(existing) == line for existing in _read_lines(path))


def replace_line(path: Path, old: str, new: str) -> bool:
    """Rewrite every line exactly equal to ``old`` as ``new``.

    Each rewritten line keeps its original terminator.

    Returns:
        True if at least one line was rewritten.
    """
    lines = _read_lines(path)
    updated = [
        new + line[len(old):] if _bare(line) == old else line
        for line in lines
    ]
    if updated == lines:
        return False
    _atomic_write(path, "".join(updated))
    logger.info("Replaced '%s' with '%s' in %s", old, new, path)
    return True
