"""
Track State Chunk Helpers — FX chain extraction and injection

A track state chunk is REAPER's text serialization of a track:

    <TRACK
      NAME "Synth"
      <FXCHAIN
        BYPASS 0 0 0
        <VST "VST: ReaInsert (Cockos)" reainsert.dll 0 "" ...
          ...
        >
        FXID {0F6E...}
        <PARMENV 3:0 0 1 0.5
          ...
        >
        WAK 0 0
      >
      <ITEM
        ...
      >
    >

Blocks open with a line starting with "<" and close with a line holding a
single ">". Base64 plugin state never starts with "<", so line-level nesting
is enough to find block boundaries.
"""

import re
import uuid
from typing import List, Optional, Tuple

FX_CHAIN_TAG = "FXCHAIN"

# Block tags that hold one plugin instance inside an FX chain
FX_BLOCK_TAGS = {"VST", "AU", "JS", "DX", "LV2", "CLAP", "VIDEO_EFFECT", "CONTAINER"}

FXID_RE = re.compile(r'^(\s*FXID\s+)\{[0-9A-Fa-f-]+\}', re.MULTILINE)


class ChunkError(ValueError):
    """Raised when a chunk has unbalanced blocks or no track block."""


def _tag(line: str) -> Optional[str]:
    """Return the block tag of an opening line, or None."""
    stripped = line.strip()
    if not stripped.startswith("<"):
        return None
    return stripped[1:].split(None, 1)[0] if len(stripped) > 1 else ""


def _is_close(line: str) -> bool:
    return line.strip() == ">"


def _block_end(lines: List[str], start: int) -> int:
    """Index of the ">" line closing the block opened at ``start``."""
    depth = 0
    for i in range(start, len(lines)):
        if _tag(lines[i]) is not None:
            depth += 1
        elif _is_close(lines[i]):
            depth -= 1
            if depth == 0:
                return i
    raise ChunkError(f"Unterminated block at line {start + 1}: {lines[start].strip()}")


def _find_child(lines: List[str], tag: str) -> Optional[Tuple[int, int]]:
    """Locate a direct child block of the outer block by its tag."""
    depth = 0
    for i, line in enumerate(lines):
        line_tag = _tag(line)
        if line_tag is not None:
            depth += 1
            if depth == 2 and line_tag == tag:
                return i, _block_end(lines, i)
        elif _is_close(line):
            depth -= 1
    return None


def _split(chunk: str) -> Tuple[List[str], bool]:
    lines = chunk.splitlines()
    if not lines or _tag(lines[0]) is None:
        raise ChunkError("Chunk does not start with a block")
    return lines, chunk.endswith("\n")


def get_fx_chain(track_chunk: str) -> Optional[str]:
    """Extract the <FXCHAIN ...> block of a track chunk.

    Returns:
        The block text (opening through closing line), or None if the track
        has no FX chain.
    """
    lines, _ = _split(track_chunk)
    found = _find_child(lines, FX_CHAIN_TAG)
    if found is None:
        return None
    start, end = found
    return "\n".join(lines[start:end + 1])


def set_fx_chain(track_chunk: str, fx_chain: str) -> str:
    """Put ``fx_chain`` into a track chunk.

    An existing FX chain is replaced. Otherwise the chain goes before the
    track's first item, or before the track's closing line.
    """
    lines, trailing_newline = _split(track_chunk)
    chain_lines = fx_chain.splitlines()
    if not chain_lines or _tag(chain_lines[0]) != FX_CHAIN_TAG:
        raise ChunkError("FX chain must start with <FXCHAIN")
    _block_end(chain_lines, 0)

    found = _find_child(lines, FX_CHAIN_TAG)
    if found is not None:
        start, end = found
        lines[start:end + 1] = chain_lines
    else:
        item = _find_child(lines, "ITEM")
        if item is not None:
            insert_at = item[0]
        else:
            insert_at = _block_end(lines, 0)
        lines[insert_at:insert_at] = chain_lines

    result = "\n".join(lines)
    return result + "\n" if trailing_newline else result


def renew_fx_guids(fx_chain: str) -> str:
    """Give every FX in a chain a fresh FXID so copies don't clash."""
    return FXID_RE.sub(lambda m: m.group(1) + "{" + str(uuid.uuid4()).upper() + "}", fx_chain)


def count_fx(fx_chain: str) -> int:
    """Count plugin instances at the top level of an FX chain."""
    lines = fx_chain.splitlines()
    depth = 0
    count = 0
    for line in lines:
        line_tag = _tag(line)
        if line_tag is not None:
            depth += 1
            if depth == 2 and line_tag in FX_BLOCK_TAGS:
                count += 1
        elif _is_close(line):
            depth -= 1
    return count
