"""Split sub-agent markdown into its metadata block and body."""

from __future__ import annotations

import re
from typing import Any

import yaml

_DELIMITER = re.compile(r"^---[ \t]*$", re.MULTILINE)
_SIMPLE_LINE = re.compile(r"^([A-Za-z_][\w-]*)\s*:\s*(.*)$")


class FrontmatterError(ValueError):
    pass


def split_frontmatter(text: str) -> tuple[str, str]:
    """Return ``(metadata_block, body)``.

    The block must open on the first non-blank line with a literal ``---``
    and close with another ``---`` line.

    Raises:
        FrontmatterError: If either delimiter is missing.
    """
    stripped = text.lstrip("\ufeff").lstrip("\r\n")
    opening = _DELIMITER.match(stripped)
    if opening is None:
        raise FrontmatterError("missing opening '---' metadata delimiter")

    closing = _DELIMITER.search(stripped, opening.end())
    if closing is None:
        raise FrontmatterError("missing closing '---' metadata delimiter")

    block = stripped[opening.end() : closing.start()].strip("\r\n")
    body = stripped[closing.end() :]
    return block, body


def parse_metadata(block: str) -> dict[str, Any]:
    """Parse the metadata block as a flat key-value mapping.

    YAML is tried first. Sub-agent descriptions often contain bare colons
    that YAML rejects, so a line-based ``key: value`` reading is the fallback.

    Raises:
        FrontmatterError: If neither reading yields a flat mapping.
    """
    try:
        loaded = yaml.safe_load(block) if block.strip() else {}
    except yaml.YAMLError:
        loaded = _parse_simple(block)
        if not loaded:
            raise FrontmatterError("metadata block is not valid key-value data") from None

    if loaded is None:
        loaded = {}
    if not isinstance(loaded, dict):
        raise FrontmatterError(
            f"metadata block must be a mapping, got {type(loaded).__name__}"
        )

    nested = sorted(str(key) for key, value in loaded.items() if not _is_flat(value))
    if nested:
        raise FrontmatterError(
            f"metadata block must be flat; nested values for: {', '.join(nested)}"
        )

    return {str(key): value for key, value in loaded.items()}


def _is_flat(value: Any) -> bool:
    if isinstance(value, dict):
        return False
    if isinstance(value, list):
        return all(not isinstance(item, (dict, list)) for item in value)
    return True


def _parse_simple(block: str) -> dict[str, Any]:
    result: dict[str, Any] = {}
    for line in block.splitlines():
        stripped = line.strip()
        if not stripped or stripped.startswith("#"):
            continue
        match = _SIMPLE_LINE.match(stripped)
        if match is None:
            continue
        key, value = match.group(1), match.group(2).strip()
        if len(value) >= 2 and value[0] == value[-1] and value[0] in "'\"":
            value = value[1:-1]
        if value.startswith("[") and value.endswith("]"):
            items = value[1:-1].split(",")
            result[key] = [item.strip().strip("'\"") for item in items if item.strip()]
        else:
            result[key] = value
    return result
