"""Sub-agent definition validation.

A sub-agent definition is a markdown file whose ``---`` delimited metadata
block declares at least a ``name`` and a ``description``, followed by a
system prompt body of meaningful length.
"""

from __future__ import annotations

import re

from subagent_hub.importer.frontmatter import FrontmatterError, parse_metadata, split_frontmatter
from subagent_hub.importer.schemas import CandidateFile, ValidationOutcome

NAME_PATTERN = re.compile(r"^[a-z0-9]+(?:-[a-z0-9]+)*$")
MIN_BODY_LENGTH = 50

EXCLUDED_FILENAMES = frozenset(
    name.lower()
    for name in (
        "README.md",
        "CHANGELOG.md",
        "CONTRIBUTING.md",
        "LICENSE.md",
        "SECURITY.md",
        "CODE_OF_CONDUCT.md",
        "SUPPORT.md",
        "AUTHORS.md",
        "NOTICE.md",
        "CREDITS.md",
        "ACKNOWLEDGMENTS.md",
        "CLAUDE.md",
    )
)


def is_excluded_filename(filename: str) -> bool:
    return filename.lower() in EXCLUDED_FILENAMES


class FormatValidator:
    """Checks candidate files against the sub-agent definition format."""

    def validate(self, candidate: CandidateFile) -> ValidationOutcome:
        """Return every rule the candidate breaks; an empty list means valid."""
        reasons: list[str] = []

        if is_excluded_filename(candidate.filename):
            reasons.append(f"File name '{candidate.filename}' is reserved for documentation.")

        try:
            block, body = split_frontmatter(candidate.content)
        except FrontmatterError as exc:
            reasons.append(f"Invalid document structure: {exc}.")
            return ValidationOutcome(valid=False, reasons=reasons)

        try:
            metadata = parse_metadata(block)
        except FrontmatterError as exc:
            reasons.append(f"Invalid metadata: {exc}.")
            metadata = None

        if metadata is not None:
            reasons.extend(self._check_metadata(metadata))

        body_length = len(body.strip())
        if body_length < MIN_BODY_LENGTH:
            reasons.append(
                f"System prompt body must be at least {MIN_BODY_LENGTH} characters "
                f"({body_length} found)."
            )

        return ValidationOutcome(valid=not reasons, reasons=reasons)

    def _check_metadata(self, metadata: dict) -> list[str]:
        errors: list[str] = []

        name = _as_text(metadata.get("name"))
        if not name:
            errors.append("Metadata field 'name' is required.")
        elif not NAME_PATTERN.match(name):
            errors.append(
                f"Metadata field 'name' must be lowercase letters, digits and hyphens: '{name}'."
            )

        if not _as_text(metadata.get("description")):
            errors.append("Metadata field 'description' is required.")

        return errors


def _as_text(value: object) -> str:
    if value is None or isinstance(value, (list, dict)):
        return ""
    return str(value).strip()
