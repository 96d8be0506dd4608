import re

import structlog

from subagent_hub.agents.models import AgentStatus
from subagent_hub.importer.categorizer import resolve_category
from subagent_hub.importer.frontmatter import parse_metadata, split_frontmatter
from subagent_hub.importer.schemas import (
    CandidateFile,
    ImportOptions,
    ParsedAgentDraft,
    RepositoryContext,
)
from subagent_hub.importer.validator import FormatValidator

logger = structlog.get_logger()

MAX_TAGS = 10
MAX_EXCERPT_LENGTH = 500

_SLUG_INVALID = re.compile(r"[^a-z0-9\s-]")
_SLUG_SPACES = re.compile(r"[\s-]+")
_TAG_INVALID = re.compile(r"[^a-z0-9-]")
_EMPHASIS = re.compile(r"^\*\*?|\*\*?$")


def slugify(value: str) -> str:
    slug = _SLUG_INVALID.sub("", value.strip().lower())
    return _SLUG_SPACES.sub("-", slug).strip("-")


class AgentExtractor:
    def __init__(self, validator: FormatValidator | None = None) -> None:
        self._validator = validator or FormatValidator()

    def extract(
        self,
        candidate: CandidateFile,
        options: ImportOptions | None = None,
        context: RepositoryContext | None = None,
    ) -> ParsedAgentDraft | None:
        """Build a draft from a candidate file, or None if it is not a valid sub-agent."""
        if not self._validator.validate(candidate).valid:
            return None

        options = options or ImportOptions()
        context = context or RepositoryContext()

        block, body = split_frontmatter(candidate.content)
        metadata = parse_metadata(block)

        name = slugify(str(metadata["name"]))
        description = str(metadata["description"]).strip()
        content = body.strip()

        short_description = description
        if not short_description and options.readme_as_description:
            short_description = first_paragraph(content)

        version = None
        if options.version_from_releases and context.latest_release:
            version = context.latest_release.removeprefix("v")

        draft = ParsedAgentDraft(
            name=name,
            description=description,
            content=content,
            file_path=candidate.path,
            tools=split_tools(metadata.get("tools")),
            tags=topic_tags(context.topics) if options.tags_from_topics else [],
            short_description=short_description[:MAX_EXCERPT_LENGTH],
            category_id=resolve_category(candidate.path, name, description, options, context),
            version=version,
            status=AgentStatus.published if options.auto_publish else AgentStatus.draft,
            repository=context.repository,
        )
        logger.debug("agent_draft_extracted", path=candidate.path, name=name)
        return draft


def split_tools(value: object) -> list[str]:
    """Turn a comma separated string or a list into ordered, distinct tool names."""
    if value is None:
        return []
    raw = value if isinstance(value, list) else str(value).split(",")

    tools: list[str] = []
    for item in raw:
        token = str(item).strip()
        if token and token not in tools:
            tools.append(token)
    return tools


def topic_tags(topics: list[str]) -> list[str]:
    tags: list[str] = []
    for topic in topics:
        tag = _TAG_INVALID.sub("", topic.lower())
        if len(tag) > 1 and tag not in tags:
            tags.append(tag)
    return tags[:MAX_TAGS]


def first_paragraph(content: str) -> str:
    """First substantial line of prose, skipping headings and images, without emphasis."""
    for line in content.splitlines():
        text = line.strip()
        if text and not text.startswith(("#", "!")) and len(text) > 20:
            return _EMPHASIS.sub("", text).strip()
    return ""
