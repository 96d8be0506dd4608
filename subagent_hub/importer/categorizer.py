import re

from subagent_hub.importer.schemas import ImportOptions, RepositoryContext

CATEGORY_KEYWORDS: dict[str, tuple[str, ...]] = {
    "web-development": (
        "react", "vue", "angular", "svelte", "nextjs", "frontend", "backend", "fullstack",
        "web", "css", "html", "django", "flask", "fastapi", "express",
    ),
    "ai-ml": (
        "ai", "ml", "llm", "machine-learning", "pytorch", "tensorflow", "nlp", "prompt",
        "model", "inference", "embedding",
    ),
    "data-science": (
        "data", "analytics", "pandas", "numpy", "jupyter", "etl", "visualization", "statistics",
    ),
    "api-tools": ("api", "rest", "graphql", "openapi", "swagger", "webhook", "endpoint"),
    "testing": ("test", "testing", "qa", "e2e", "pytest", "jest", "playwright", "coverage"),
    "devops": (
        "devops", "docker", "kubernetes", "terraform", "deploy", "deployment", "ci", "cd",
        "infrastructure", "monitoring", "aws", "gcp", "azure",
    ),
    "database": ("database", "sql", "postgres", "postgresql", "mysql", "mongodb", "redis"),
    "security": (
        "security", "audit", "vulnerability", "auth", "oauth", "pentest", "compliance",
    ),
    "documentation": ("docs", "documentation", "writing", "technical-writing", "readme"),
    "code-review": ("review", "reviewer", "lint", "refactor", "quality"),
    "mobile-development": ("mobile", "ios", "android", "flutter", "swift", "kotlin"),
    "productivity": ("productivity", "workflow", "automation", "task", "planner"),
}

_TOKEN_SPLIT = re.compile(r"[^a-z0-9]+")


def resolve_category(
    file_path: str,
    name: str,
    description: str,
    options: ImportOptions,
    context: RepositoryContext,
) -> str | None:
    """Pick a category id for a draft.

    Order: caller mapping by repository topic, by path segment, by repository
    language; then the caller's default; then the keyword table.
    """
    mapping = {key.lower(): value for key, value in options.category_mapping.items()}

    if mapping:
        for topic in context.topics:
            if topic.lower() in mapping:
                return mapping[topic.lower()]

        for segment in file_path.lower().split("/")[:-1]:
            if segment in mapping:
                return mapping[segment]

        language = context.repository.language if context.repository else None
        if language and language.lower() in mapping:
            return mapping[language.lower()]

    if options.default_category:
        return options.default_category

    return auto_categorize(name, description, context.topics)


def auto_categorize(name: str, description: str, topics: list[str]) -> str | None:
    """Score categories by keyword hits; name hits weigh double."""
    name_tokens = set(_TOKEN_SPLIT.split(name.lower()))
    text_tokens = set(_TOKEN_SPLIT.split(description.lower()))
    for topic in topics:
        text_tokens.update(_TOKEN_SPLIT.split(topic.lower()))
        text_tokens.add(topic.lower())

    best: str | None = None
    best_score = 0
    for category, keywords in CATEGORY_KEYWORDS.items():
        score = sum(2 for kw in keywords if kw in name_tokens)
        score += sum(1 for kw in keywords if kw in text_tokens)
        if score > best_score:
            best, best_score = category, score

    return best
