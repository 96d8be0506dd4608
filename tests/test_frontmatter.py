import pytest

from subagent_hub.importer.frontmatter import FrontmatterError, parse_metadata, split_frontmatter


class TestSplitFrontmatter:
    def test_splits_block_and_body(self):
        block, body = split_frontmatter("---\nname: a\n---\nbody text\n")
        assert block == "name: a"
        assert body.strip() == "body text"

    def test_tolerates_bom_and_leading_blank_lines(self):
        block, _ = split_frontmatter("\ufeff\n\n---\nname: a\n---\nbody")
        assert block == "name: a"

    def test_opening_delimiter_must_come_first(self):
        with pytest.raises(FrontmatterError, match="opening"):
            split_frontmatter("intro\n---\nname: a\n---\nbody")

    def test_closing_delimiter_required(self):
        with pytest.raises(FrontmatterError, match="closing"):
            split_frontmatter("---\nname: a\nbody")

    def test_body_may_contain_horizontal_rules(self):
        _, body = split_frontmatter("---\nname: a\n---\nfirst\n---\nsecond\n")
        assert "second" in body


class TestParseMetadata:
    def test_parses_yaml_mapping(self):
        metadata = parse_metadata("name: reviewer\ntools: [Read, Grep]")
        assert metadata == {"name": "reviewer", "tools": ["Read", "Grep"]}

    def test_falls_back_to_line_parser_for_bare_colons(self):
        metadata = parse_metadata("name: reviewer\ndescription: Use when: reviewing code")
        assert metadata["description"] == "Use when: reviewing code"

    def test_empty_block_is_empty_mapping(self):
        assert parse_metadata("") == {}

    def test_scalar_block_is_rejected(self):
        with pytest.raises(FrontmatterError, match="mapping"):
            parse_metadata("just a string")

    def test_nested_values_are_rejected(self):
        with pytest.raises(FrontmatterError, match="flat"):
            parse_metadata("name: a\nextra:\n  nested: true")
