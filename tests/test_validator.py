from subagent_hub.importer.parser import AgentExtractor
from subagent_hub.importer.schemas import CandidateFile
from subagent_hub.importer.validator import FormatValidator, is_excluded_filename
from tests.fakes import agent_markdown


def candidate(content: str, path: str = "agents/code-reviewer.md") -> CandidateFile:
    return CandidateFile(path=path, content=content, depth=path.count("/"))


class TestFormatValidator:
    def setup_method(self):
        self.validator = FormatValidator()

    def test_well_formed_definition_is_valid(self):
        outcome = self.validator.validate(candidate(agent_markdown()))
        assert outcome.valid
        assert outcome.reasons == []

    def test_missing_name_is_invalid_and_not_extracted(self):
        file = candidate(agent_markdown(name=None))
        outcome = self.validator.validate(file)
        assert not outcome.valid
        assert any("'name' is required" in reason for reason in outcome.reasons)
        assert AgentExtractor().extract(file) is None

    def test_missing_description_is_invalid_and_not_extracted(self):
        file = candidate(agent_markdown(description=None))
        outcome = self.validator.validate(file)
        assert not outcome.valid
        assert any("'description' is required" in reason for reason in outcome.reasons)
        assert AgentExtractor().extract(file) is None

    def test_short_body_fails_even_with_good_metadata(self):
        outcome = self.validator.validate(candidate(agent_markdown(body="Too short.")))
        assert not outcome.valid
        assert any("at least 50 characters" in reason for reason in outcome.reasons)

    def test_body_length_is_measured_after_trimming(self):
        body = "   " + "x" * 49 + "\n\n\n"
        assert not self.validator.validate(candidate(agent_markdown(body=body))).valid

        body = "x" * 50
        assert self.validator.validate(candidate(agent_markdown(body=body))).valid

    def test_name_must_be_lowercase_hyphen_token(self):
        for bad in ("Code-Reviewer", "-reviewer", "reviewer-", "code_reviewer", "code--reviewer"):
            outcome = self.validator.validate(candidate(agent_markdown(name=bad)))
            assert not outcome.valid, bad
            assert any("lowercase" in reason for reason in outcome.reasons)

    def test_all_failing_rules_are_reported_together(self):
        content = agent_markdown(name=None, description=None, body="short")
        outcome = self.validator.validate(candidate(content))
        assert len(outcome.reasons) == 3

    def test_missing_metadata_block_is_invalid(self):
        outcome = self.validator.validate(candidate("# Code reviewer\n\n" + "x" * 80))
        assert not outcome.valid
        assert "Invalid document structure" in outcome.reasons[0]

    def test_unclosed_metadata_block_is_invalid(self):
        content = "---\nname: code-reviewer\ndescription: Reviews code\n" + "x" * 80
        assert not self.validator.validate(candidate(content)).valid

    def test_nested_metadata_is_invalid(self):
        content = "---\nname: reviewer\ndescription: d\nextra:\n  key: value\n---\n" + "x" * 80
        outcome = self.validator.validate(candidate(content))
        assert not outcome.valid
        assert any("flat" in reason for reason in outcome.reasons)

    def test_claude_md_is_rejected_regardless_of_content(self):
        outcome = self.validator.validate(candidate(agent_markdown(), path="CLAUDE.md"))
        assert not outcome.valid
        assert any("reserved" in reason for reason in outcome.reasons)


def test_excluded_filenames_are_case_insensitive():
    assert is_excluded_filename("CLAUDE.md")
    assert is_excluded_filename("readme.md")
    assert is_excluded_filename("Changelog.MD")
    assert not is_excluded_filename("code-reviewer.md")
