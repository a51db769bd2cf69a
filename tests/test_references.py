"""Tests for template reference extraction and coverage."""

from feedback_dsl.references import (
    CoverageStatus,
    build_required_keys_hash,
    check_template_coverage,
    extract_required_variable_names,
)


class TestExtractRequiredVariableNames:
    def test_all_reference_kinds_in_order(self):
        template = (
            "{{ var:rt }} "
            "{{ stat:acc.avg | where: block == 2 and cond in ['a', 'b'] }} "
            "{{#if var:score > 3}}well done{{/if}}"
        )
        assert extract_required_variable_names(template) == ["rt", "acc", "block", "cond", "score"]

    def test_duplicates_collapsed(self):
        template = "{{ var:rt:first }} {{ var:rt:last }} {{ stat:rt.avg | where: rt > 1 }}"
        assert extract_required_variable_names(template) == ["rt"]

    def test_dotted_names(self):
        template = "{{ stat:score.raw.sd }} {{ var:rt | where: response.Q1 == 'yes' }}"
        assert extract_required_variable_names(template) == ["score.raw", "rt", "response.Q1"]

    def test_literal_values_are_not_fields(self):
        template = "{{ var:rt | where: stimulus == 'red' and correct == true }}"
        assert extract_required_variable_names(template) == ["rt", "stimulus", "correct"]

    def test_no_references(self):
        assert extract_required_variable_names("Thanks!") == []
        assert extract_required_variable_names("") == []


class TestRequiredKeysHash:
    def test_sorted_and_joined(self):
        assert build_required_keys_hash(["rt", "age", "correct"]) == "age|correct|rt"

    def test_order_independent(self):
        assert build_required_keys_hash(["b", "a"]) == build_required_keys_hash(["a", "b"])

    def test_empty(self):
        assert build_required_keys_hash([]) == "none"


class TestTemplateCoverage:
    def test_exact_match(self):
        report = check_template_coverage("{{ var:rt }} {{ var:age }}", ["age", "rt"])
        assert report.status == CoverageStatus.VALID
        assert report.missing_keys == []
        assert report.extra_keys == []

    def test_missing_and_extra(self):
        report = check_template_coverage("  {{ var:rt }} {{ var:correct }}  ", ["rt", "age", "age"])
        assert report.status == CoverageStatus.INVALID
        assert report.missing_keys == ["correct"]
        assert report.extra_keys == ["age"]

    def test_to_dict(self):
        report = check_template_coverage("{{ var:rt }}", [])
        assert report.to_dict() == {
            "status": "INVALID",
            "missingKeys": ["rt"],
            "extraKeys": [],
        }
