"""Tests for the feedback template renderer."""

import pytest

from feedback_dsl.models import RenderContext
from feedback_dsl.renderer import FeedbackRenderer, render_template


# ============================================================
# PASS-THROUGH
# ============================================================


class TestPassThrough:
    @pytest.mark.parametrize("template", [
        "",
        "# Thank you!\n\nYour results are below.",
        "Braces { like } these {and} {{ this }} stay",
        "A var: and a stat: mention",
    ])
    def test_placeholder_free_templates_unchanged(self, result, template):
        assert render_template(template, result) == template


# ============================================================
# VARIABLES
# ============================================================


class TestVariables:
    def test_modifiers(self, result):
        assert render_template("{{ var:rt:first }}", result) == "100"
        assert render_template("{{ var:rt:last }}", result) == "300"
        assert render_template("{{ var:rt:all }}", result) == "100, 200, 300"
        assert render_template("{{ var:rt }}", result) == "100, 200, 300"

    def test_whitespace_insignificant(self, result):
        assert render_template("{{var:rt:first}}", result) == "100"
        assert render_template("{{   var:rt:last   }}", result) == "300"

    def test_response_values(self, result):
        assert render_template("Hi {{ var:name }}, age {{ var:age }}", result) == "Hi Ada, age 30"

    def test_booleans_and_objects(self, result):
        assert render_template("{{ var:consent }}", result) == "true"
        assert render_template("{{ var:response:first }}", result) == '{"Q1":"yes"}'

    def test_unknown_variable_is_empty(self, result):
        assert render_template("[{{ var:missing }}]", result) == "[]"

    def test_unknown_modifier_renders_all(self, result):
        assert render_template("{{ var:rt:middle }}", result) == "100, 200, 300"

    def test_where_filter(self, result):
        assert render_template("{{ var:rt | where: correct == true }}", result) == "100"
        assert render_template("{{ var:rt:last | where: rt < 300 }}", result) == "200"

    def test_where_membership(self, result):
        template = '{{ var:stimulus | where: stimulus in ["red", "blue"] }}'
        assert render_template(template, result) == "red, blue"

    def test_where_matching_nothing(self, result):
        assert render_template("{{ var:rt | where: rt > 1000 }}", result) == ""

    def test_where_drops_nulls(self, make_result):
        result = make_result([{"x": None, "ok": True}, {"x": 2, "ok": True}])
        assert render_template("{{ var:x | where: ok == true }}", result) == "2"

    def test_substituted_values_are_not_rescanned(self, make_result):
        result = make_result({"comment": "{{ var:secret }}", "secret": "hidden"})
        assert render_template("{{ var:comment }}", result) == "{{ var:secret }}"


# ============================================================
# STATISTICS
# ============================================================


class TestStatistics:
    def test_metrics(self, result):
        template = "{{ stat:rt.avg }}|{{ stat:rt.median }}|{{ stat:rt.sd }}|{{ stat:rt.count }}"
        assert render_template(template, result) == "200|200|81.65|3"

    def test_filtered(self, result):
        assert render_template("{{ stat:rt.avg | where: correct == true }}", result) == "100"

    def test_across_uses_collection(self, result, other_result):
        rendered = render_template("{{ stat:rt.avg:across }}", result, [result, other_result])
        assert rendered == "300"

    def test_across_empty_collection(self, result):
        assert render_template("{{ stat:rt.count:across }}", result, []) == "0"
        assert render_template("{{ stat:rt.avg:across }}", result, []) == ""

    def test_within_ignores_collection(self, result, other_result):
        rendered = render_template("{{ stat:rt.avg:within }}", result, [result, other_result])
        assert rendered == "200"

    def test_absent_scope_is_within(self, result, other_result):
        rendered = render_template("{{ stat:rt.avg }}", result, [result, other_result])
        assert rendered == "200"

    def test_unknown_metric_or_scope_is_empty(self, result):
        assert render_template("{{ stat:rt.mean }}", result) == ""
        assert render_template("{{ stat:rt.avg:global }}", result) == ""

    def test_unknown_variable_is_empty(self, result):
        assert render_template("{{ stat:nope.avg }}", result) == ""
        assert render_template("{{ stat:nope.count }}", result) == "0"

    def test_dotted_variable_name(self, make_result):
        result = make_result([{"score.raw": 4}, {"score.raw": 6}])
        assert render_template("{{ stat:score.raw.avg }}", result) == "5"


# ============================================================
# CONDITIONALS
# ============================================================


class TestConditionals:
    def test_without_else(self, result):
        assert render_template("{{#if var:rt:first < 150}}Fast!{{/if}}", result) == "Fast!"
        assert render_template("{{#if var:rt:first > 150}}Slow{{/if}}", result) == ""

    def test_with_else(self, result):
        template = "{{#if var:consent == true}}Thanks{{else}}No data{{/if}}"
        assert render_template(template, result) == "Thanks"
        template = "{{#if var:consent == false}}Thanks{{else}}No data{{/if}}"
        assert render_template(template, result) == "No data"

    def test_alternative_tags(self, result):
        template = "{{#if var:age > 40}}old{{/else}}young{{if}}"
        assert render_template(template, result) == "young"

    def test_blocks_do_not_cross(self, result):
        template = (
            "{{#if var:rt > 50}}A{{/if}} and "
            "{{#if var:rt > 500}}B{{else}}C{{/if}}"
        )
        assert render_template(template, result) == "A and C"

    def test_placeholders_inside_branch(self, result):
        template = "{{#if var:name == 'Ada'}}Hello {{ var:name }}, mean {{ stat:rt.avg }}ms{{/if}}"
        assert render_template(template, result) == "Hello Ada, mean 200ms"

    def test_invalid_condition_takes_else_branch(self, result):
        assert render_template("{{#if var:rt >}}yes{{else}}no{{/if}}", result) == "no"
        assert render_template("{{#if var:rt; x}}yes{{/if}}", result) == ""

    def test_multiline_branch(self, result):
        template = "{{#if var:consent}}\nline 1\nline 2\n{{/if}}"
        assert render_template(template, result) == "\nline 1\nline 2\n"

    def test_unsafe_answer_takes_else_branch(self, make_result):
        result = make_result({"answer": "Why?"})
        assert render_template("{{#if var:answer}}yes{{else}}no{{/if}}", result) == "no"

    def test_quoted_answer_takes_else_branch(self, make_result):
        result = make_result({"answer": 'say "hi"'})
        template = "{{#if var:answer != null}}yes{{else}}no{{/if}}"
        assert render_template(template, result) == "no"

    def test_unsafe_answer_still_renders_as_placeholder(self, make_result):
        result = make_result({"answer": "Why?"})
        template = "{{#if var:answer}}yes{{else}}You asked: {{ var:answer }}{{/if}}"
        assert render_template(template, result) == "You asked: Why?"


# ============================================================
# RENDERER CLASS
# ============================================================


class TestFeedbackRenderer:
    def test_render_with_context(self, result, other_result):
        renderer = FeedbackRenderer()
        context = RenderContext(enriched_result=result, all_results=[result, other_result])
        assert renderer.render("{{ stat:rt.count:across }}", context) == "5"

    def test_document(self, result):
        template = (
            "# Your results\n\n"
            "You answered {{ stat:correct.count | where: correct == true }} trial correctly.\n"
            "{{#if var:rt:first < 150}}Your first response was fast.{{else}}Take your time.{{/if}}\n"
        )
        assert render_template(template, result) == (
            "# Your results\n\n"
            "You answered 1 trial correctly.\n"
            "Your first response was fast.\n"
        )
