"""Tests for the feedback-dsl command line."""

import json

import pytest

from feedback_dsl.cli import EXIT_INVALID, EXIT_LOAD_ERROR, EXIT_OK, build_parser, main


@pytest.fixture
def files(tmp_path, trials, survey):
    """Template, single result and result collection on disk."""
    result = {"componentResults": [{"parsedData": trials}, {"parsedData": survey}]}
    other = {"componentResults": [{"parsedData": [{"rt": 400}, {"rt": 500}]}]}

    paths = {
        "template": tmp_path / "feedback.md",
        "bad_template": tmp_path / "bad.md",
        "result": tmp_path / "result.json",
        "all": tmp_path / "all.json",
        "broken": tmp_path / "broken.json",
    }
    paths["template"].write_text("Hi {{ var:name }}: {{ stat:rt.avg }} / {{ stat:rt.avg:across }}")
    paths["bad_template"].write_text("{{ var:missing }}")
    paths["result"].write_text(json.dumps(result))
    paths["all"].write_text(json.dumps([result, other]))
    paths["broken"].write_text("{oops")
    return {name: str(path) for name, path in paths.items()}


class TestRender:
    def test_render(self, files, capsys):
        assert main(["render", files["template"], files["result"]]) == EXIT_OK
        assert capsys.readouterr().out == "Hi Ada: 200 / 200\n"

    def test_render_across(self, files, capsys):
        assert main(["render", files["template"], files["result"], "--all", files["all"]]) == EXIT_OK
        assert capsys.readouterr().out == "Hi Ada: 200 / 300\n"

    def test_missing_result_file(self, files, tmp_path, capsys):
        code = main(["render", files["template"], str(tmp_path / "absent.json")])
        assert code == EXIT_LOAD_ERROR
        assert "Error" in capsys.readouterr().err

    def test_malformed_json(self, files):
        assert main(["render", files["template"], files["broken"]]) == EXIT_LOAD_ERROR

    def test_missing_template(self, files, tmp_path):
        assert main(["render", str(tmp_path / "absent.md"), files["result"]]) == EXIT_LOAD_ERROR


class TestValidate:
    def test_valid(self, files, capsys):
        assert main(["validate", files["template"], files["result"]]) == EXIT_OK
        assert "valid" in capsys.readouterr().out

    def test_invalid_json_output(self, files, capsys):
        assert main(["validate", files["bad_template"], files["result"], "--json"]) == EXIT_INVALID
        payload = json.loads(capsys.readouterr().out)
        assert payload["isValid"] is False
        assert payload["errors"][0]["type"] == "variable"

    def test_invalid_table_output(self, files, capsys):
        assert main(["validate", files["bad_template"], files["result"]]) == EXIT_INVALID
        assert "variable" in capsys.readouterr().out


class TestVariables:
    def test_json_catalogue(self, files, capsys):
        assert main(["variables", files["result"], "--json"]) == EXIT_OK
        payload = json.loads(capsys.readouterr().out)
        names = [v["name"] for v in payload["variables"]]
        assert "rt" in names
        assert "trial_type" not in names
        assert {"name": "age", "type": "number"} in payload["fields"]

    def test_table(self, files, capsys):
        assert main(["variables", files["result"]]) == EXIT_OK
        assert "stimulus" in capsys.readouterr().out


class TestParser:
    def test_command_required(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args([])

    def test_log_level_option(self, files):
        args = build_parser().parse_args(["--log-level", "DEBUG", "variables", files["result"]])
        assert args.log_level == "DEBUG"
        assert args.command == "variables"
