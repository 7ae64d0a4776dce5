# tests/unit/cli/test_cli.py
"""Tests for the mapflow CLI commands."""

import json
import logging
from pathlib import Path

import httpx
import pytest
from click.testing import Result
from typer.testing import CliRunner

from mapflow import __version__
from mapflow.cli import app

runner = CliRunner()

VALID_WORKFLOW = """\
form_version_id: fv-42
nodes:
  - id: create_1
    kind: create_or_update
    config:
      target_object: Contact
      field_mappings:
        - {target_field: LastName, source_field_id: f_last}
        - {target_field: Status, picklist_value: New}
edges:
  - {source: start, target: create_1}
  - {source: create_1, target: end}
form_fields:
  - {id: f_last, type: shorttext, label: Last name}
objects:
  Contact:
    - {name: LastName, label: Last Name, type: string, required: true}
    - {name: Status, type: picklist, required: true, picklist_values: [New, Closed]}
"""

INVALID_WORKFLOW = """\
nodes:
  - id: create_1
    kind: create_or_update
  - id: find_1
    kind: find
edges:
  - {source: start, target: create_1}
  - {source: create_1, target: end}
"""

CYCLIC_WORKFLOW = """\
nodes:
  - {id: a, kind: formatter}
  - {id: b, kind: formatter}
edges:
  - {source: a, target: b}
  - {source: b, target: a}
"""


def _write(tmp_path: Path, name: str, text: str) -> Path:
    path = tmp_path / name
    path.write_text(text)
    return path


def _invoke(*args: str) -> Result:
    return runner.invoke(app, ["--no-dotenv", *args])


class TestBasics:
    def test_version(self) -> None:
        result = runner.invoke(app, ["--version"])

        assert result.exit_code == 0
        assert f"mapflow version {__version__}" in result.stdout

    def test_help_lists_commands(self) -> None:
        result = runner.invoke(app, ["--help"])

        assert result.exit_code == 0
        for command in ("validate", "order", "compile", "publish"):
            assert command in result.stdout

    def test_missing_env_file(self, tmp_path: Path) -> None:
        workflow = _write(tmp_path, "wf.yaml", VALID_WORKFLOW)

        result = runner.invoke(app, ["--env-file", str(tmp_path / "missing.env"), "order", str(workflow)])

        assert result.exit_code == 1
        assert ".env file not found" in result.output


class TestValidate:
    def test_valid_workflow(self, tmp_path: Path) -> None:
        result = _invoke("validate", str(_write(tmp_path, "wf.yaml", VALID_WORKFLOW)))

        assert result.exit_code == 0
        assert "Workflow valid!" in result.stdout
        assert "Graph: 3 nodes, 2 edges" in result.stdout

    def test_reports_every_problem(self, tmp_path: Path) -> None:
        result = _invoke("validate", str(_write(tmp_path, "wf.yaml", INVALID_WORKFLOW)))

        assert result.exit_code == 1
        assert "Workflow Validation Failed" in result.output
        assert "not connected" in result.output
        assert "Please select a target object." in result.output

    def test_missing_file(self, tmp_path: Path) -> None:
        result = _invoke("validate", str(tmp_path / "nope.yaml"))

        assert result.exit_code == 1
        assert "File Not Found" in result.output

    def test_yaml_syntax_error(self, tmp_path: Path) -> None:
        result = _invoke("validate", str(_write(tmp_path, "wf.yaml", "nodes: [\n")))

        assert result.exit_code == 1
        assert "YAML Syntax Error" in result.output

    def test_unknown_document_key(self, tmp_path: Path) -> None:
        result = _invoke("validate", str(_write(tmp_path, "wf.yaml", "layout: grid\n")))

        assert result.exit_code == 1
        assert "Workflow Document Invalid" in result.output

    def test_cycle(self, tmp_path: Path) -> None:
        result = _invoke("validate", str(_write(tmp_path, "wf.yaml", CYCLIC_WORKFLOW)))

        assert result.exit_code == 1
        assert "Workflow Graph Error" in result.output


class TestOrder:
    def test_lists_nodes_in_order(self, tmp_path: Path) -> None:
        result = _invoke("order", str(_write(tmp_path, "wf.yaml", VALID_WORKFLOW)))

        assert result.exit_code == 0
        lines = result.stdout.strip().splitlines()
        assert [line.split()[-1] for line in lines] == ["start", "create_1", "end"]
        assert lines[1].split()[0] == "2"
        assert "CreateOrUpdate_1_Level" in lines[1]


class TestCompile:
    def test_to_stdout(self, tmp_path: Path) -> None:
        result = _invoke("compile", str(_write(tmp_path, "wf.yaml", VALID_WORKFLOW)))

        assert result.exit_code == 0
        records = json.loads(result.stdout)
        assert [record["node_id"] for record in records] == ["start", "create_1", "end"]
        assert records[1]["config"]["target_object"] == "Contact"
        assert records[1]["previous_node_id"] == "start"

    def test_to_file(self, tmp_path: Path) -> None:
        output = tmp_path / "records.json"

        result = _invoke("compile", str(_write(tmp_path, "wf.yaml", VALID_WORKFLOW)), "-o", str(output))

        assert result.exit_code == 0
        assert "Wrote 3 records" in result.stdout
        assert len(json.loads(output.read_text())) == 3

    def test_invalid_workflow(self, tmp_path: Path) -> None:
        result = _invoke("compile", str(_write(tmp_path, "wf.yaml", INVALID_WORKFLOW)))

        assert result.exit_code == 1
        assert "Compile Failed" in result.output


class TestPublish:
    def test_requires_persistence_endpoint(self, tmp_path: Path) -> None:
        settings = _write(tmp_path, "settings.yaml", "connect_debounce_ms: 50\n")

        result = _invoke("publish", str(_write(tmp_path, "wf.yaml", VALID_WORKFLOW)), "--settings", str(settings))

        assert result.exit_code == 1
        assert "No persistence endpoint configured" in result.output

    def test_requires_form_version(self, tmp_path: Path) -> None:
        settings = _write(tmp_path, "settings.yaml", "persistence:\n  url: https://api.example.com\n  token: tok\n")
        workflow = _write(tmp_path, "wf.yaml", VALID_WORKFLOW.replace("form_version_id: fv-42\n", ""))

        result = _invoke("publish", str(workflow), "--settings", str(settings))

        assert result.exit_code == 1
        assert "Missing Form Version" in result.output

    def test_invalid_settings(self, tmp_path: Path) -> None:
        settings = _write(tmp_path, "settings.yaml", "persistence:\n  url: ftp://example.com\n")

        result = _invoke("publish", str(_write(tmp_path, "wf.yaml", VALID_WORKFLOW)), "--settings", str(settings))

        assert result.exit_code == 1
        assert "Configuration Validation Failed" in result.output

    def test_publishes_records(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        import mapflow.clients.http as http_module

        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"record_ids": ["r1", "r2", "r3"], "message": "Saved"})

        original = http_module.HttpPersistenceBackend

        def backend(url: str, *, timeout: float) -> http_module.HttpPersistenceBackend:
            return original(url, timeout=timeout, transport=httpx.MockTransport(handler))

        monkeypatch.setattr(http_module, "HttpPersistenceBackend", backend)
        settings = _write(tmp_path, "settings.yaml", "persistence:\n  url: https://api.example.com\n  token: tok\n")

        result = _invoke(
            "publish",
            str(_write(tmp_path, "wf.yaml", VALID_WORKFLOW)),
            "--settings",
            str(settings),
            "--form-version-id",
            "fv-override",
        )

        assert result.exit_code == 0, result.output
        assert "Published fv-override" in result.stdout
        assert "Records: 3" in result.stdout
        body = json.loads(seen[0].content)
        assert body["form_version_id"] == "fv-override"
        assert seen[0].headers["Authorization"] == "Bearer tok"


class TestSettingsApplied:
    @pytest.fixture
    def opened(self, monkeypatch: pytest.MonkeyPatch) -> dict[str, object]:
        from mapflow.core.editor import WorkflowEditor

        seen: dict[str, object] = {}
        original = WorkflowEditor.from_document

        def spy(document: object, **kwargs: object) -> WorkflowEditor:
            seen.update(kwargs)
            return original(document, **kwargs)

        monkeypatch.setattr(WorkflowEditor, "from_document", spy)
        return seen

    def test_debounce_window_from_settings(self, tmp_path: Path, opened: dict[str, object]) -> None:
        settings = _write(tmp_path, "settings.yaml", "connect_debounce_ms: 250\n")

        result = _invoke("validate", str(_write(tmp_path, "wf.yaml", VALID_WORKFLOW)), "--settings", str(settings))

        assert result.exit_code == 0, result.output
        assert opened["debounce_seconds"] == pytest.approx(0.25)

    def test_no_settings_keeps_editor_defaults(self, tmp_path: Path, opened: dict[str, object]) -> None:
        result = _invoke("validate", str(_write(tmp_path, "wf.yaml", VALID_WORKFLOW)))

        assert result.exit_code == 0, result.output
        assert "debounce_seconds" not in opened

    def test_logging_section_configures_output(self, tmp_path: Path) -> None:
        settings = _write(tmp_path, "settings.yaml", "logging:\n  level: debug\n  json_output: true\n")

        result = _invoke("validate", str(_write(tmp_path, "wf.yaml", VALID_WORKFLOW)), "--settings", str(settings))

        assert result.exit_code == 0, result.output
        assert logging.getLogger().level == logging.DEBUG
        assert '"event": "settings_loaded"' in result.output

    def test_verbose_flag_overrides_settings_level(self, tmp_path: Path) -> None:
        settings = _write(tmp_path, "settings.yaml", "logging:\n  level: error\n")
        workflow = _write(tmp_path, "wf.yaml", VALID_WORKFLOW)

        result = runner.invoke(app, ["--no-dotenv", "--verbose", "validate", str(workflow), "--settings", str(settings)])

        assert result.exit_code == 0, result.output
        assert logging.getLogger().level == logging.DEBUG
        assert "settings_loaded" in result.output

    def test_settings_level_applies_without_flag(self, tmp_path: Path) -> None:
        settings = _write(tmp_path, "settings.yaml", "logging:\n  level: error\n")

        result = _invoke("compile", str(_write(tmp_path, "wf.yaml", VALID_WORKFLOW)), "--settings", str(settings))

        assert result.exit_code == 0, result.output
        assert logging.getLogger().level == logging.ERROR
        assert "settings_loaded" not in result.output
