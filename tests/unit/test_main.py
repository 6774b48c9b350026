# tests/unit/test_main.py — v1
"""Tests for main.py — CLI commands against a temporary data directory."""

from __future__ import annotations

import json
import logging

import pytest

from iacdiagram.main import main


@pytest.fixture(autouse=True)
def cli_env(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    for var in ("ANTHROPIC_API_KEY", "ENHANCE_MODE", "LOG_FILE", "LOG_FORMAT", "LOG_LEVEL"):
        monkeypatch.delenv(var, raising=False)
    monkeypatch.setenv("DATA_DIR", str(tmp_path / "data"))
    monkeypatch.setenv("PROJECTS_FILE", str(tmp_path / "projects.json"))
    monkeypatch.setenv("USER_CONFIG_PATH", str(tmp_path / "config.json"))
    yield tmp_path
    root = logging.getLogger("iacdiagram")
    for handler in list(root.handlers):
        handler.close()
        root.removeHandler(handler)


@pytest.fixture
def compose_project(cli_env, compose_yaml):
    source = cli_env / "data" / "demo" / "source"
    source.mkdir(parents=True)
    (source / "docker-compose.yml").write_text(compose_yaml)
    (cli_env / "projects.json").write_text(json.dumps(
        {"projects": [{"id": "demo", "name": "Demo", "repo": "https://github.com/acme/demo"}]}
    ))
    return "demo"


class TestConfigCommand:
    def test_path(self, cli_env, capsys):
        assert main(["config", "path"]) == 0
        assert capsys.readouterr().out.strip() == str(cli_env / "config.json")

    def test_set_show_clear(self, cli_env, capsys):
        assert main(["config", "set-key", "sk-ant-1234567890abcd"]) == 0
        assert json.loads((cli_env / "config.json").read_text())["anthropicApiKey"] == "sk-ant-1234567890abcd"

        assert main(["config", "show"]) == 0
        out = capsys.readouterr().out
        assert "(config): sk-ant-1...abcd" in out
        assert "1234567890" not in out

        assert main(["config", "clear"]) == 0
        assert "API key cleared" in capsys.readouterr().out

    def test_show_without_key(self, capsys):
        assert main(["config", "show"]) == 0
        assert "Anthropic API key: not set" in capsys.readouterr().out


class TestRunCommand:
    def test_full_run_without_llm(self, cli_env, compose_project, capsys):
        assert main(["run", compose_project, "--no-llm"]) == 0
        out = capsys.readouterr().out
        assert "Status: completed" in out
        assert "enhance (skipped: enhancement disabled)" in out

        runs = list((cli_env / "data" / "demo" / "runs").iterdir())
        assert len(runs) == 1
        assert (runs[0] / "04-diagram.excalidraw").exists()
        manifest = json.loads((runs[0] / "meta.json").read_text())
        assert [s["step"] for s in manifest["steps"]] == ["parse", "layout", "generate"]

    def test_targeted_step(self, cli_env, compose_project, capsys):
        assert main(["run", compose_project, "--step", "parse"]) == 0
        out = capsys.readouterr().out
        assert "parse" in out
        assert "layout" not in out.split("Steps:")[1]

    def test_parse_failure_exit_code(self, cli_env, capsys):
        source = cli_env / "data" / "broken" / "source"
        source.mkdir(parents=True)
        (source / "docker-compose.yml").write_text("services: [oops")
        assert main(["run", "broken", "--no-llm"]) == 1
        assert "Status: failed" in capsys.readouterr().out

    def test_invalid_step_choice(self):
        with pytest.raises(SystemExit):
            main(["run", "demo", "--step", "deploy"])


class TestListAndInspect:
    def test_list_empty(self, capsys):
        assert main(["list"]) == 0
        assert "No projects found." in capsys.readouterr().out

    def test_list_and_inspect_after_run(self, compose_project, capsys):
        assert main(["run", compose_project, "--no-llm"]) == 0
        capsys.readouterr()

        assert main(["list"]) == 0
        out = capsys.readouterr().out
        assert "Demo (demo)" in out
        assert "Runs: 1" in out

        assert main(["inspect", compose_project, "--json"]) == 0
        manifest = json.loads(capsys.readouterr().out)
        assert manifest["status"] == "completed"
        assert manifest["skipped_steps"][0]["step"] == "enhance"

        assert main(["inspect", compose_project, "--step", "parse"]) == 0
        assert "Nodes: 4" in capsys.readouterr().out

    def test_inspect_missing(self, capsys):
        assert main(["inspect", "nothing"]) == 1
        assert main(["inspect", "nothing", "--run", "r1"]) == 1

    def test_inspect_rejects_path_components(self, cli_env, capsys):
        # data/demo/runs/../../outside resolves to data/outside
        outside = cli_env / "data" / "outside" / "meta.json"
        outside.parent.mkdir(parents=True)
        outside.write_text(json.dumps({"id": "outside", "project": "demo"}))

        assert main(["inspect", "demo", "--run", "../../outside", "--json"]) == 1
        assert main(["inspect", "../outside", "--json"]) == 1
        assert capsys.readouterr().out == ""
