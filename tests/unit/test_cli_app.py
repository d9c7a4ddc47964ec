"""Unit tests for the prdforge Typer application."""

from __future__ import annotations

import json
import logging
import os
from collections.abc import Iterator
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
from typer.testing import CliRunner

from prdforge.cli.app import app
from prdforge.cli.errors import EXIT_GENERAL_ERROR, EXIT_RECOVERY_ERROR

runner = CliRunner()

FEATURES_RESPONSE = (
    "Here are the features:\n```json\n"
    '[{"title": "Email login", "priority": "high"}, '
    '{"title": "Document search", "priority": "Medium",}]\n```'
)

TASKS_RESPONSE = json.dumps(
    [
        {"title": "Build login API", "estimatedHours": 6, "role": "Backend"},
        {"title": "Login form", "estimatedHours": "3", "role": "frontend"},
    ]
)


@pytest.fixture(autouse=True)
def _isolate(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    monkeypatch.chdir(tmp_path)
    for key in list(os.environ):
        if key.startswith("PRDFORGE_"):
            monkeypatch.delenv(key)
    yield
    logger = logging.getLogger("prdforge")
    for handler in list(logger.handlers):
        handler.close()
    logger.handlers.clear()


def _write(path: Path, text: str) -> Path:
    path.write_text(text, encoding="utf-8")
    return path


# ---------------------------------------------------------------------------
# Global options
# ---------------------------------------------------------------------------


class TestGlobalOptions:
    def test_version(self) -> None:
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert "prdforge 0.1.0" in result.output

    def test_no_args_shows_help(self) -> None:
        result = runner.invoke(app, [])
        assert "recover" in result.output
        assert "generate" in result.output

    def test_missing_config_file(self, tmp_path: Path) -> None:
        result = runner.invoke(app, ["--config", str(tmp_path / "none.toml"), "init"])
        assert result.exit_code == 2
        assert "Config file not found" in result.output


# ---------------------------------------------------------------------------
# init
# ---------------------------------------------------------------------------


class TestInitCommand:
    def test_init_writes_config(self, tmp_path: Path) -> None:
        result = runner.invoke(app, ["init", str(tmp_path)])
        assert result.exit_code == 0
        assert (tmp_path / ".prdforge" / "config.toml").is_file()

    def test_init_twice_fails_without_force(self, tmp_path: Path) -> None:
        runner.invoke(app, ["init", str(tmp_path)])
        result = runner.invoke(app, ["init", str(tmp_path)])
        assert result.exit_code == EXIT_GENERAL_ERROR
        assert "already exists" in result.output
        assert runner.invoke(app, ["init", str(tmp_path), "--force"]).exit_code == 0


# ---------------------------------------------------------------------------
# recover
# ---------------------------------------------------------------------------


class TestRecoverCommand:
    """Tests for ``prdforge recover``."""

    def test_recover_from_file_as_json(self, tmp_path: Path) -> None:
        source = _write(tmp_path / "response.txt", FEATURES_RESPONSE)
        result = runner.invoke(app, ["recover", str(source), "--json"])
        assert result.exit_code == 0
        records = json.loads(result.stdout)
        assert [r["title"] for r in records] == ["Email login", "Document search"]
        assert records[1]["priority"] == "medium"

    def test_recover_from_stdin(self) -> None:
        result = runner.invoke(app, ["recover", "-", "-j"], input='{"features": [{"name": "Sync"}]}')
        assert result.exit_code == 0
        assert json.loads(result.stdout)[0]["title"] == "Sync"

    def test_recover_table_output(self, tmp_path: Path) -> None:
        source = _write(tmp_path / "response.txt", FEATURES_RESPONSE)
        result = runner.invoke(app, ["recover", str(source)])
        assert result.exit_code == 0
        assert "Recovered 2 feature record(s) via strategy" in result.output
        assert "Email login" in result.output

    def test_recover_tasks(self, tmp_path: Path) -> None:
        source = _write(tmp_path / "tasks.txt", TASKS_RESPONSE)
        result = runner.invoke(app, ["recover", str(source), "--kind", "tasks", "--json"])
        assert result.exit_code == 0
        tasks = json.loads(result.stdout)
        assert [t["estimated_hours"] for t in tasks] == [6.0, 3.0]
        assert tasks[1]["role"] == "Frontend"

    def test_unrecoverable_is_empty_by_default(self, tmp_path: Path) -> None:
        source = _write(tmp_path / "prose.txt", "I could not produce any features.")
        result = runner.invoke(app, ["recover", str(source), "--json"])
        assert result.exit_code == 0
        assert "[]" in result.output

    def test_unrecoverable_strict_exits_3(self, tmp_path: Path) -> None:
        source = _write(tmp_path / "prose.txt", "I could not produce any features.")
        result = runner.invoke(app, ["recover", str(source), "--strict"])
        assert result.exit_code == EXIT_RECOVERY_ERROR
        assert "Recovery Failed" in result.output

    def test_config_policy_raise(self, tmp_path: Path) -> None:
        config = _write(tmp_path / "cfg.toml", 'failure_policy = "raise"\n')
        source = _write(tmp_path / "prose.txt", "nothing here")
        result = runner.invoke(app, ["--config", str(config), "recover", str(source)])
        assert result.exit_code == EXIT_RECOVERY_ERROR

    def test_missing_input_file(self, tmp_path: Path) -> None:
        result = runner.invoke(app, ["recover", str(tmp_path / "missing.txt")])
        assert result.exit_code == EXIT_GENERAL_ERROR
        assert "Input file not found" in result.output


# ---------------------------------------------------------------------------
# generate
# ---------------------------------------------------------------------------


class TestGenerateCommands:
    """Tests for ``prdforge generate``; the gateway is mocked."""

    @patch("prdforge.llm.gateway.LLMGateway")
    def test_generate_features(self, mock_gateway_cls: MagicMock, tmp_path: Path) -> None:
        mock_gateway_cls.return_value.complete.return_value = FEATURES_RESPONSE
        prd = _write(tmp_path / "prd.md", "# PRD\n\nLogin and search.")
        out = tmp_path / "out" / "features.json"
        result = runner.invoke(
            app, ["generate", "features", str(prd), "--max", "5", "--model", "gpt-4o", "-o", str(out)]
        )
        assert result.exit_code == 0, result.output
        assert "Generated 2 feature(s)" in result.output
        features = json.loads(out.read_text())
        assert [f["title"] for f in features] == ["Email login", "Document search"]
        assert all(f["id"] for f in features)
        kwargs = mock_gateway_cls.return_value.complete.call_args.kwargs
        assert kwargs["model"] == "gpt-4o"
        assert "up to 5 features" in kwargs["messages"][1]["content"]

    @patch("prdforge.llm.gateway.LLMGateway")
    def test_generate_features_missing_prd(self, mock_gateway_cls: MagicMock, tmp_path: Path) -> None:
        result = runner.invoke(app, ["generate", "features", str(tmp_path / "nope.md")])
        assert result.exit_code == EXIT_GENERAL_ERROR
        mock_gateway_cls.return_value.complete.assert_not_called()

    @patch("prdforge.llm.gateway.LLMGateway")
    def test_generate_tasks(self, mock_gateway_cls: MagicMock, tmp_path: Path) -> None:
        mock_gateway_cls.return_value.complete.return_value = TASKS_RESPONSE
        features = _write(
            tmp_path / "features.json",
            json.dumps([{"id": "f1", "title": "Email login"}, {"title": "Search"}]),
        )
        out = tmp_path / "tasks.json"
        result = runner.invoke(app, ["generate", "tasks", str(features), "-o", str(out)])
        assert result.exit_code == 0, result.output
        by_feature = json.loads(out.read_text())
        assert len(by_feature) == 2
        assert list(by_feature)[0] == "f1"
        assert [t["title"] for t in by_feature["f1"]] == ["Build login API", "Login form"]
        assert all(t["feature_id"] == "f1" for t in by_feature["f1"])
        assert "18 hours" in result.output

    @patch("prdforge.llm.gateway.LLMGateway")
    def test_generate_tasks_rejects_non_array(self, mock_gateway_cls: MagicMock, tmp_path: Path) -> None:
        features = _write(tmp_path / "features.json", '{"title": "x"}')
        result = runner.invoke(app, ["generate", "tasks", str(features)])
        assert result.exit_code == EXIT_GENERAL_ERROR
        assert "must contain a JSON array" in result.output

    @patch("prdforge.llm.gateway.LLMGateway")
    def test_generate_tasks_invalid_json(self, mock_gateway_cls: MagicMock, tmp_path: Path) -> None:
        features = _write(tmp_path / "features.json", "[{broken")
        result = runner.invoke(app, ["generate", "tasks", str(features)])
        assert result.exit_code == EXIT_GENERAL_ERROR
        assert "Invalid features file" in result.output
