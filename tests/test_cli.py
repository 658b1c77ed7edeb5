"""Tests for the command-line interface."""

import json
from unittest.mock import patch

import pytest
from click.testing import CliRunner

from edit_locally import config
from edit_locally.cli import cli

from conftest import CRATES_IO, manifest_text, write_workspace


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def project(tmp_path, monkeypatch):
    manifest = write_workspace(tmp_path / "app", [("log", "0.3.5", CRATES_IO)])
    local = tmp_path / "my-log"
    local.mkdir()
    (local / "Cargo.toml").write_text(manifest_text("log", "0.3.5"))
    monkeypatch.chdir(manifest.parent)
    with patch("edit_locally.deps.workspace.is_tool_available", return_value=False):
        yield manifest


class TestVersion:
    def test_version_flag(self, runner):
        result = runner.invoke(cli, ["--version"])
        assert result.exit_code == 0
        assert "cargo-edit-locally" in result.output


class TestEditLocallyCommand:
    """Test the edit-locally command end to end with local replacements."""

    def test_path_replacement_written(self, runner, project):
        result = runner.invoke(cli, ["edit-locally", "log", "--path", "../my-log"])

        assert result.exit_code == 0, result.output
        assert '"log:0.3.5" = { path = ' in project.read_text()
        assert "Added a `[replace]` entry" in result.output

    def test_print_only(self, runner, project):
        original = project.read_text()
        result = runner.invoke(cli, ["edit-locally", "log", "--path", "../my-log", "--print-only"])

        assert result.exit_code == 0, result.output
        assert project.read_text() == original
        assert "To use this source code" in result.output
        assert "[replace]" in result.output

    def test_quiet_suppresses_report(self, runner, project):
        result = runner.invoke(cli, ["edit-locally", "log", "--path", "../my-log", "-q"])

        assert result.exit_code == 0, result.output
        assert "Added a" not in result.output
        assert "[replace]" in project.read_text()

    def test_unknown_package(self, runner, project):
        result = runner.invoke(cli, ["edit-locally", "serde", "--path", "../my-log"])

        assert result.exit_code == 1
        assert "did not match any packages" in result.output

    def test_source_mismatch(self, runner, project, tmp_path):
        (tmp_path / "my-log" / "Cargo.toml").write_text(manifest_text("log", "0.4.0"))
        result = runner.invoke(cli, ["edit-locally", "log", "--path", "../my-log"])

        assert result.exit_code == 1
        assert "could not find `log` at version `0.3.5`" in result.output

    def test_missing_manifest(self, runner, tmp_path, monkeypatch):
        empty = tmp_path / "empty"
        empty.mkdir()
        monkeypatch.chdir(empty)
        result = runner.invoke(cli, ["edit-locally", "log"])

        assert result.exit_code == 1
        assert "could not find `Cargo.toml`" in result.output

    @pytest.mark.parametrize("args, message", [
        (["--branch", "fix"], "require --git"),
        (["--git", "https://example.com/log", "--tag", "a", "--rev", "b"], "only one of"),
        (["--git", "https://example.com/log", "--path", "x"], "cannot be used together"),
        (["--path", "x", "deps"], "DESTINATION cannot be combined"),
    ])
    def test_usage_errors(self, runner, project, args, message):
        result = runner.invoke(cli, ["edit-locally", "log", *args])

        assert result.exit_code == 2
        assert message in result.output

    def test_invalid_color(self, runner, project):
        result = runner.invoke(cli, ["edit-locally", "log", "--color", "sometimes"])
        assert result.exit_code == 2


class TestConfigCommand:
    """Test showing and updating configuration."""

    def test_set_and_show(self, runner):
        result = runner.invoke(cli, ["config", "--set", "net_retry=4", "--set", "cargo_home=/opt/cargo"])

        assert result.exit_code == 0, result.output
        with open(config.CONFIG_FILE) as f:
            assert json.load(f) == {"net_retry": 4, "cargo_home": "/opt/cargo"}

        result = runner.invoke(cli, ["config", "--show"])
        assert "net_retry = 4" in result.output

    def test_unknown_key(self, runner):
        result = runner.invoke(cli, ["config", "--set", "colour=red"])
        assert result.exit_code == 2
        assert "unknown key" in result.output

    def test_non_integer_retry(self, runner):
        result = runner.invoke(cli, ["config", "--set", "net_retry=lots"])
        assert result.exit_code == 2
