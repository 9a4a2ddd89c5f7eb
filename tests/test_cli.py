"""
Tests for the command-line interface.
"""

import json
import tempfile
from pathlib import Path

import click
import pytest
from click.testing import CliRunner

from fsgate.cli import main as cli_main
from fsgate.cli.main import build_config, cli
from fsgate.filesystem import PermissionTier


@pytest.fixture
def temp_dir():
    """Create a temporary directory for testing."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir).resolve()


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep host FSGATE_* variables out of the tests."""
    for name in (
        "FSGATE_ALLOWED_DIRECTORIES",
        "FSGATE_ALLOW_WRITE",
        "FSGATE_ALLOW_DESTRUCTIVE",
        "FSGATE_MAX_READ_SIZE",
        "FSGATE_MAX_DEPTH",
    ):
        monkeypatch.delenv(name, raising=False)


class TestBuildConfig:
    """Tests for merging configuration sources."""

    def test_cli_roots(self, temp_dir):
        config = build_config((str(temp_dir),))
        assert config.allowed_directories == (temp_dir,)
        assert config.permission_tier is PermissionTier.READ_ONLY

    def test_no_roots_is_usage_error(self):
        with pytest.raises(click.UsageError):
            build_config(())

    def test_env_supplies_roots(self, temp_dir, monkeypatch):
        monkeypatch.setenv("FSGATE_ALLOWED_DIRECTORIES", str(temp_dir))
        monkeypatch.setenv("FSGATE_MAX_DEPTH", "4")

        config = build_config(())
        assert config.allowed_directories == (temp_dir,)
        assert config.max_depth == 4

    def test_file_overrides_env(self, temp_dir, monkeypatch):
        monkeypatch.setenv("FSGATE_MAX_DEPTH", "4")
        config_file = temp_dir / "fsgate.yaml"
        config_file.write_text(f"allowed_directories: [{temp_dir}]\nmax_depth: 6\n")

        config = build_config((), config_file=str(config_file))
        assert config.max_depth == 6

    def test_cli_overrides_file(self, temp_dir):
        config_file = temp_dir / "fsgate.yaml"
        config_file.write_text(f"allowed_directories: [{temp_dir}]\nmax_depth: 6\n")

        config = build_config((), max_depth=2, config_file=str(config_file))
        assert config.max_depth == 2

    def test_flags_raise_configured_tier(self, temp_dir):
        config_file = temp_dir / "fsgate.yaml"
        config_file.write_text(
            f"allowed_directories: [{temp_dir}]\npermission_tier: write\n"
        )

        assert (
            build_config((), config_file=str(config_file)).permission_tier
            is PermissionTier.WRITE
        )
        assert (
            build_config((), allow_destructive=True, config_file=str(config_file)).permission_tier
            is PermissionTier.DESTRUCTIVE
        )

    def test_flags_never_lower_tier(self, temp_dir, monkeypatch):
        monkeypatch.setenv("FSGATE_ALLOW_DESTRUCTIVE", "1")

        config = build_config((str(temp_dir),), allow_write=True)
        assert config.permission_tier is PermissionTier.DESTRUCTIVE


class TestCommands:
    """Tests for the click commands."""

    def test_version(self, runner):
        result = runner.invoke(cli, ["--version"])
        assert result.exit_code == 0
        assert "0.1.0" in result.output

    def test_tools_json_read_only(self, runner, temp_dir):
        result = runner.invoke(cli, ["tools", str(temp_dir), "--json"])

        assert result.exit_code == 0, result.output
        names = [s["function"]["name"] for s in json.loads(result.stdout)]
        assert len(names) == 7
        assert "delete_file" not in names

    def test_tools_json_destructive(self, runner, temp_dir):
        result = runner.invoke(cli, ["tools", str(temp_dir), "--allow-destructive", "--json"])

        assert result.exit_code == 0, result.output
        assert len(json.loads(result.stdout)) == 13

    def test_tools_table(self, runner, temp_dir):
        result = runner.invoke(cli, ["tools", str(temp_dir), "--allow-write"])

        assert result.exit_code == 0, result.output
        assert "edit_file" in result.output

    def test_tools_requires_root(self, runner):
        result = runner.invoke(cli, ["tools"])
        assert result.exit_code == 2
        assert "At least one allowed directory" in result.output

    def test_missing_root_is_configuration_error(self, runner, temp_dir):
        result = runner.invoke(cli, ["tools", str(temp_dir / "missing")])
        assert result.exit_code == 1

    def test_check_allowed(self, runner, temp_dir):
        (temp_dir / "f.txt").write_text("x")

        result = runner.invoke(cli, ["check", str(temp_dir / "f.txt"), str(temp_dir)])
        assert result.exit_code == 0, result.output
        assert "Allowed" in result.output

    def test_check_rejected(self, runner, temp_dir):
        result = runner.invoke(cli, ["check", f"{temp_dir}/../etc", str(temp_dir)])
        assert result.exit_code == 1
        assert "Rejected" in result.output

    def test_check_may_not_exist(self, runner, temp_dir):
        result = runner.invoke(
            cli,
            ["check", str(temp_dir / "new.txt"), str(temp_dir), "--mode", "may_not_exist"],
        )
        assert result.exit_code == 0, result.output
        assert "does not exist yet" in result.output

    def test_serve_runs_stdio(self, runner, temp_dir, monkeypatch):
        calls = {}

        class FakeServer:
            def run(self, transport):
                calls["transport"] = transport

        def fake_create_server(config):
            calls["config"] = config
            return FakeServer()

        monkeypatch.setattr(cli_main, "create_server", fake_create_server)

        result = runner.invoke(cli, ["serve", str(temp_dir), "--allow-write"])
        assert result.exit_code == 0, result.output
        assert calls["transport"] == "stdio"
        assert calls["config"].permission_tier is PermissionTier.WRITE
