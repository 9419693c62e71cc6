"""Tests for CLI entry point."""

from __future__ import annotations

from pathlib import Path

from click.testing import CliRunner

from confgetter.__main__ import cli


class TestCLI:
    """Test CLI commands."""

    def test_help(self):
        runner = CliRunner()
        result = runner.invoke(cli, ["--help"])
        assert result.exit_code == 0
        assert "confgetter" in result.output

    def test_version(self):
        runner = CliRunner()
        result = runner.invoke(cli, ["--version"])
        assert result.exit_code == 0
        assert "0.1.0" in result.output

    def test_get_help(self):
        runner = CliRunner()
        result = runner.invoke(cli, ["get", "--help"])
        assert result.exit_code == 0
        assert "--mode" in result.output
        assert "--max-bytes" in result.output

    def test_get_local_file(self, tmp_path: Path):
        source = tmp_path / "in.yaml"
        source.write_text("a: 1\n")
        dst = tmp_path / "out.yaml"
        runner = CliRunner()
        result = runner.invoke(cli, ["get", str(source), str(dst), "--mode", "file"])
        assert result.exit_code == 0, result.output
        assert dst.read_text() == "a: 1\n"
        assert str(dst) in result.output

    def test_get_missing_source_fails(self, tmp_path: Path):
        runner = CliRunner()
        result = runner.invoke(
            cli, ["get", str(tmp_path / "missing.yaml"), str(tmp_path / "out")],
        )
        assert result.exit_code == 1
        assert "does not exist" in result.output

    def test_bad_config_fails(self, tmp_path: Path):
        config = tmp_path / "confgetter.toml"
        config.write_text("[client]\nmode = 'nope'\n")
        runner = CliRunner()
        result = runner.invoke(cli, ["--config", str(config), "get", "a", "b"])
        assert result.exit_code == 1
        assert "Configuration error" in result.output
