"""Smoke tests: imports work, CLI --help works."""

from click.testing import CliRunner

from graph_formatter.__main__ import main


def test_import():
    import graph_formatter

    assert graph_formatter.format_json is not None
    assert graph_formatter.layout is not None


def test_cli_help():
    runner = CliRunner()
    result = runner.invoke(main, ["--help"])
    assert result.exit_code == 0
    assert "Lay out a JSON" in result.output
    assert "--ranking" in result.output
