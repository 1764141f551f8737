"""Smoke tests for the CLI entrypoint."""

from click.testing import CliRunner

from folio.cli import cli


def test_cli_help_displays_commands() -> None:
    """Ensure the top-level help lists every command group."""
    runner = CliRunner()
    result = runner.invoke(cli, ["--help"])

    assert result.exit_code == 0
    assert "Folio keeps a catalogue" in result.output
    for command in ("folder", "file", "tag", "search", "import", "trash", "status", "repair"):
        assert command in result.output


def test_folder_group_help_lists_subcommands() -> None:
    """Verify `folio folder --help` names each folder subcommand."""
    runner = CliRunner()
    result = runner.invoke(cli, ["folder", "--help"])

    assert result.exit_code == 0
    for command in ("create", "rename", "move", "delete", "trash", "expand", "tree"):
        assert command in result.output
