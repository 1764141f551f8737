"""CLI tests for configuration commands."""

import os
from pathlib import Path
from typing import Any

from click.testing import CliRunner

from folio.cli import cli
from folio.config import ConfigManager


def _env_with_home(tmp_path: Path) -> dict[str, Any]:
    env = dict(os.environ)
    env["HOME"] = str(tmp_path)
    return env


def _config_path(tmp_path: Path) -> Path:
    return tmp_path / ".folio" / "config.yaml"


def test_config_view_creates_and_displays_config(tmp_path: Path) -> None:
    """Ensure `folio config view` creates the file and prints its contents.

    Args:
        tmp_path: Temporary directory provided by pytest.
    """
    runner = CliRunner()
    env = _env_with_home(tmp_path)

    result = runner.invoke(cli, ["config", "view"], env=env)

    assert result.exit_code == 0
    assert "library:" in result.output
    assert "result_limit" in result.output
    assert _config_path(tmp_path).exists()


def test_config_set_updates_value_and_writes_diff(tmp_path: Path) -> None:
    """Verify `folio config set` stores the value and shows a diff.

    Args:
        tmp_path: Temporary directory provided by pytest.
    """
    runner = CliRunner()
    env = _env_with_home(tmp_path)

    result = runner.invoke(cli, ["config", "set", "search.result_limit", "--value", "7"], env=env)

    assert result.exit_code == 0
    assert "Updated search.result_limit" in result.output

    manager = ConfigManager(config_path=_config_path(tmp_path))
    config = manager.load(include_env=False)
    assert config.search.result_limit == 7

    again = runner.invoke(cli, ["config", "set", "search.result_limit", "--value", "7"], env=env)
    assert again.exit_code == 0
    assert "nothing changed" in again.output


def test_config_set_rejects_invalid_value(tmp_path: Path) -> None:
    """Invalid values are refused and the file keeps its previous contents."""
    runner = CliRunner()
    env = _env_with_home(tmp_path)

    result = runner.invoke(
        cli, ["config", "set", "library.default_tag_color", "--value", "chartreuse"], env=env
    )

    assert result.exit_code != 0
    manager = ConfigManager(config_path=_config_path(tmp_path))
    assert manager.load(include_env=False).library.default_tag_color == "green"


def test_config_edit_applies_changes(tmp_path: Path, monkeypatch) -> None:
    """Ensure `folio config edit` validates and saves the edited document.

    Args:
        tmp_path: Temporary directory provided by pytest.
        monkeypatch: Pytest fixture used to stub the editor.
    """
    runner = CliRunner()
    env = _env_with_home(tmp_path)

    manager = ConfigManager(config_path=_config_path(tmp_path))
    manager.ensure_exists()

    def _mock_edit(text: str, **_: Any) -> str:
        return text.replace("result_limit: 50", "result_limit: 5")

    monkeypatch.setattr("folio.cli.click.edit", _mock_edit)

    result = runner.invoke(cli, ["config", "edit"], env=env)

    assert result.exit_code == 0
    assert "updated" in result.output.lower()

    config = manager.load(include_env=False)
    assert config.search.result_limit == 5
