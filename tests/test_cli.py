from __future__ import annotations

import json
from pathlib import Path

import pytest
import typer
from typer.testing import CliRunner

from cfls.cli import app, configure_logging

runner = CliRunner()


def test_capabilities_command_prints_defaults(tmp_path: Path) -> None:
    result = runner.invoke(app, ["capabilities", "--root", str(tmp_path)])
    assert result.exit_code == 0
    payload = json.loads(result.stdout)
    assert payload["textDocumentSync"] == 1
    assert payload["completionProvider"]["triggerCharacters"] == ["."]


def test_capabilities_command_reads_project_options(tmp_path: Path) -> None:
    (tmp_path / "cfls.toml").write_text(
        '[cfls.completion]\ntriggerCharacters = [".", "#"]\n',
        encoding="utf-8",
    )
    result = runner.invoke(app, ["capabilities", "--root", str(tmp_path)])
    assert result.exit_code == 0
    assert json.loads(result.stdout)["completionProvider"]["triggerCharacters"] == [".", "#"]


def test_capabilities_command_rejects_invalid_project_options(tmp_path: Path) -> None:
    (tmp_path / "cfls.toml").write_text("[cfls.completion]\nmaxItems = 0\n", encoding="utf-8")
    result = runner.invoke(app, ["capabilities", "--root", str(tmp_path)])
    assert result.exit_code != 0


def test_configure_logging_rejects_unknown_level() -> None:
    with pytest.raises(typer.BadParameter):
        configure_logging("chatty")
