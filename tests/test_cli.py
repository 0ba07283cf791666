"""Tests for the command line tool."""

import pytest

from factories import make_session
from speak_practice import cli


@pytest.fixture
def cli_progress(monkeypatch, progress):
    monkeypatch.setattr(cli, "get_progress_service", lambda: progress)
    return progress


def test_progress_command(cli_progress, capsys):
    cli_progress.save_session(make_session(1, score=7))

    assert cli.main(["--no-color", "progress"]) == 0
    out = capsys.readouterr().out
    assert "Sessions:         1" in out
    assert "First Steps" in out


def test_clear_test_data_command(cli_progress, capsys):
    cli_progress.save_session(make_session(1))
    cli_progress.save_session(make_session(2, duration=2))

    assert cli.main(["clear-test-data"]) == 0
    assert "1 sessions kept" in capsys.readouterr().out


def test_practice_unknown_scenario(capsys):
    assert cli.main(["practice", "--scenario", "nope"]) == 1
    assert "Unknown scenario: nope" in capsys.readouterr().out


def test_command_is_required():
    with pytest.raises(SystemExit):
        cli.main([])
