# tests/test_main.py

import json
import os
import tempfile

import pytest

import geostats.service as service_module
import main
from tests.helpers import FakeGeocoder, make_game_data


@pytest.fixture
def data_dir(monkeypatch):
    monkeypatch.setattr(service_module, "default_geocoder", lambda: FakeGeocoder())
    with tempfile.TemporaryDirectory() as tmp:
        yield tmp


def _write_game(directory, **overrides):
    path = os.path.join(directory, "game.json")
    with open(path, "w", encoding="utf-8") as f:
        json.dump(make_game_data(**overrides), f)
    return path


class TestCli:
    """Test suite for the command line entry point."""

    def test_submit_then_stats(self, data_dir, capsys):
        game_file = _write_game(data_dir)
        assert main.main(["--data-dir", data_dir, "submit", game_file, "--user", "u1"]) == 0
        assert "Game saved successfully" in capsys.readouterr().out

        assert main.main(["--data-dir", data_dir, "stats", "--user", "u1"]) == 0
        out = capsys.readouterr().out
        assert "MAP + MODE STATISTICS: u1" in out
        assert "World" in out
        assert "easiest: FR (100%)" in out

    def test_submit_duplicate(self, data_dir, capsys):
        game_file = _write_game(data_dir)
        main.main(["--data-dir", data_dir, "submit", game_file, "--user", "u1"])
        assert main.main(["--data-dir", data_dir, "submit", game_file, "--user", "u1"]) == 0
        assert "Game already saved" in capsys.readouterr().out

    def test_submit_unreadable_file(self, data_dir, capsys):
        missing = os.path.join(data_dir, "missing.json")
        assert main.main(["--data-dir", data_dir, "submit", missing, "--user", "u1"]) == 1
        assert "[ERROR]" in capsys.readouterr().out

    def test_submit_invalid_game(self, data_dir, capsys):
        game_file = _write_game(data_dir, score=99999)
        assert main.main(["--data-dir", data_dir, "submit", game_file, "--user", "u1"]) == 1
        assert "score must be between" in capsys.readouterr().out

    def test_export_to_file(self, data_dir):
        game_file = _write_game(data_dir)
        main.main(["--data-dir", data_dir, "submit", game_file, "--user", "u1"])

        output = os.path.join(data_dir, "countries.csv")
        code = main.main([
            "--data-dir", data_dir, "export", "Country Recognition",
            "--user", "u1", "--output", output,
        ])
        assert code == 0
        with open(output, encoding="utf-8") as f:
            lines = f.read().split("\n")
        assert lines[0].startswith('"Date","Game Token"')
        assert len(lines) == 3

    def test_export_missing_sheet(self, data_dir, capsys):
        game_file = _write_game(data_dir)
        main.main(["--data-dir", data_dir, "submit", game_file, "--user", "u1"])
        capsys.readouterr()
        assert main.main(["--data-dir", data_dir, "export", "Nope", "--user", "u1"]) == 1
        assert "Sheet not found: Nope" in capsys.readouterr().out

    def test_stats_unknown_user(self, data_dir, capsys):
        assert main.main(["--data-dir", data_dir, "stats", "--user", "ghost"]) == 1
        assert "No workbook for user ghost" in capsys.readouterr().out
