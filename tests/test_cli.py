"""Tests for the nix-pkgdiff command line."""

import json
import logging
from contextlib import contextmanager

from typer.testing import CliRunner

from nix_pkgdiff import __version__
from nix_pkgdiff.cli import app
from nix_pkgdiff.exceptions import StoreAccessError
from nix_pkgdiff.store.models import StoreRecord

runner = CliRunner()


class FakeSource:
    name = "fake"

    def __init__(self, records, deps):
        self.records = records
        self.deps = deps

    def system_records(self):
        return list(self.records)

    def dependency_records(self, record):
        return list(self.deps.get(record.identity, []))


def _source(firefox_version, glibc_version):
    firefox = StoreRecord("firefox", firefox_version, registration_time=5000)
    vlc = StoreRecord("vlc", "3.0.4", registration_time=6000)
    glibc = StoreRecord("glibc", glibc_version, registration_time=1000)
    return FakeSource([firefox, vlc], {"firefox": [glibc], "vlc": [glibc]})


def _opener(source):
    @contextmanager
    def open_source(config):
        yield source

    return open_source


def _save(monkeypatch, state_path, source):
    monkeypatch.setattr("nix_pkgdiff.cli.save.open_source", _opener(source))
    return runner.invoke(app, ["save", "--state", str(state_path)])


class TestRoot:
    def test_version(self):
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.output

    def test_no_command_shows_help(self):
        result = runner.invoke(app, [])
        assert result.exit_code == 0
        assert "save" in result.output
        assert "diff" in result.output


class TestSave:
    def test_writes_state(self, monkeypatch, tmp_path):
        state = tmp_path / "packages.json"
        result = _save(monkeypatch, state, _source("60.0", "2.27"))

        assert result.exit_code == 0, result.output
        assert "Saved 2 package(s)" in result.output
        data = json.loads(state.read_text())
        assert [p["name"] for p in data["packages"]] == ["firefox", "vlc"]

    def test_default_state_location(self, monkeypatch, isolated_env):
        monkeypatch.setattr("nix_pkgdiff.cli.save.open_source", _opener(_source("60.0", "2.27")))
        result = runner.invoke(app, ["save"])

        assert result.exit_code == 0, result.output
        assert (isolated_env / "data" / "nix-pkgdiff" / "packages.json").exists()

    def test_store_error_exits_1(self, monkeypatch, tmp_path):
        @contextmanager
        def failing(config):
            raise StoreAccessError(tmp_path / "db.sqlite", "permission denied")
            yield

        monkeypatch.setattr("nix_pkgdiff.cli.save.open_source", failing)
        result = runner.invoke(app, ["save", "--state", str(tmp_path / "s.json")])

        assert result.exit_code == 1
        assert "Error:" in result.output
        assert not (tmp_path / "s.json").exists()

    def test_invalid_source(self, tmp_path):
        result = runner.invoke(app, ["save", "--source", "network", "--state", str(tmp_path / "s")])
        assert result.exit_code == 1
        assert "Invalid configuration" in result.output


class TestDiff:
    def test_without_saved_state(self, tmp_path):
        result = runner.invoke(app, ["diff", "--state", str(tmp_path / "missing.json")])
        assert result.exit_code == 1
        assert "No saved package state" in result.output

    def test_reports_updates(self, monkeypatch, tmp_path):
        state = tmp_path / "packages.json"
        assert _save(monkeypatch, state, _source("60.0", "2.27")).exit_code == 0

        monkeypatch.setattr("nix_pkgdiff.sources.open_source", _opener(_source("61.0", "2.28")))
        result = runner.invoke(app, ["diff", "--state", str(state)])

        assert result.exit_code == 0, result.output
        assert "1 package update(s)" in result.output
        assert "firefox: 60.0 -> 61.0" in result.output
        assert "1 global dependency update(s)" in result.output
        assert "glibc: 2.27 -> 2.28" in result.output

    def test_json_output(self, monkeypatch, tmp_path):
        state = tmp_path / "packages.json"
        assert _save(monkeypatch, state, _source("60.0", "2.27")).exit_code == 0

        monkeypatch.setattr("nix_pkgdiff.sources.open_source", _opener(_source("60.0", "2.28")))
        result = runner.invoke(app, ["diff", "--json", "--state", str(state)])

        assert result.exit_code == 0, result.output
        data = json.loads(result.stdout)
        assert data["packages"] == []
        assert data["shared"] == [
            {"name": "glibc", "suffix": None, "old_version": "2.27", "new_version": "2.28"}
        ]

    def test_state_is_left_untouched(self, monkeypatch, tmp_path):
        state = tmp_path / "packages.json"
        _save(monkeypatch, state, _source("60.0", "2.27"))
        before = state.read_text()

        monkeypatch.setattr("nix_pkgdiff.sources.open_source", _opener(_source("61.0", "2.28")))
        runner.invoke(app, ["diff", "--state", str(state)])

        assert state.read_text() == before


class TestLogging:
    def _run_save(self, monkeypatch, tmp_path, *args):
        monkeypatch.setattr("nix_pkgdiff.cli.save.open_source", _opener(_source("60.0", "2.27")))
        return runner.invoke(app, ["save", "--state", str(tmp_path / "s.json"), *args])

    def test_default_level(self, monkeypatch, tmp_path):
        assert self._run_save(monkeypatch, tmp_path).exit_code == 0
        assert logging.getLogger("nix_pkgdiff").level == logging.WARNING

    def test_verbosity_from_env(self, monkeypatch, tmp_path):
        monkeypatch.setenv("NIX_PKGDIFF_VERBOSITY", "verbose")
        assert self._run_save(monkeypatch, tmp_path).exit_code == 0
        assert logging.getLogger("nix_pkgdiff").level == logging.DEBUG

    def test_verbosity_from_config_file(self, monkeypatch, tmp_path):
        config = tmp_path / "c.toml"
        config.write_text('verbosity = "quiet"\n')
        assert self._run_save(monkeypatch, tmp_path, "--config", str(config)).exit_code == 0
        assert logging.getLogger("nix_pkgdiff").level == logging.ERROR

    def test_quiet_flag(self, monkeypatch, tmp_path):
        monkeypatch.setenv("NIX_PKGDIFF_VERBOSITY", "verbose")
        assert self._run_save(monkeypatch, tmp_path, "--quiet").exit_code == 0
        assert logging.getLogger("nix_pkgdiff").level == logging.ERROR

    def test_log_file(self, monkeypatch, tmp_path):
        log_file = tmp_path / "nix-pkgdiff.log"
        monkeypatch.setenv("NIX_PKGDIFF_LOG_FILE", str(log_file))
        assert self._run_save(monkeypatch, tmp_path, "--verbose").exit_code == 0
        assert "Found 2 system package(s) via fake" in log_file.read_text()


class TestShow:
    def test_summary(self, monkeypatch, tmp_path):
        state = tmp_path / "packages.json"
        _save(monkeypatch, state, _source("60.0", "2.27"))

        result = runner.invoke(app, ["show", "--state", str(state), "--packages"])

        assert result.exit_code == 0, result.output
        assert "source: fake" in result.output
        assert "packages: 2, dependency records: 2" in result.output
        assert "firefox" in result.output

    def test_without_saved_state(self, tmp_path):
        result = runner.invoke(app, ["show", "--state", str(tmp_path / "missing.json")])
        assert result.exit_code == 1
