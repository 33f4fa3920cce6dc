"""Tests for crawlertrap.cli."""

import importlib
import json

import pytest

from crawlertrap import cli
from crawlertrap.visitors import VisitCategory, VisitorLog


@pytest.fixture
def config_file(tmp_path):
    cfg = tmp_path / "crawlertrap.yaml"
    cfg.write_text(f"data_dir: {tmp_path}\nport: 9099\n", "utf-8")
    return cfg


class TestMain:
    def test_no_subcommand(self, capsys):
        assert cli.main([]) == 2
        assert "usage: crawlertrap" in capsys.readouterr().out

    def test_settings(self, config_file, capsys):
        assert cli.main(["settings", "--config", str(config_file)]) == 0
        out = json.loads(capsys.readouterr().out)
        assert out["port"] == 9099

    def test_visitors(self, config_file, tmp_path, capsys):
        log = VisitorLog(tmp_path / "visitors.json")
        log.add("192.0.2.3", "ua", "/secret-page", VisitCategory.SECRET)
        log.add("192.0.2.4", "ua", "/missing", VisitCategory.NOT_FOUND)

        assert cli.main(["visitors", "--config", str(config_file)]) == 0
        out = json.loads(capsys.readouterr().out)
        assert [v["requestPath"] for v in out] == ["/secret-page", "/missing"]

    def test_visitors_empty(self, config_file, capsys):
        assert cli.main(["visitors", "--config", str(config_file)]) == 0
        assert json.loads(capsys.readouterr().out) == []

    def test_serve(self, config_file, tmp_path, monkeypatch):
        calls = {}

        def fake_run(app, **kwargs):
            calls["app"] = app
            calls.update(kwargs)

        monkeypatch.setattr(cli.uvicorn, "run", fake_run)
        assert cli.main(["serve", "--config", str(config_file), "--host", "0.0.0.0", "--log-level", "warning"]) == 0

        assert calls["host"] == "0.0.0.0"
        assert calls["port"] == 9099
        assert calls["log_level"] == "warning"
        assert calls["app"].state.visitor_log.path == tmp_path / "visitors.json"

    def test_serve_ignores_bad_config_env_when_flag_given(self, config_file, tmp_path, monkeypatch):
        monkeypatch.setenv("CRAWLERTRAP_CONFIG", str(tmp_path / "missing.yaml"))
        calls = {}
        monkeypatch.setattr(cli.uvicorn, "run", lambda app, **kwargs: calls.update(app=app, **kwargs))

        assert cli.main(["serve", "--config", str(config_file)]) == 0
        assert calls["app"].state.visitor_log.path == tmp_path / "visitors.json"


class TestServerImport:
    def test_import_builds_no_app(self, tmp_path, monkeypatch):
        monkeypatch.setenv("CRAWLERTRAP_CONFIG", str(tmp_path / "missing.yaml"))
        from crawlertrap import server

        importlib.reload(server)
        assert not hasattr(server, "app")
