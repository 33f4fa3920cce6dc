import pytest

from crawlertrap.settings import AppSettings
from crawlertrap.visitors import VisitorLog


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for name in (
        "CRAWLERTRAP_CONFIG",
        "CRAWLERTRAP_DATA_DIR",
        "CRAWLERTRAP_HOST",
        "CRAWLERTRAP_PORT",
        "CRAWLERTRAP_SITE_TITLE",
        "CRAWLERTRAP_LOG_LEVEL",
    ):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def log_path(tmp_path):
    return tmp_path / "visitors.json"


@pytest.fixture
def visitor_log(log_path):
    return VisitorLog(log_path)


@pytest.fixture
def settings(tmp_path):
    return AppSettings(data_dir=tmp_path, site_title="Test Trap")
