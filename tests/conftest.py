import pytest
from fastapi.testclient import TestClient

from config import get_settings


@pytest.fixture
def client(tmp_path, monkeypatch):
    monkeypatch.setenv("FINANCE_DATABASE_URL", f"sqlite:///{tmp_path / 'finance.db'}")
    monkeypatch.setenv("FINANCE_TIMEZONE", "UTC")
    get_settings.cache_clear()
    from main import app

    with TestClient(app) as test_client:
        yield test_client
    get_settings.cache_clear()
