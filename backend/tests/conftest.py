from __future__ import annotations

from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from grantmaster.config import settings
from grantmaster.main import create_app


@pytest.fixture()
def client(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setattr(settings, "database_url", f"sqlite:///{tmp_path}/grantmaster.db")
    monkeypatch.setattr(settings, "auth_enabled", False)
    with TestClient(create_app()) as test_client:
        yield test_client
