import os

import pytest
from fastapi.testclient import TestClient

from foodlens.services import openai_client, storage


@pytest.fixture(autouse=True)
def upload_dir(tmp_path, monkeypatch):
    d = tmp_path / "uploads"
    d.mkdir()
    monkeypatch.setattr(storage, "UPLOAD_DIR", str(d))
    return d


@pytest.fixture
def client():
    from main import app

    # 不用 with：測試不跑 lifespan 的金鑰檢查
    return TestClient(app)


@pytest.fixture
def fake_model(monkeypatch):
    """Replace the vision call; records (path, mime, existed) per call."""
    state = {"text": "", "error": None, "calls": []}

    def fake(path, mime_type="image/jpeg"):
        state["calls"].append({"path": path, "mime": mime_type, "existed": os.path.exists(path)})
        if state["error"] is not None:
            raise state["error"]
        return state["text"]

    monkeypatch.setattr(openai_client, "analyze_food_file", fake)
    return state
