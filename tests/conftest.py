import pytest

from echocraft import storage as storage_mod


@pytest.fixture(autouse=True)
def isolated_storage(tmp_path, monkeypatch):
    db_path = tmp_path / "echocraft.db"
    monkeypatch.setattr(storage_mod, "DB_PATH", db_path)
    monkeypatch.delenv("ECHOCRAFT_PROXY_URL", raising=False)
    monkeypatch.delenv("ECHOCRAFT_HTTP_TIMEOUT", raising=False)
    return db_path
