from datetime import datetime, timedelta, timezone

import pytest


class FrozenClock:
    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


def _reset_caches() -> None:
    from casefile.config import get_settings
    from casefile.desk import reset_case_desks
    from casefile.storage_backends.factory import clear_backend_cache

    get_settings.cache_clear()
    reset_case_desks()
    clear_backend_cache()


@pytest.fixture(params=["file", "sqlite"])
def repo_root(tmp_path, monkeypatch, request):
    backend_name = request.param
    db_path = tmp_path / "casefile.sqlite"

    monkeypatch.setenv("CASEFILE_REPO_ROOT", str(tmp_path))
    monkeypatch.setenv("CASEFILE_STATE_DIR", "state")
    monkeypatch.setenv("CASEFILE_ENGINE_LATENCY", "0")
    monkeypatch.setenv("STORAGE_BACKEND", backend_name)
    if backend_name == "sqlite":
        monkeypatch.setenv("DATABASE_URL", str(db_path))
    else:
        monkeypatch.delenv("DATABASE_URL", raising=False)
    monkeypatch.delenv("SQLITE_PATH", raising=False)

    _reset_caches()
    yield tmp_path
    _reset_caches()


@pytest.fixture()
def settings(repo_root):
    from casefile.config import get_settings

    return get_settings()


@pytest.fixture()
def backend(settings):
    from casefile.storage_backends.factory import get_storage_backend

    return get_storage_backend(settings)


@pytest.fixture()
def blobs(backend):
    return backend.blobs


@pytest.fixture()
def clock():
    return FrozenClock(datetime(2026, 3, 14, 9, 30, tzinfo=timezone.utc))


@pytest.fixture()
def client(repo_root):
    from fastapi.testclient import TestClient
    from casefile.app import app

    with TestClient(app) as test_client:
        yield test_client
