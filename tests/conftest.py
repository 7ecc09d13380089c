import pytest
from httpx import ASGITransport, AsyncClient

from restfs.api import create_app
from restfs.config import Settings, get_settings
from restfs.storage import Storage


@pytest.fixture(scope="session")
def anyio_backend():
    return "asyncio"


@pytest.fixture(autouse=True)
def clean_settings(monkeypatch):
    """Make sure the tests do not pick up the environment or .env of the developer"""
    for name in ["env_file", "data_dir", "gc_interval", "access_log", "cors_origins", "prometheus"]:
        monkeypatch.delenv(f"RESTFS_{name.upper()}", raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture()
def data_dir(tmp_path):
    path = tmp_path / "data"
    path.mkdir()
    return path


@pytest.fixture()
def storage(data_dir):
    return Storage(data_dir)


@pytest.fixture()
def settings(tmp_path, data_dir):
    return Settings(
        env_file=tmp_path / ".env",
        data_dir=data_dir,
        gc_interval=0,
        access_log=str(tmp_path / "access.log"),
    )


@pytest.fixture()
def app(settings):
    app = create_app(settings)
    yield app
    app.state.access_log.close()


@pytest.fixture()
async def client(app):
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test", follow_redirects=False) as client:
        yield client
