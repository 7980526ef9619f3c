import pytest
from httpx import ASGITransport, AsyncClient

from config import Settings
from main import create_app


class RecordingAlerter:
    def __init__(self):
        self.messages = []

    def send_stock_alert(self, message: str) -> bool:
        self.messages.append(message)
        return True


@pytest.fixture
def settings(tmp_path):
    return Settings(
        database_url=f"sqlite:///{tmp_path / 'pharmacy.db'}",
        secret_key="test-secret",
        upload_dir=str(tmp_path / "uploads"),
    )


@pytest.fixture
async def app(settings):
    app = create_app(settings)
    app.state.alerter = RecordingAlerter()
    await app.state.store.connect()
    yield app
    await app.state.store.disconnect()


@pytest.fixture
async def client(app):
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://testserver") as client:
        yield client


async def login_headers(client, path, email, password):
    resp = await client.post(path, json={"email": email, "password": password})
    assert resp.status_code == 200, resp.text
    return {"Authorization": resp.json()["token"]}


@pytest.fixture
async def super_admin_headers(client):
    resp = await client.post("/admin_register", json={"email": "root@pharmacy.com", "password": "rootpass123"})
    assert resp.status_code == 201
    return await login_headers(client, "/admin_login", "root@pharmacy.com", "rootpass123")
