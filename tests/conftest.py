import io

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from PIL import Image

from vidcom.config import Settings
from vidcom.main import create_app, init_database

ADMIN_EMAIL = "admin@vidcom.test"
ADMIN_PASSWORD = "admin123"
JOB_SECRET = "job-secret-123"


@pytest.fixture
def settings(tmp_path):
    return Settings(
        _env_file=None,
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'test.sqlite3'}",
        data_dir=str(tmp_path / "objects"),
        public_base_url="http://test",
        signing_secret="test-signing-secret",
        admin_email=ADMIN_EMAIL,
        admin_password=ADMIN_PASSWORD,
        job_secret=JOB_SECRET,
        mindar_dispatch_mode="none",
    )


@pytest_asyncio.fixture
async def app(settings):
    app = create_app(settings)
    await init_database(app)
    yield app
    await app.state.database.dispose()


@pytest_asyncio.fixture
async def client(app):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest_asyncio.fixture
async def auth_headers(client):
    response = await client.post(
        "/auth/login",
        json={"email": ADMIN_EMAIL, "password": ADMIN_PASSWORD},
    )
    assert response.status_code == 200
    return {"Authorization": f"Bearer {response.json()['token']}"}


@pytest.fixture
def job_headers():
    return {"X-Job-Secret": JOB_SECRET}


def make_png(color=(200, 30, 30), size=(32, 32)) -> bytes:
    buf = io.BytesIO()
    Image.new("RGB", size, color).save(buf, format="PNG")
    return buf.getvalue()


async def upload_asset(client, headers, kind, data, mime, filename):
    """Sign, PUT and complete an upload; returns the asset JSON."""
    sign = await client.post(
        "/uploads/sign",
        headers=headers,
        json={"kind": kind, "mime": mime, "filename": filename, "size": len(data)},
    )
    assert sign.status_code == 200, sign.text
    put = await client.put(sign.json()["uploadUrl"], content=data, headers={"content-type": mime})
    assert put.status_code == 200, put.text
    complete = await client.post(
        "/uploads/complete",
        headers=headers,
        json={
            "kind": kind,
            "storageKey": sign.json()["storageKey"],
            "mime": mime,
            "filename": filename,
            "size": len(data),
        },
    )
    assert complete.status_code == 201, complete.text
    return complete.json()


async def create_experience(client, headers, name="Demo", **extra):
    response = await client.post("/experiences", headers=headers, json={"name": name, **extra})
    assert response.status_code == 201, response.text
    return response.json()


async def create_pair(client, headers, experience_id, threshold=0.8, priority=0):
    image = await upload_asset(client, headers, "image", make_png(), "image/png", "target.png")
    video = await upload_asset(client, headers, "video", b"\x00\x00\x00\x18ftypmp42", "video/mp4", "clip.mp4")
    response = await client.post(
        f"/experiences/{experience_id}/pairs",
        headers=headers,
        json={
            "image_asset_id": image["id"],
            "video_asset_id": video["id"],
            "image_fingerprint": {"v": 1, "w": 2, "h": 2, "data": [0, 0, 0, 0]},
            "match_threshold": threshold,
            "priority": priority,
        },
    )
    assert response.status_code == 201, response.text
    return response.json(), image, video
