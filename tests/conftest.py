"""
Shared fixtures: a throwaway SQLite database, an ASGI client and a
registered user with a bearer token.
"""
import os
import tempfile

# Settings are read at import time, so the test database must be chosen first
_DB_DIR = tempfile.mkdtemp(prefix="agritech-tests-")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_DB_DIR}/test.db"
os.environ.pop("POSTGRES_URL", None)
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ["SMTP_USER"] = ""
os.environ["SMTP_PASSWORD"] = ""
os.environ.pop("OPENAI_API_KEY", None)
os.environ.pop("OPENWEATHER_API_KEY", None)

import logging
from types import SimpleNamespace
from uuid import uuid4

import httpx
import pytest

from app.main import app
from app.models import Device, DeviceType
from app.models.database import Base, engine, async_session_maker
from app.services.seed_service import seed_reference_data

logging.getLogger("app").setLevel(logging.WARNING)

API = "/api"


@pytest.fixture()
async def database():
    """Fresh schema with roles and countries for every test."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)
    async with async_session_maker() as session:
        await seed_reference_data(session)
        await session.commit()
    yield
    await engine.dispose()


@pytest.fixture()
async def db_session(database):
    async with async_session_maker() as session:
        yield session


@pytest.fixture()
async def client(database):
    """HTTP client talking to the app in-process."""
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as ac:
        yield ac


async def register_user(client, email: str = "grower@agritech.io", password: str = "s3cure-pass") -> dict:
    response = await client.post(f"{API}/register", json={
        "first_name": "Ana",
        "last_name": "Campo",
        "email": email,
        "password": password,
    })
    assert response.status_code == 201, response.text
    return response.json()


@pytest.fixture()
async def auth_headers(client):
    """Bearer header for a freshly registered user."""
    body = await register_user(client)
    return {"Authorization": f"Bearer {body['access_token']}"}


def device_payload(suffix: int = 1, **overrides) -> dict:
    payload = {
        "name": f"Station {suffix}",
        "mac": f"AA:BB:CC:DD:EE:{suffix:02X}",
        "device_type": "Climate",
        "application_key": f"APPKEY{suffix:04d}",
        "api_key": f"apikey-{suffix}",
    }
    payload.update(overrides)
    return payload


def make_device(suffix: int = 1, name: str = None) -> Device:
    """Unsaved registry row for service-level tests."""
    return Device(
        id=uuid4(),
        user_id=uuid4(),
        name=name or f"Station {suffix}",
        mac=f"AA:BB:CC:DD:EE:{suffix:02X}",
        application_key=f"APPKEY{suffix:04d}",
        api_key=f"apikey-{suffix}",
        device_type=DeviceType.CLIMATE,
    )


def realtime_payload(temperature: str = "72.5", humidity: str = "55") -> dict:
    return {
        "code": 0,
        "msg": "success",
        "time": "1760000000",
        "data": {
            "outdoor": {
                "temperature": {"time": "1760000000", "unit": "ºF", "value": temperature},
                "humidity": {"time": "1760000000", "unit": "%", "value": humidity},
            },
            "pressure": {
                "relative": {"time": "1760000000", "unit": "inHg", "value": "29.92"},
                "absolute": {"time": "1760000000", "unit": "inHg", "value": "29.80"},
            },
            "soil_ch1": {
                "soilmoisture": {"time": "1760000000", "unit": "%", "value": "41"},
            },
        },
    }


def history_payload() -> dict:
    return {
        "code": 0,
        "msg": "success",
        "time": "1760000000",
        "data": {
            "indoor": {
                "temperature": {
                    "unit": "ºF",
                    "list": {"1760000300": "71.0", "1760000000": "70.0", "1760000600": "72.0"},
                },
                "humidity": {
                    "unit": "%",
                    "list": {"1760000000": "50", "1760000300": "52"},
                },
            },
        },
    }


def info_payload(latitude: str = "4.6097", longitude: str = "-74.0817") -> dict:
    return {
        "code": 0,
        "msg": "success",
        "data": {
            "id": 12345,
            "name": "Vendor Station",
            "mac": "AA:BB:CC:DD:EE:01",
            "type": 1,
            "date_zone_id": "America/Bogota",
            "createtime": 1700000000,
            "longitude": longitude,
            "latitude": latitude,
            "stationtype": "GW1100A_V2.3.1",
            "last_update": {},
        },
    }


def fake_message(sendertype, content: str):
    return SimpleNamespace(sendertype=sendertype, content=content)
