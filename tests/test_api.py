"""End-to-end tests through the HTTP API with vendor, storage and AI calls faked."""
import pytest

from app.services.ai_service import AIServiceError, ai_service
from app.services.ecowitt_service import EcowittAPIError, ecowitt_service
from app.services.storage_service import UploadTimeoutError, storage_service
from app.services.pdf_reader import pdf_reader
from app.services.weather_service import WeatherServiceError, weather_service

from conftest import API, device_payload, history_payload, info_payload, realtime_payload
from test_pdf_reader import sample_pdf


@pytest.fixture()
def vendor(monkeypatch):
    """Every vendor call succeeds; failing MACs can be added per test."""
    failing = set()

    async def get_realtime(application_key, api_key, mac):
        if mac in failing:
            raise EcowittAPIError("Ecowitt API Error: HTTP 500")
        return realtime_payload()

    async def get_history(application_key, api_key, mac, start, end, **kwargs):
        return history_payload()

    async def get_info(application_key, api_key, mac):
        return info_payload()

    async def get_multiple_realtime(devices):
        return {d.mac: ({"error": "down"} if d.mac in failing else realtime_payload()) for d in devices}

    async def get_multiple_history(devices, start, end):
        return {d.mac: history_payload() for d in devices}

    async def get_weather_overview(lat, lon, lang=None):
        return {"location": {"lat": lat, "lon": lon}, "current": {"temp": 20.0}, "daily": [], "hourly": []}

    monkeypatch.setattr(ecowitt_service, "get_realtime", get_realtime)
    monkeypatch.setattr(ecowitt_service, "get_history", get_history)
    monkeypatch.setattr(ecowitt_service, "get_info", get_info)
    monkeypatch.setattr(ecowitt_service, "get_multiple_realtime", get_multiple_realtime)
    monkeypatch.setattr(ecowitt_service, "get_multiple_history", get_multiple_history)
    monkeypatch.setattr(weather_service, "get_weather_overview", get_weather_overview)
    return failing


@pytest.fixture()
def uploads(monkeypatch):
    """Record uploads instead of sending them to object storage."""
    stored = []

    async def upload_bytes(content, file_name, folder=None, timeout=None):
        stored.append((file_name, content))
        return f"https://storage.test/{file_name}"

    monkeypatch.setattr(storage_service, "upload_bytes", upload_bytes)
    return stored


@pytest.fixture()
def assistant(monkeypatch):
    """Canned AI replies; the last call's arguments are kept."""
    calls = []

    async def generate_response(question, **kwargs):
        calls.append({"question": question, **kwargs})
        return f"Answer to: {question}"

    monkeypatch.setattr(ai_service, "generate_response", generate_response)
    return calls


async def create_device(client, headers, suffix=1, **overrides) -> dict:
    response = await client.post(f"{API}/devices", headers=headers, json=device_payload(suffix, **overrides))
    assert response.status_code == 201, response.text
    return response.json()


class TestDevices:
    async def test_crud(self, client, auth_headers):
        """Devices can be created, listed, updated and deleted by their owner."""
        device = await create_device(client, auth_headers, mac="aa-bb-cc-dd-ee-01")
        assert device["mac"] == "AA:BB:CC:DD:EE:01"
        assert "api_key" not in device

        listing = await client.get(f"{API}/devices", headers=auth_headers)
        assert listing.json()["total"] == 1

        updated = await client.put(f"{API}/devices/{device['id']}", headers=auth_headers, json={"name": "Greenhouse"})
        assert updated.json()["name"] == "Greenhouse"
        assert updated.json()["mac"] == device["mac"]

        deleted = await client.delete(f"{API}/devices/{device['id']}", headers=auth_headers)
        assert deleted.status_code == 204
        assert (await client.get(f"{API}/devices/{device['id']}", headers=auth_headers)).status_code == 404

    async def test_conflicts(self, client, auth_headers):
        """MAC and application key are unique across the registry."""
        await create_device(client, auth_headers, 1)
        same_mac = await client.post(f"{API}/devices", headers=auth_headers, json=device_payload(2, mac="AA:BB:CC:DD:EE:01"))
        assert same_mac.status_code == 409
        assert "MAC" in same_mac.json()["detail"]
        same_key = await client.post(f"{API}/devices", headers=auth_headers, json=device_payload(3, application_key="APPKEY0001"))
        assert same_key.status_code == 409
        assert "Application Key" in same_key.json()["detail"]

    async def test_invalid_mac(self, client, auth_headers):
        """Malformed MACs fail validation."""
        response = await client.post(f"{API}/devices", headers=auth_headers, json=device_payload(1, mac="nope"))
        assert response.status_code == 422

    async def test_devices_are_private(self, client, auth_headers):
        """Another user's device looks like it does not exist."""
        device = await create_device(client, auth_headers)
        other = await client.post(f"{API}/register", json={
            "first_name": "Luis", "last_name": "Rio", "email": "luis@agritech.io", "password": "s3cure-pass",
        })
        headers = {"Authorization": f"Bearer {other.json()['access_token']}"}
        assert (await client.get(f"{API}/devices/{device['id']}", headers=headers)).status_code == 404

    async def test_realtime_envelope(self, client, auth_headers, vendor):
        """Realtime data carries the deviceInfo envelope."""
        device = await create_device(client, auth_headers)
        response = await client.get(f"{API}/devices/{device['id']}/realtime", headers=auth_headers)
        assert response.status_code == 200
        body = response.json()
        assert body["code"] == 0
        assert body["deviceInfo"] == {"deviceId": device["id"], "deviceName": device["name"], "mac": device["mac"]}

    async def test_realtime_vendor_failure(self, client, auth_headers, vendor):
        """Vendor failures surface as 502."""
        device = await create_device(client, auth_headers)
        vendor.add(device["mac"])
        response = await client.get(f"{API}/devices/{device['id']}/realtime", headers=auth_headers)
        assert response.status_code == 502

    async def test_history_range(self, client, auth_headers, vendor):
        """History includes the resolved range; unknown tags are rejected."""
        device = await create_device(client, auth_headers)
        response = await client.get(f"{API}/devices/{device['id']}/history", headers=auth_headers, params={"rangeType": "week"})
        assert response.status_code == 200
        assert response.json()["timeRange"]["description"] == "Last week"

        bad = await client.get(f"{API}/devices/{device['id']}/history", headers=auth_headers, params={"rangeType": "decade"})
        assert bad.status_code == 400

    async def test_info_and_characteristics(self, client, auth_headers, vendor):
        """Info merges registry and vendor data with current readings."""
        device = await create_device(client, auth_headers)
        info = (await client.get(f"{API}/devices/{device['id']}/info", headers=auth_headers)).json()
        assert info["device"]["mac"] == device["mac"]
        assert info["vendorInfo"]["stationtype"] == "GW1100A_V2.3.1"
        assert info["currentData"]["temperature"]["value"] == 72.5

        characteristics = (await client.get(f"{API}/devices/{device['id']}/characteristics", headers=auth_headers)).json()
        assert characteristics["timezone"] == "America/Bogota"


class TestGroupsAndComparison:
    async def test_group_lifecycle(self, client, auth_headers, vendor):
        """Groups aggregate member data keyed by device name."""
        d1 = await create_device(client, auth_headers, 1)
        d2 = await create_device(client, auth_headers, 2)
        d3 = await create_device(client, auth_headers, 3)

        created = await client.post(f"{API}/groups", headers=auth_headers, json={"name": "Field", "device_ids": [d1["id"], d2["id"]]})
        assert created.status_code == 201
        group = created.json()
        assert group["device_count"] == 2

        vendor.add(d2["mac"])
        realtime = (await client.get(f"{API}/groups/{group['id']}/realtime", headers=auth_headers)).json()
        assert set(realtime) == {"Station 1", "Station 2"}
        assert realtime["Station 2"]["error"] == "down"
        assert realtime["Station 1"]["deviceInfo"]["deviceId"] == d1["id"]

        updated = await client.put(f"{API}/groups/{group['id']}", headers=auth_headers, json={"device_ids": [d3["id"]]})
        assert updated.json()["device_ids"] == [d3["id"]]

        members = (await client.get(f"{API}/groups/{group['id']}/devices", headers=auth_headers)).json()
        assert [m["id"] for m in members] == [d3["id"]]

        history = (await client.get(f"{API}/groups/{group['id']}/history", headers=auth_headers, params={"rangeType": "day"})).json()
        assert set(history) == {"Station 3"}

        assert (await client.delete(f"{API}/groups/{group['id']}", headers=auth_headers)).status_code == 204
        assert (await client.get(f"{API}/devices/{d3['id']}", headers=auth_headers)).status_code == 200

    async def test_group_with_unknown_device(self, client, auth_headers):
        """Unknown device ids are listed in the 404."""
        response = await client.post(f"{API}/groups", headers=auth_headers, json={
            "name": "Ghosts", "device_ids": ["00000000-0000-0000-0000-000000000001"],
        })
        assert response.status_code == 404
        assert response.json()["detail"]["missingDeviceIds"] == ["00000000-0000-0000-0000-000000000001"]

    async def test_compare(self, client, auth_headers, vendor):
        """Comparisons return one entry per device and enforce the device cap."""
        devices = [await create_device(client, auth_headers, i) for i in range(1, 6)]
        ids = [d["id"] for d in devices]

        response = await client.post(f"{API}/compare/history", headers=auth_headers, json={"device_ids": ids[:2], "rangeType": "day"})
        assert response.status_code == 200
        body = response.json()
        assert [d["id"] for d in body["devices"]] == ids[:2]
        assert body["timeRange"]["description"] == "Last day"

        realtime = await client.post(f"{API}/compare/realtime", headers=auth_headers, json={"device_ids": ids[:1]})
        assert realtime.json()["devices"][0]["data"]["code"] == 0

        too_many = await client.post(f"{API}/compare/history", headers=auth_headers, json={"device_ids": ids})
        assert too_many.status_code == 400

        none_found = await client.post(f"{API}/compare/realtime", headers=auth_headers, json={
            "device_ids": ["00000000-0000-0000-0000-000000000001"],
        })
        assert none_found.status_code == 404


class TestChat:
    async def test_message_exchange(self, client, auth_headers, assistant):
        """Posting a message stores it and the AI reply in order."""
        chat = (await client.post(f"{API}/chats", headers=auth_headers, json={"name": "Irrigation"})).json()

        response = await client.post(f"{API}/messages", headers=auth_headers, json={
            "chat_id": chat["id"], "content": "When should I water?", "language": "en",
        })
        assert response.status_code == 201
        body = response.json()
        assert body["user_message"]["sendertype"] == "user"
        assert body["ai_message"]["sendertype"] == "ai"
        assert body["ai_message"]["content"] == "Answer to: When should I water?"
        assert assistant[-1]["language"] == "en"

        second = await client.post(f"{API}/messages", headers=auth_headers, json={"chat_id": chat["id"], "content": "And tomorrow?"})
        assert second.status_code == 201
        history = assistant[-1]["history"]
        assert [m.content for m in history] == ["When should I water?", "Answer to: When should I water?"]

        messages = (await client.get(f"{API}/chats/{chat['id']}/messages", headers=auth_headers)).json()
        assert [m["sendertype"] for m in messages] == ["user", "ai", "user", "ai"]

    async def test_ai_failure_keeps_user_message(self, client, auth_headers, monkeypatch):
        """A failed completion returns 502 and the question stays in the chat."""
        async def failing(question, **kwargs):
            raise AIServiceError("AI Response: Failed to generate response - quota")

        monkeypatch.setattr(ai_service, "generate_response", failing)
        chat = (await client.post(f"{API}/chats", headers=auth_headers, json={"name": "Broken"})).json()

        response = await client.post(f"{API}/messages", headers=auth_headers, json={"chat_id": chat["id"], "content": "Hello?"})
        assert response.status_code == 502

        messages = (await client.get(f"{API}/chats/{chat['id']}/messages", headers=auth_headers)).json()
        assert [(m["sendertype"], m["content"]) for m in messages] == [("user", "Hello?")]

    async def test_device_questions_get_context(self, client, auth_headers, assistant, vendor):
        """Questions about stations include current device readings."""
        await create_device(client, auth_headers)
        chat = (await client.post(f"{API}/chats", headers=auth_headers, json={"name": "Devices"})).json()
        await client.post(f"{API}/messages", headers=auth_headers, json={"chat_id": chat["id"], "content": "How is my station?"})
        assert "Station 1" in assistant[-1]["device_context"]
        assert "Temperature: 72.5" in assistant[-1]["device_context"]

    async def test_chat_management(self, client, auth_headers, assistant):
        """Chats can be renamed and deleted; only user messages are editable."""
        chat = (await client.post(f"{API}/chats", headers=auth_headers, json={"name": "Draft"})).json()
        assert (await client.post(f"{API}/chats", headers=auth_headers, json={"name": "x"})).status_code == 422

        renamed = await client.put(f"{API}/chats/{chat['id']}", headers=auth_headers, json={"name": "Final"})
        assert renamed.json()["name"] == "Final"

        exchange = (await client.post(f"{API}/messages", headers=auth_headers, json={"chat_id": chat["id"], "content": "Hi"})).json()
        edited = await client.put(f"{API}/messages/{exchange['user_message']['id']}", headers=auth_headers, json={"content": "Hello"})
        assert edited.json()["content"] == "Hello"
        forbidden = await client.put(f"{API}/messages/{exchange['ai_message']['id']}", headers=auth_headers, json={"content": "x"})
        assert forbidden.status_code == 403

        regenerated = await client.post(f"{API}/chats/{chat['id']}/ai-response", headers=auth_headers, json={"question": "Summarize"})
        assert regenerated.status_code == 201
        assert regenerated.json()["sendertype"] == "ai"

        assert (await client.delete(f"{API}/messages/{exchange['ai_message']['id']}", headers=auth_headers)).status_code == 204
        assert (await client.delete(f"{API}/chats/{chat['id']}", headers=auth_headers)).status_code == 204
        assert (await client.get(f"{API}/chats/{chat['id']}/messages", headers=auth_headers)).status_code == 404

    async def test_unknown_chat(self, client, auth_headers, assistant):
        """Messages to a chat the caller does not own are rejected."""
        response = await client.post(f"{API}/messages", headers=auth_headers, json={
            "chat_id": "00000000-0000-0000-0000-000000000001", "content": "Hi",
        })
        assert response.status_code == 404


class TestFilesAndReports:
    async def test_upload_rules(self, client, auth_headers, uploads):
        """Only PDFs are accepted and stored."""
        not_pdf = await client.post(f"{API}/files", headers=auth_headers, files={"file": ("notes.txt", b"hello", "text/plain")})
        assert not_pdf.status_code == 400

        response = await client.post(f"{API}/files", headers=auth_headers, files={"file": ("soil.pdf", b"%PDF-1.4 test", "application/pdf")})
        assert response.status_code == 201
        stored = response.json()
        assert stored["content_url"] == "https://storage.test/soil.pdf"

        renamed = await client.put(f"{API}/files/{stored['id']}", headers=auth_headers, json={"file_name": "soil-2026.pdf"})
        assert renamed.json()["file_name"] == "soil-2026.pdf"
        assert len((await client.get(f"{API}/files", headers=auth_headers)).json()) == 1
        assert (await client.delete(f"{API}/files/{stored['id']}", headers=auth_headers)).status_code == 204

    async def test_upload_timeout(self, client, auth_headers, monkeypatch):
        """A storage timeout is reported as 408."""
        async def slow(content, file_name, folder=None, timeout=None):
            raise UploadTimeoutError("Upload timeout - Operation took longer than expected")

        monkeypatch.setattr(storage_service, "upload_bytes", slow)
        response = await client.post(f"{API}/files", headers=auth_headers, files={"file": ("a.pdf", b"%PDF", "application/pdf")})
        assert response.status_code == 408

    async def test_device_report_with_chat(self, client, auth_headers, vendor, uploads):
        """A device report is stored, listed and opens a chat referencing it."""
        device = await create_device(client, auth_headers)
        response = await client.post(f"{API}/reports/device", headers=auth_headers, json={
            "device_id": device["id"], "include_history": True, "history_range": "week",
        })
        assert response.status_code == 201, response.text
        body = response.json()
        assert body["format"] == "pdf"
        assert body["fileName"].startswith("weather-report-device-Station-1-")
        assert body["report"]["hasHistoricalData"] is True
        assert uploads[0][1].startswith(b"%PDF")

        chat = body["chat"]
        assert chat["chatName"].startswith("Analysis: Station 1 - ")
        messages = (await client.get(f"{API}/chats/{chat['chatId']}/messages", headers=auth_headers)).json()
        assert messages[0]["sendertype"] == "ai"
        assert messages[0]["file_id"] == body["fileId"]

        reports = (await client.get(f"{API}/reports", headers=auth_headers)).json()
        assert [r["file_name"] for r in reports] == [body["fileName"]]

    async def test_group_report_json_without_chat(self, client, auth_headers, vendor, uploads):
        """Group reports can be produced as JSON without a chat."""
        d1 = await create_device(client, auth_headers, 1)
        group = (await client.post(f"{API}/groups", headers=auth_headers, json={"name": "Field", "device_ids": [d1["id"]]})).json()

        response = await client.post(f"{API}/reports/group", headers=auth_headers, json={
            "group_id": group["id"], "format": "json", "create_chat": False,
        })
        assert response.status_code == 201
        body = response.json()
        assert body["chat"] is None
        assert body["fileName"].endswith(".json")
        assert body["report"]["metadata"]["successfulReports"] == 1
        assert b'"type": "group_report"' in uploads[0][1]

    async def test_report_errors(self, client, auth_headers, vendor, uploads):
        """Unknown devices give 404 and unknown ranges 400."""
        missing = await client.post(f"{API}/reports/device", headers=auth_headers, json={
            "device_id": "00000000-0000-0000-0000-000000000001",
        })
        assert missing.status_code == 404

        device = await create_device(client, auth_headers)
        bad_range = await client.post(f"{API}/reports/device", headers=auth_headers, json={
            "device_id": device["id"], "include_history": True, "history_range": "forever",
        })
        assert bad_range.status_code == 400
        assert uploads == []

    async def test_read_uploaded_pdf(self, client, auth_headers):
        """An uploaded PDF is parsed in place and summarized."""
        response = await client.post(
            f"{API}/read-pdf", headers=auth_headers,
            files={"file": ("advice.pdf", sample_pdf(), "application/pdf")}
        )
        assert response.status_code == 200
        body = response.json()
        assert "Soil moisture is low" in body["text"]
        assert body["word_count"] > 0

    async def test_read_stored_pdf_only_by_id(self, client, auth_headers, uploads, monkeypatch):
        """Stored files are read from their own storage URL; arbitrary URLs are not fetched."""
        fetched = []

        async def read_url(url):
            fetched.append(url)
            return "Frost expected on Tuesday."

        monkeypatch.setattr(pdf_reader, "read_url", read_url)
        stored = (await client.post(
            f"{API}/files", headers=auth_headers, files={"file": ("soil.pdf", b"%PDF-1.4 test", "application/pdf")}
        )).json()

        response = await client.post(f"{API}/read-pdf", headers=auth_headers, data={"file_id": stored["id"]})
        assert response.status_code == 200
        assert response.json()["text"] == "Frost expected on Tuesday."

        external = await client.post(
            f"{API}/read-pdf", headers=auth_headers, data={"url": "http://169.254.169.254/latest/meta-data"}
        )
        assert external.status_code == 400
        unknown = await client.post(
            f"{API}/read-pdf", headers=auth_headers, data={"file_id": "00000000-0000-0000-0000-000000000000"}
        )
        assert unknown.status_code == 404
        assert fetched == ["https://storage.test/soil.pdf"]


class TestWeatherRoutes:
    async def test_timestamp_and_daily(self, client, auth_headers, monkeypatch):
        """Point-in-time and daily lookups pass validated parameters through."""
        calls = []

        async def for_timestamp(lat, lon, dt, lang=None):
            calls.append(("timestamp", lat, lon, dt))
            return {"data": [{"dt": dt}]}

        async def daily(lat, lon, date, lang=None):
            calls.append(("daily", lat, lon, date))
            return {"date": date}

        monkeypatch.setattr(weather_service, "get_weather_for_timestamp", for_timestamp)
        monkeypatch.setattr(weather_service, "get_daily_aggregation", daily)

        point = await client.get(f"{API}/weather/timestamp", headers=auth_headers, params={"lat": 4.6, "lon": -74.1, "dt": 1760000000})
        assert point.status_code == 200
        day = await client.get(f"{API}/weather/daily", headers=auth_headers, params={"lat": 4.6, "lon": -74.1, "date": "2026-10-01"})
        assert day.json() == {"date": "2026-10-01"}
        assert calls == [("timestamp", 4.6, -74.1, 1760000000), ("daily", 4.6, -74.1, "2026-10-01")]

        bad = await client.get(f"{API}/weather/daily", headers=auth_headers, params={"lat": 95, "lon": 0, "date": "2026-10-01"})
        assert bad.status_code == 400
        assert len(calls) == 2

    async def test_provider_failure(self, client, auth_headers, monkeypatch):
        """Provider errors surface as 502."""
        async def failing(lat, lon, dt, lang=None):
            raise WeatherServiceError("OpenWeather API rate limit exceeded")

        monkeypatch.setattr(weather_service, "get_weather_for_timestamp", failing)
        response = await client.get(f"{API}/weather/timestamp", headers=auth_headers, params={"lat": 0, "lon": 0, "dt": 1})
        assert response.status_code == 502
        assert "rate limit" in response.json()["detail"]

class TestHealth:
    async def test_health(self, client):
        """The health endpoint needs no authentication."""
        response = await client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"
        integrations = response.json()["integrations"]
        assert integrations["openai"] is False
        assert integrations["email"] is False
