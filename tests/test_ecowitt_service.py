"""Tests for the EcoWitt client against a mocked transport."""
import httpx
import pytest

from app.services.ecowitt_service import EcowittAPIError, EcowittService, EcowittValidationError

from conftest import make_device, realtime_payload

BASE = "https://vendor.test/api/v3"


def service_with(handler) -> EcowittService:
    return EcowittService(base_url=BASE, transport=httpx.MockTransport(handler))


class TestSingleCalls:
    async def test_realtime_sends_expected_params(self):
        """Realtime calls hit /device/real_time with keys, MAC and units."""
        seen = {}

        def handler(request: httpx.Request):
            seen["path"] = request.url.path
            seen["params"] = dict(request.url.params)
            return httpx.Response(200, json=realtime_payload())

        service = service_with(handler)
        body = await service.get_realtime("APPKEY0001", "apikey-1", "AA:BB:CC:DD:EE:01")
        await service.close()

        assert body["code"] == 0
        assert seen["path"] == "/api/v3/device/real_time"
        assert seen["params"]["mac"] == "AA:BB:CC:DD:EE:01"
        assert seen["params"]["call_back"] == "all"

    async def test_non_zero_code_raises(self):
        """A vendor error code becomes EcowittAPIError with the vendor message."""
        service = service_with(lambda request: httpx.Response(200, json={"code": 40010, "msg": "Illegal Application_Key"}))
        with pytest.raises(EcowittAPIError, match="Illegal Application_Key"):
            await service.get_info("APPKEY0001", "apikey-1", "AA:BB:CC:DD:EE:01")
        await service.close()

    async def test_http_error_raises(self):
        """HTTP failures are wrapped."""
        service = service_with(lambda request: httpx.Response(503))
        with pytest.raises(EcowittAPIError, match="HTTP 503"):
            await service.get_realtime("APPKEY0001", "apikey-1", "AA:BB:CC:DD:EE:01")
        await service.close()

    async def test_invalid_params_never_reach_vendor(self):
        """Validation errors are raised before any request is sent."""
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(200, json={"code": 0, "data": {}})

        service = service_with(handler)
        with pytest.raises(EcowittValidationError) as exc_info:
            await service.get_history(
                "APPKEY0001", "apikey-1", "not-a-mac", "2026-01-02T00:00:00Z", "2026-01-01T00:00:00Z"
            )
        await service.close()

        assert calls == []
        assert "mac must be in format FF:FF:FF:FF:FF:FF" in exc_info.value.errors
        assert "start_date must be before end_date" in exc_info.value.errors


class TestFanOut:
    async def test_one_failure_does_not_fail_the_batch(self):
        """Every device gets an entry; a failing one carries an error."""
        devices = [make_device(1), make_device(2), make_device(3)]
        failing_mac = devices[1].mac

        def handler(request: httpx.Request):
            if request.url.params["mac"] == failing_mac:
                return httpx.Response(500)
            return httpx.Response(200, json=realtime_payload())

        service = service_with(handler)
        results = await service.get_multiple_realtime(devices)
        await service.close()

        assert set(results) == {d.mac for d in devices}
        assert "error" in results[failing_mac]
        assert results[devices[0].mac]["code"] == 0
        assert results[devices[2].mac]["code"] == 0

    async def test_history_fan_out_passes_range(self):
        """Every history call uses the same range."""
        ranges = set()

        def handler(request: httpx.Request):
            ranges.add((request.url.params["start_date"], request.url.params["end_date"]))
            return httpx.Response(200, json={"code": 0, "msg": "success", "data": {}})

        service = service_with(handler)
        results = await service.get_multiple_history(
            [make_device(1), make_device(2)], "2026-01-01T00:00:00Z", "2026-01-02T00:00:00Z"
        )
        await service.close()

        assert len(results) == 2
        assert ranges == {("2026-01-01T00:00:00Z", "2026-01-02T00:00:00Z")}
