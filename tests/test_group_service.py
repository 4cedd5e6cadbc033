"""Tests for group membership and group-wide aggregation."""
import pytest

from app.models import Device, DeviceType, RoleName, User
from app.services.ecowitt_service import ecowitt_service
from app.services.group_service import MissingDevicesError, group_service, rekey_by_device
from app.services.seed_service import ensure_role
from app.services.time_ranges import get_time_range

from conftest import make_device, realtime_payload


async def create_owner(db, email="owner@agritech.io") -> User:
    role = await ensure_role(db, RoleName.PUBLIC)
    user = User(email=email, hashed_password="x", first_name="Owner", last_name="One", role=role)
    db.add(user)
    await db.flush()
    return user


async def create_devices(db, user: User, count: int) -> list[Device]:
    devices = [
        Device(
            user_id=user.id,
            name=f"Station {i}",
            mac=f"AA:BB:CC:DD:EE:{i:02X}",
            application_key=f"APPKEY{i:04d}",
            api_key=f"apikey-{i}",
            device_type=DeviceType.SOIL,
        )
        for i in range(1, count + 1)
    ]
    db.add_all(devices)
    await db.flush()
    return devices


class TestRekey:
    def test_keys_by_name_with_device_info(self):
        """Results are keyed by device name and carry deviceInfo."""
        devices = [make_device(1), make_device(2)]
        rekeyed = rekey_by_device(devices, {d.mac: realtime_payload() for d in devices})
        assert set(rekeyed) == {"Station 1", "Station 2"}
        assert rekeyed["Station 1"]["deviceInfo"] == {
            "deviceId": str(devices[0].id),
            "deviceName": "Station 1",
            "mac": devices[0].mac,
        }

    def test_duplicate_names_do_not_collide(self):
        """Every device sharing a name is keyed by name plus MAC."""
        devices = [make_device(1, name="Field"), make_device(2, name="Field"), make_device(3, name="Ridge")]
        rekeyed = rekey_by_device(devices, {d.mac: {"code": 0} for d in devices})
        assert set(rekeyed) == {f"Field ({devices[0].mac})", f"Field ({devices[1].mac})", "Ridge"}

    def test_duplicate_names_ignore_order(self):
        """Swapping devices that share a name yields the same keys and entries."""
        a, b = make_device(1, name="Field"), make_device(2, name="Field")
        results = {a.mac: realtime_payload(temperature="60"), b.mac: realtime_payload(temperature="70")}
        assert rekey_by_device([a, b], results) == rekey_by_device([b, a], results)

    def test_missing_result_marked(self):
        """A device with no fan-out result is reported as an error entry."""
        rekeyed = rekey_by_device([make_device(1)], {})
        assert rekeyed["Station 1"]["error"] == "No response"


class TestMembership:
    async def test_create_and_replace_members(self, db_session):
        """Replacing members swaps the set wholesale."""
        user = await create_owner(db_session)
        d1, d2, d3 = await create_devices(db_session, user, 3)

        group = await group_service.create_group(db_session, user.id, "North field", [d1.id, d2.id])
        assert {m.device_id for m in group.members} == {d1.id, d2.id}

        group = await group_service.update_group(db_session, group, user.id, device_ids=[d2.id, d3.id])
        summary = group_service.to_summary(group)
        assert set(summary["device_ids"]) == {d2.id, d3.id}
        assert summary["device_count"] == 2

    async def test_unknown_device_rejected_atomically(self, db_session):
        """A foreign or unknown device id fails the whole replacement."""
        user = await create_owner(db_session)
        other = await create_owner(db_session, email="other@agritech.io")
        (mine,) = await create_devices(db_session, user, 1)
        foreign = Device(
            user_id=other.id, name="Foreign", mac="11:22:33:44:55:66",
            application_key="FOREIGN", api_key="k", device_type=DeviceType.SOIL
        )
        db_session.add(foreign)
        await db_session.flush()

        group = await group_service.create_group(db_session, user.id, "Mine", [mine.id])
        with pytest.raises(MissingDevicesError) as exc_info:
            await group_service.update_group(db_session, group, user.id, device_ids=[mine.id, foreign.id])
        assert exc_info.value.missing_ids == [foreign.id]
        assert [m.device_id for m in group.members] == [mine.id]

    async def test_duplicate_ids_collapse(self, db_session):
        """Repeating a device id adds it once."""
        user = await create_owner(db_session)
        (device,) = await create_devices(db_session, user, 1)
        group = await group_service.create_group(db_session, user.id, "Dupes", [device.id, device.id])
        assert len(group.members) == 1


class TestAggregation:
    async def test_realtime_is_order_independent(self, db_session, monkeypatch):
        """The same members in a different order produce the same result."""
        user = await create_owner(db_session)
        d1, d2 = await create_devices(db_session, user, 2)

        async def fake_multiple_realtime(devices):
            return {d.mac: realtime_payload(temperature=str(60 + i)) for i, d in enumerate(sorted(devices, key=lambda x: x.mac))}

        monkeypatch.setattr(ecowitt_service, "get_multiple_realtime", fake_multiple_realtime)

        first = await group_service.create_group(db_session, user.id, "A", [d1.id, d2.id])
        second = await group_service.create_group(db_session, user.id, "B", [d2.id, d1.id])

        assert await group_service.get_group_realtime(first) == await group_service.get_group_realtime(second)

    async def test_shared_names_are_order_independent(self, db_session, monkeypatch):
        """Members sharing a name get the same keys whichever order they were added in."""
        user = await create_owner(db_session)
        d1, d2 = await create_devices(db_session, user, 2)
        d1.name = d2.name = "Field"
        await db_session.flush()

        async def fake_multiple_realtime(devices):
            return {d.mac: realtime_payload(temperature=d.mac[-2:]) for d in devices}

        monkeypatch.setattr(ecowitt_service, "get_multiple_realtime", fake_multiple_realtime)

        first = await group_service.create_group(db_session, user.id, "A", [d1.id, d2.id])
        second = await group_service.create_group(db_session, user.id, "B", [d2.id, d1.id])

        forward = await group_service.get_group_realtime(first)
        assert forward == await group_service.get_group_realtime(second)
        assert set(forward) == {f"Field ({d1.mac})", f"Field ({d2.mac})"}
        assert forward[f"Field ({d2.mac})"]["deviceInfo"]["deviceId"] == str(d2.id)

    async def test_history_uses_one_range(self, db_session, monkeypatch):
        """Group history asks the vendor once per device with the group's range."""
        user = await create_owner(db_session)
        devices = await create_devices(db_session, user, 2)
        captured = {}

        async def fake_multiple_history(devs, start, end):
            captured["range"] = (start, end)
            return {d.mac: {"code": 0, "data": {}} for d in devs}

        monkeypatch.setattr(ecowitt_service, "get_multiple_history", fake_multiple_history)

        group = await group_service.create_group(db_session, user.id, "G", [d.id for d in devices])
        time_range = get_time_range("week")
        result = await group_service.get_group_history(group, time_range)

        assert captured["range"] == time_range.as_vendor_strings()
        assert set(result) == {"Station 1", "Station 2"}
