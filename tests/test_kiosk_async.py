# tests/test_kiosk_async.py
import httpx
import pytest

from mediq.main import app


@pytest.fixture
async def async_client():
    async with httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


@pytest.mark.asyncio
async def test_kiosk_scan_then_rescan(async_client, master_data, make_schedule):
    make_schedule(examination_ids=[master_data.blood_test_id])

    first = await async_client.post("/api/reception/checkin", json={"patientCode": "P00001"})
    second = await async_client.post("/api/reception/checkin", json={"patientCode": "P00001"})

    assert first.status_code == 200
    assert first.json()["data"]["alreadyVisited"] is False
    assert second.json()["data"]["alreadyVisited"] is True
    assert second.json()["data"]["voiceText"] == first.json()["data"]["voiceText"]


@pytest.mark.asyncio
async def test_kiosk_unknown_code(async_client, master_data):
    response = await async_client.post("/api/reception/checkin", json={"patientCode": "X"})

    assert response.status_code == 404
