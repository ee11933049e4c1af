# tests/test_reception_api.py
from datetime import date

from mediq import models


def test_checkin_scenario(client, master_data, make_schedule):
    schedule_id = make_schedule(examination_ids=[master_data.blood_test_id])

    response = client.post("/api/reception/checkin", json={"patientCode": "P00001"})

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    data = body["data"]
    assert data["patient"]["patientCode"] == "P00001"
    assert data["patient"]["nameKana"] == "やまだたろう"
    assert data["alreadyVisited"] is False
    assert data["schedule"]["id"] == schedule_id
    assert data["schedule"]["department"] == "内科"
    assert data["schedule"]["doctor"] == "田中太郎"
    assert data["schedule"]["waitingArea"] == "1階待合室A"
    assert data["schedule"]["examinations"] == ["血液検査"]
    assert data["schedule"]["status"] == "visited"
    assert data["schedule"]["visitedAt"] is not None
    assert data["schedule"]["date"] == date.today().isoformat()
    assert data["voiceText"] == (
        "ようこそ。やまだたろうさん、血液検査検査がありますので、1階待合室A前でお待ちください。"
        "田中太郎先生が担当します。お待ちしております。"
    )


def test_checkin_twice_reports_already_visited(client, master_data, make_schedule):
    make_schedule()
    first = client.post("/api/reception/checkin", json={"patientCode": "P00001"}).json()["data"]
    second = client.post("/api/reception/checkin", json={"patientCode": "P00001"}).json()["data"]

    assert second["alreadyVisited"] is True
    assert second["schedule"]["visitedAt"] == first["schedule"]["visitedAt"]


def test_checkin_without_schedule_returns_fallback(client, master_data):
    response = client.post("/api/reception/checkin", json={"patientCode": "P00001"})

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["schedule"] is None
    assert data["voiceText"].startswith("ようこそ、やまだたろう様。")


def test_checkin_unknown_patient(client, master_data):
    response = client.post("/api/reception/checkin", json={"patientCode": "UNKNOWN"})

    assert response.status_code == 404
    assert response.json() == {
        "success": False,
        "error": {"code": "NOT_FOUND", "message": "Patient not found."},
    }


def test_checkin_requires_patient_code(client):
    response = client.post("/api/reception/checkin", json={"patientCode": "  "})

    assert response.status_code == 400
    assert response.json()["error"]["code"] == "VALIDATION_ERROR"


def test_checkin_is_public(client, master_data, make_schedule, db):
    schedule_id = make_schedule()
    client.cookies.clear()

    response = client.post("/api/reception/checkin", json={"patientCode": "P00001"})

    assert response.status_code == 200
    db.expire_all()
    assert db.get(models.Schedule, schedule_id).status == models.ScheduleStatus.visited
