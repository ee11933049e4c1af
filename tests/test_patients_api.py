# tests/test_patients_api.py
from mediq import models


def create_patient(client, code="P00001", name="山田太郎", kana="やまだたろう"):
    response = client.post("/api/patients", json={"patientCode": code, "name": name, "nameKana": kana})
    assert response.status_code == 201
    return response.json()["data"]


def test_create_and_read_patient(admin_client):
    created = create_patient(admin_client)

    response = admin_client.get(f"/api/patients/{created['id']}")

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["patientCode"] == "P00001"
    assert data["nameKana"] == "やまだたろう"
    assert data["isDeleted"] is False


def test_create_patient_strips_and_requires_fields(admin_client):
    response = admin_client.post("/api/patients", json={"patientCode": "P1", "name": " ", "nameKana": "a"})

    assert response.status_code == 400
    assert response.json()["success"] is False
    assert response.json()["error"]["code"] == "VALIDATION_ERROR"


def test_duplicate_patient_code_is_rejected(admin_client):
    create_patient(admin_client)

    response = admin_client.post("/api/patients", json={"patientCode": "P00001", "name": "別人", "nameKana": "べつじん"})

    assert response.status_code == 400
    assert response.json()["error"]["code"] == "VALIDATION_ERROR"


def test_code_of_deleted_patient_can_be_reused(admin_client):
    first = create_patient(admin_client)
    admin_client.delete(f"/api/patients/{first['id']}")

    second = create_patient(admin_client)

    assert second["id"] != first["id"]


def test_search_matches_code_name_and_kana(admin_client):
    create_patient(admin_client, "P00002", "鈴木花子", "すずきはなこ")
    create_patient(admin_client, "P00001", "山田太郎", "やまだたろう")

    codes = [p["patientCode"] for p in admin_client.get("/api/patients").json()["data"]]
    assert codes == ["P00001", "P00002"]

    by_kana = admin_client.get("/api/patients", params={"search": "すずき"}).json()["data"]
    assert [p["patientCode"] for p in by_kana] == ["P00002"]

    by_code = admin_client.get("/api/patients", params={"search": "0001"}).json()["data"]
    assert [p["name"] for p in by_code] == ["山田太郎"]


def test_partial_update_keeps_other_fields(admin_client):
    created = create_patient(admin_client)

    response = admin_client.put(f"/api/patients/{created['id']}", json={"name": "山田次郎"})

    data = response.json()["data"]
    assert data["name"] == "山田次郎"
    assert data["nameKana"] == "やまだたろう"


def test_update_cannot_blank_required_field(admin_client):
    created = create_patient(admin_client)

    response = admin_client.put(f"/api/patients/{created['id']}", json={"name": None})

    assert response.status_code == 400


def test_delete_patient_soft_deletes(admin_client):
    created = create_patient(admin_client)

    response = admin_client.delete(f"/api/patients/{created['id']}")

    assert response.json() == {"success": True, "data": {"deleted": True}}
    assert admin_client.get(f"/api/patients/{created['id']}").status_code == 404
    assert admin_client.get("/api/patients").json()["data"] == []


def test_missing_patient_is_not_found(admin_client):
    response = admin_client.get("/api/patients/999")

    assert response.status_code == 404
    assert response.json()["error"]["code"] == "NOT_FOUND"


def test_patient_qrcode_is_png(admin_client):
    created = create_patient(admin_client)

    response = admin_client.get(f"/api/patients/{created['id']}/qrcode")

    assert response.status_code == 200
    assert response.headers["content-type"] == "image/png"
    assert response.content.startswith(b"\x89PNG")


def test_search_treats_wildcards_literally(admin_client):
    create_patient(admin_client, "P00001", "山田太郎", "やまだたろう")
    create_patient(admin_client, "P00002", "鈴木花子", "すずきはなこ")

    assert admin_client.get("/api/patients", params={"search": "P_0001"}).json()["data"] == []
    assert admin_client.get("/api/patients", params={"search": "%"}).json()["data"] == []


def test_search_matches_literal_underscore(admin_client):
    create_patient(admin_client, "P_0001", "山田太郎", "やまだたろう")
    create_patient(admin_client, "P00001", "鈴木花子", "すずきはなこ")

    found = admin_client.get("/api/patients", params={"search": "P_0"}).json()["data"]

    assert [p["patientCode"] for p in found] == ["P_0001"]


def test_list_is_capped_at_search_limit(admin_client, db):
    db.add_all(
        models.Patient(patient_code=f"P{i:05d}", name=f"患者{i}", name_kana=f"かんじゃ{i}")
        for i in range(1, 102)
    )
    db.commit()

    patients = admin_client.get("/api/patients").json()["data"]

    assert len(patients) == 100
    assert patients[0]["patientCode"] == "P00001"
    assert patients[-1]["patientCode"] == "P00100"
