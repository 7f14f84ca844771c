def test_create_patient_records_audit_and_notification(
    api_client, doctor_headers, create_patient, notification_store
):
    patient = create_patient(full_name="Carlos Mejía", national_id="0801-1990-12345")
    assert patient["intake_date"] is not None

    audit_res = api_client.get(f"/patients/{patient['id']}/audit", headers=doctor_headers)
    assert audit_res.status_code == 200, audit_res.text
    assert [entry["action"] for entry in audit_res.json()] == ["patient.created"]

    [notification] = notification_store.list()
    assert notification.title == "Nuevo paciente registrado"
    assert notification.message == "Se ha creado una nueva historia para Carlos Mejía"


def test_staff_cannot_create_patients(api_client, staff_headers):
    response = api_client.post("/patients", json={"full_name": "Ana"}, headers=staff_headers)
    assert response.status_code == 403, response.text


def test_missing_token_is_rejected(api_client):
    response = api_client.get("/patients")
    assert response.status_code == 401, response.text


def test_national_id_must_be_unique(api_client, doctor_headers, create_patient):
    create_patient(national_id="0801-2000-00001")
    response = api_client.post(
        "/patients",
        json={"full_name": "Duplicado", "national_id": "0801-2000-00001"},
        headers=doctor_headers,
    )
    assert response.status_code == 409, response.text

    check = api_client.get(
        "/patients/validate-id", params={"national_id": "0801-2000-00001"}, headers=doctor_headers
    )
    assert check.status_code == 200, check.text
    assert check.json() == {"national_id": "0801-2000-00001", "available": False}


def test_search_requires_two_characters(api_client, doctor_headers, create_patient):
    create_patient(full_name="Lucía Andino")
    create_patient(full_name="Pedro Castro")

    short = api_client.get("/patients", params={"q": "L"}, headers=doctor_headers)
    assert short.status_code == 400, short.text

    found = api_client.get("/patients", params={"q": "andi"}, headers=doctor_headers)
    assert found.status_code == 200, found.text
    assert [patient["full_name"] for patient in found.json()] == ["Lucía Andino"]


def test_staff_can_edit_patient_contact(api_client, staff_headers, create_patient):
    patient = create_patient()
    response = api_client.patch(
        f"/patients/{patient['id']}", json={"phone": "3333-4444"}, headers=staff_headers
    )
    assert response.status_code == 200, response.text
    assert response.json()["phone"] == "3333-4444"


def test_severity_endpoint(api_client, doctor_headers, create_patient):
    patient = create_patient(diseases="Cáncer de mama en tratamiento")
    response = api_client.get(f"/patients/{patient['id']}/severity", headers=doctor_headers)
    assert response.status_code == 200, response.text
    assert response.json() == {
        "level": "critical",
        "score": 0,
        "conditions": ["life-threatening"],
        "color": "red",
    }


def test_profile_for_historical_pregnant_patient(api_client, doctor_headers, create_patient):
    patient = create_patient(
        intake_date="2025-12-01",
        birth_date="1995-03-15",
        pregnant=True,
        pregnancy_weeks=10,
    )
    response = api_client.get(f"/patients/{patient['id']}/profile", headers=doctor_headers)
    assert response.status_code == 200, response.text
    profile = response.json()
    assert profile["patient_type"] == "adulto"
    assert profile["record_category"] == "historical"
    assert profile["last_treatment_date"] is None
    assert profile["whatsapp_url"] == "https://wa.me/50499998888"
    assert profile["pregnancy"]["weeks_at_intake"] == 10
    assert profile["severity"]["level"] == "pregnancy"


def test_patient_audit_collects_chart_history(api_client, doctor_headers, create_patient):
    patient = create_patient()
    updated = api_client.patch(
        f"/patients/{patient['id']}", json={"allergies": "Penicilina"}, headers=doctor_headers
    )
    assert updated.status_code == 200, updated.text
    saved = api_client.post(
        f"/patients/{patient['id']}/odontograms", json={"data": {}, "notes": "inicial"}, headers=doctor_headers
    )
    assert saved.status_code == 201, saved.text

    history = api_client.get(f"/patients/{patient['id']}/audit", headers=doctor_headers).json()
    assert [entry["action"] for entry in history] == [
        "odontogram.saved",
        "patient.updated",
        "patient.created",
    ]
    assert history[1]["changes"] == ["allergies"]
    assert all(entry["patient_id"] == patient["id"] for entry in history)

    only_patient = api_client.get(
        f"/patients/{patient['id']}/audit", params={"entity_type": "patient"}, headers=doctor_headers
    )
    assert [entry["action"] for entry in only_patient.json()] == ["patient.updated", "patient.created"]
