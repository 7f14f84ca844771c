from datetime import date, timedelta


def test_treatment_codes_are_generated_per_specialty(api_client, create_treatment):
    first = create_treatment(name="Tratamiento de conducto", specialty="Endodoncia")
    second = create_treatment(name="Retratamiento", specialty="Endodoncia")
    other = create_treatment(name="Brackets metálicos", specialty="Ortodoncia", currency="usd")
    assert (first["code"], second["code"], other["code"]) == ("EN01", "EN02", "OR01")
    assert first["currency"] == "HNL"
    assert other["currency"] == "USD"
    assert first["label"] == "EN01 - Tratamiento de conducto"


def test_unknown_specialty_is_rejected(api_client, doctor_headers):
    response = api_client.post(
        "/treatments", json={"name": "Algo", "specialty": "Astrología"}, headers=doctor_headers
    )
    assert response.status_code == 422, response.text


def test_treatment_search_and_specialties(api_client, doctor_headers, create_treatment):
    create_treatment(name="Extracción simple", specialty="Cirugía Oral y Maxilofacial")
    create_treatment(name="Sellantes", specialty="Preventiva", notes="niños")

    found = api_client.get("/treatments", params={"q": "niños"}, headers=doctor_headers)
    assert [item["name"] for item in found.json()] == ["Sellantes"]

    specialties = api_client.get("/treatments/specialties", headers=doctor_headers).json()
    assert {"name": "Endodoncia", "prefix": "EN"} in specialties


def test_usage_counter_only_moves_forward(api_client, doctor_headers, staff_headers, create_treatment):
    treatment = create_treatment()
    bumped = api_client.post(f"/treatments/{treatment['id']}/increment", headers=staff_headers)
    assert bumped.status_code == 200, bumped.text
    assert bumped.json()["times_performed"] == 1

    bumped = api_client.post(
        f"/treatments/{treatment['id']}/increment", json={"by": 3}, headers=doctor_headers
    )
    assert bumped.json()["times_performed"] == 4

    rejected = api_client.post(
        f"/treatments/{treatment['id']}/increment", json={"by": 0}, headers=doctor_headers
    )
    assert rejected.status_code == 422, rejected.text


def test_staff_cannot_edit_catalog(api_client, staff_headers, create_treatment):
    treatment = create_treatment()
    response = api_client.patch(
        f"/treatments/{treatment['id']}", json={"price_cents": 1}, headers=staff_headers
    )
    assert response.status_code == 403, response.text


def test_promotion_lifecycle(api_client, doctor_headers):
    today = date.today()
    payload = {
        "name": "Limpieza + blanqueamiento",
        "original_price_cents": 200000,
        "promo_price_cents": 150000,
        "starts_on": (today - timedelta(days=1)).isoformat(),
        "ends_on": (today + timedelta(days=30)).isoformat(),
    }
    created = api_client.post("/promotions", json=payload, headers=doctor_headers)
    assert created.status_code == 201, created.text
    promotion = created.json()
    assert promotion["code"] == "P001"
    assert promotion["discount_percent"] == 25
    assert promotion["label"] == "P001 - Limpieza + blanqueamiento (PROMOCIÓN 25% OFF)"

    expired = api_client.post(
        "/promotions",
        json={
            **payload,
            "name": "Vencida",
            "starts_on": (today - timedelta(days=60)).isoformat(),
            "ends_on": (today - timedelta(days=30)).isoformat(),
        },
        headers=doctor_headers,
    )
    assert expired.json()["code"] == "P002"

    current = api_client.get("/promotions", params={"current_only": True}, headers=doctor_headers)
    assert [item["code"] for item in current.json()] == ["P001"]

    bumped = api_client.post(f"/promotions/{promotion['id']}/increment", headers=doctor_headers)
    assert bumped.json()["times_used"] == 1


def test_promotion_price_cannot_exceed_original(api_client, doctor_headers):
    response = api_client.post(
        "/promotions",
        json={"name": "Mala", "original_price_cents": 1000, "promo_price_cents": 2000},
        headers=doctor_headers,
    )
    assert response.status_code == 422, response.text


def test_treatment_price_cannot_be_nulled(api_client, doctor_headers, create_treatment):
    treatment = create_treatment(notes="Incluye profilaxis")
    response = api_client.patch(
        f"/treatments/{treatment['id']}", json={"price_cents": None}, headers=doctor_headers
    )
    assert response.status_code == 422, response.text

    cleared = api_client.patch(f"/treatments/{treatment['id']}", json={"notes": None}, headers=doctor_headers)
    assert cleared.status_code == 200, cleared.text
    assert cleared.json()["notes"] is None
    assert cleared.json()["price_cents"] == 80000
