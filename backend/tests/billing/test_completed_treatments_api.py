from datetime import date, timedelta


def _complete(api_client, headers, patient_id, items, **overrides):
    payload = {"patient_id": patient_id, "specialty": "Preventiva", "items": items}
    payload.update(overrides)
    response = api_client.post("/completed-treatments", json=payload, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


def test_elderly_patient_gets_discount_and_usage_is_counted(
    api_client, doctor_headers, create_patient, create_treatment
):
    patient = create_patient(birth_date="1940-01-15")
    treatment = create_treatment(price_cents=80000)
    record = _complete(
        api_client,
        doctor_headers,
        patient["id"],
        [{"treatment_id": treatment["id"], "quantity": 2}],
    )
    assert record["status"] == "pendiente_firma"
    assert record["subtotal_cents"] == 160000
    assert record["discount_cents"] == 56000
    assert record["total_cents"] == 104000
    assert record["items"][0]["treatment_code"] == "PR01"
    assert record["items"][0]["discount_reason"] == "Descuento 4ta Edad (35%) - Limpieza dental"

    refreshed = api_client.get(f"/treatments/{treatment['id']}", headers=doctor_headers).json()
    assert refreshed["times_performed"] == 2


def test_historical_patient_is_zero_cost(api_client, doctor_headers, create_patient):
    patient = create_patient(intake_date="2025-06-01")
    item = {"treatment_name": "Corona", "unit_price_cents": 500000}
    record = _complete(api_client, doctor_headers, patient["id"], [item])
    assert record["total_cents"] == 0
    assert record["discount_reason"] == "Registro Histórico - Sin costo"

    bypassed = _complete(api_client, doctor_headers, patient["id"], [item], bypass_historical=True)
    assert bypassed["total_cents"] == 500000


def test_mixed_currencies_are_rejected(api_client, doctor_headers, create_patient):
    patient = create_patient()
    response = api_client.post(
        "/completed-treatments",
        json={
            "patient_id": patient["id"],
            "items": [
                {"treatment_name": "Implante", "unit_price_cents": 100000, "currency": "USD"},
                {"treatment_name": "Limpieza", "unit_price_cents": 80000, "currency": "HNL"},
            ],
        },
        headers=doctor_headers,
    )
    assert response.status_code == 422, response.text


def test_promotion_items_use_promo_price(api_client, doctor_headers, create_patient):
    today = date.today()
    promotion = api_client.post(
        "/promotions",
        json={
            "name": "Ortodoncia inicial",
            "original_price_cents": 400000,
            "promo_price_cents": 300000,
            "starts_on": (today - timedelta(days=1)).isoformat(),
        },
        headers=doctor_headers,
    ).json()
    patient = create_patient(birth_date="1950-01-01")
    record = _complete(
        api_client,
        doctor_headers,
        patient["id"],
        [{"promotion_id": promotion["id"], "disable_elderly_discount": True}],
    )
    assert record["total_cents"] == 300000
    assert record["items"][0]["notes"] == "Promoción: 25% OFF"

    refreshed = api_client.get(f"/promotions/{promotion['id']}", headers=doctor_headers).json()
    assert refreshed["times_used"] == 1


def test_signature_then_payments_drive_status(api_client, doctor_headers, staff_headers, create_patient):
    patient = create_patient()
    record = _complete(
        api_client,
        doctor_headers,
        patient["id"],
        [{"treatment_name": "Extracción", "unit_price_cents": 100000}],
    )
    record_id = record["id"]

    early_paid = api_client.patch(
        f"/completed-treatments/{record_id}", json={"status": "pagado"}, headers=doctor_headers
    )
    assert early_paid.status_code == 409, early_paid.text

    signed = api_client.patch(
        f"/completed-treatments/{record_id}",
        json={"signature_url": "https://files.example/firma.png"},
        headers=doctor_headers,
    )
    assert signed.status_code == 200, signed.text
    assert signed.json()["status"] == "firmado"

    partial = api_client.post(
        f"/completed-treatments/{record_id}/payments",
        json={"amount_cents": 40000, "method": "efectivo"},
        headers=staff_headers,
    )
    assert partial.status_code == 201, partial.text

    summary = api_client.get(f"/completed-treatments/{record_id}/payments/summary", headers=staff_headers)
    assert summary.json()["status"] == "parcialmente_pagado"
    assert summary.json()["balance_cents"] == 60000

    too_much = api_client.post(
        f"/completed-treatments/{record_id}/payments",
        json={"amount_cents": 70000, "method": "tarjeta_credito"},
        headers=staff_headers,
    )
    assert too_much.status_code == 409, too_much.text

    converted = api_client.post(
        f"/completed-treatments/{record_id}/payments",
        json={"amount_cents": 2000, "currency": "USD", "exchange_rate": "30", "method": "transferencia"},
        headers=staff_headers,
    )
    assert converted.status_code == 201, converted.text
    assert converted.json()["amount_cents"] == 60000
    assert converted.json()["currency"] == "HNL"
    assert "Pago original: $ 20.00" in converted.json()["notes"]

    paid = api_client.get(f"/completed-treatments/{record_id}", headers=staff_headers).json()
    assert paid["status"] == "pagado"
    assert paid["balance_cents"] == 0

    staff_delete = api_client.delete(
        f"/completed-treatments/{record_id}/payments/{converted.json()['id']}", headers=staff_headers
    )
    assert staff_delete.status_code == 403, staff_delete.text


def test_deleting_payment_reverts_status(api_client, doctor_headers, auth_headers, create_patient):
    patient = create_patient()
    record = _complete(
        api_client,
        doctor_headers,
        patient["id"],
        [{"treatment_name": "Consulta", "unit_price_cents": 30000}],
        signature_url="https://files.example/firma.png",
    )
    assert record["status"] == "firmado"
    payment = api_client.post(
        f"/completed-treatments/{record['id']}/payments",
        json={"amount_cents": 30000, "method": "efectivo"},
        headers=auth_headers,
    ).json()
    paid = api_client.get(f"/completed-treatments/{record['id']}", headers=auth_headers).json()
    assert paid["status"] == "pagado"

    deleted = api_client.delete(
        f"/completed-treatments/{record['id']}/payments/{payment['id']}", headers=auth_headers
    )
    assert deleted.status_code == 204, deleted.text
    reverted = api_client.get(f"/completed-treatments/{record['id']}", headers=auth_headers).json()
    assert reverted["status"] == "firmado"
    assert reverted["paid_cents"] == 0


def test_items_recompute_totals(api_client, doctor_headers, create_patient):
    patient = create_patient()
    record = _complete(
        api_client,
        doctor_headers,
        patient["id"],
        [{"treatment_name": "Resina", "unit_price_cents": 50000}],
        discount_type="porcentaje",
        discount_value=10,
    )
    assert record["total_cents"] == 45000

    added = api_client.post(
        f"/completed-treatments/{record['id']}/items",
        json={"treatment_name": "Radiografía", "unit_price_cents": 20000},
        headers=doctor_headers,
    )
    assert added.status_code == 201, added.text
    updated = api_client.get(f"/completed-treatments/{record['id']}", headers=doctor_headers).json()
    assert updated["subtotal_cents"] == 70000
    assert updated["total_cents"] == 63000

    item_id = updated["items"][0]["id"]
    patched = api_client.patch(
        f"/completed-treatments/{record['id']}/items/{item_id}",
        json={"quantity": 2},
        headers=doctor_headers,
    )
    assert patched.status_code == 200, patched.text
    assert patched.json()["final_price_cents"] == 100000
    updated = api_client.get(f"/completed-treatments/{record['id']}", headers=doctor_headers).json()
    assert updated["total_cents"] == 108000


def test_statistics_and_filters(api_client, doctor_headers, staff_headers, create_patient):
    patient = create_patient()
    _complete(
        api_client,
        doctor_headers,
        patient["id"],
        [{"treatment_name": "Consulta", "unit_price_cents": 30000}],
        appointment_date="2026-03-10",
    )
    _complete(
        api_client,
        doctor_headers,
        patient["id"],
        [{"treatment_name": "Consulta", "unit_price_cents": 50000}],
        appointment_date="2026-04-10",
    )
    filtered = api_client.get(
        "/completed-treatments",
        params={"patient_id": patient["id"], "start_date": "2026-04-01"},
        headers=staff_headers,
    )
    assert filtered.status_code == 200, filtered.text
    assert [item["total_cents"] for item in filtered.json()] == [50000]

    stats = api_client.get("/completed-treatments/statistics", headers=staff_headers).json()
    assert stats["total_treatments"] == 2
    assert stats["revenue_by_currency"] == {"HNL": 80000}
    assert stats["average_by_currency"] == {"HNL": 40000}


def _pay(api_client, headers, record_id, amount_cents):
    response = api_client.post(
        f"/completed-treatments/{record_id}/payments",
        json={"amount_cents": amount_cents, "method": "efectivo"},
        headers=headers,
    )
    assert response.status_code == 201, response.text
    return response.json()


def test_item_changes_keep_payment_status_in_step(api_client, doctor_headers, staff_headers, create_patient):
    patient = create_patient()
    record = _complete(
        api_client,
        doctor_headers,
        patient["id"],
        [{"treatment_name": "Consulta", "unit_price_cents": 30000}],
        signature_url="https://files.example/firma.png",
    )
    _pay(api_client, staff_headers, record["id"], 30000)

    added = api_client.post(
        f"/completed-treatments/{record['id']}/items",
        json={"treatment_name": "Corona", "unit_price_cents": 50000},
        headers=doctor_headers,
    )
    assert added.status_code == 201, added.text
    reopened = api_client.get(f"/completed-treatments/{record['id']}", headers=doctor_headers).json()
    assert reopened["status"] == "firmado"
    assert reopened["total_cents"] == 80000
    assert reopened["balance_cents"] == 50000

    removed = api_client.delete(
        f"/completed-treatments/{record['id']}/items/{added.json()['id']}", headers=doctor_headers
    )
    assert removed.status_code == 204, removed.text
    settled = api_client.get(f"/completed-treatments/{record['id']}", headers=doctor_headers).json()
    assert settled["status"] == "pagado"
    assert settled["balance_cents"] == 0


def test_lowering_total_to_amount_paid_settles_record(
    api_client, doctor_headers, staff_headers, create_patient
):
    patient = create_patient()
    record = _complete(
        api_client,
        doctor_headers,
        patient["id"],
        [{"treatment_name": "Endodoncia", "unit_price_cents": 50000}],
        signature_url="https://files.example/firma.png",
    )
    _pay(api_client, staff_headers, record["id"], 30000)
    item_id = record["items"][0]["id"]

    below_paid = api_client.patch(
        f"/completed-treatments/{record['id']}/items/{item_id}",
        json={"unit_price_cents": 20000},
        headers=doctor_headers,
    )
    assert below_paid.status_code == 409, below_paid.text
    discounted = api_client.patch(
        f"/completed-treatments/{record['id']}",
        json={"discount_type": "porcentaje", "discount_value": 50},
        headers=doctor_headers,
    )
    assert discounted.status_code == 409, discounted.text
    unchanged = api_client.get(f"/completed-treatments/{record['id']}", headers=doctor_headers).json()
    assert unchanged["total_cents"] == 50000
    assert unchanged["status"] == "firmado"

    matched = api_client.patch(
        f"/completed-treatments/{record['id']}/items/{item_id}",
        json={"unit_price_cents": 30000},
        headers=doctor_headers,
    )
    assert matched.status_code == 200, matched.text
    settled = api_client.get(f"/completed-treatments/{record['id']}", headers=doctor_headers).json()
    assert settled["status"] == "pagado"
    assert settled["balance_cents"] == 0


def test_percent_discount_is_capped_at_100(api_client, doctor_headers, create_patient):
    patient = create_patient()
    item = {"treatment_name": "Consulta", "unit_price_cents": 30000}
    over = api_client.post(
        "/completed-treatments",
        json={
            "patient_id": patient["id"],
            "items": [item],
            "discount_type": "porcentaje",
            "discount_value": 150,
        },
        headers=doctor_headers,
    )
    assert over.status_code == 422, over.text

    record = _complete(
        api_client, doctor_headers, patient["id"], [item], discount_type="porcentaje", discount_value=10
    )
    raised = api_client.patch(
        f"/completed-treatments/{record['id']}", json={"discount_value": 150}, headers=doctor_headers
    )
    assert raised.status_code == 422, raised.text

    full = api_client.patch(
        f"/completed-treatments/{record['id']}", json={"discount_value": 100}, headers=doctor_headers
    )
    assert full.status_code == 200, full.text
    assert full.json()["total_cents"] == 0


def test_null_on_required_item_field_is_rejected(api_client, doctor_headers, create_patient):
    patient = create_patient()
    record = _complete(
        api_client, doctor_headers, patient["id"], [{"treatment_name": "Consulta", "unit_price_cents": 30000}]
    )
    item_id = record["items"][0]["id"]
    response = api_client.patch(
        f"/completed-treatments/{record['id']}/items/{item_id}",
        json={"quantity": None},
        headers=doctor_headers,
    )
    assert response.status_code == 422, response.text

    cleared = api_client.patch(
        f"/completed-treatments/{record['id']}/items/{item_id}",
        json={"notes": None},
        headers=doctor_headers,
    )
    assert cleared.status_code == 200, cleared.text

    response = api_client.patch(
        f"/completed-treatments/{record['id']}", json={"discount_type": None}, headers=doctor_headers
    )
    assert response.status_code == 422, response.text


def test_staff_can_sign_but_not_reprice(api_client, doctor_headers, staff_headers, create_patient):
    patient = create_patient()
    record = _complete(
        api_client, doctor_headers, patient["id"], [{"treatment_name": "Consulta", "unit_price_cents": 30000}]
    )
    repriced = api_client.patch(
        f"/completed-treatments/{record['id']}",
        json={"discount_type": "monto", "discount_value": 10000},
        headers=staff_headers,
    )
    assert repriced.status_code == 403, repriced.text

    signed = api_client.patch(
        f"/completed-treatments/{record['id']}",
        json={"signature_url": "https://files.example/firma.png"},
        headers=staff_headers,
    )
    assert signed.status_code == 200, signed.text
    assert signed.json()["status"] == "firmado"
    assert signed.json()["total_cents"] == 30000
