def _create(client, seed, **extra):
    body = {"job_title": "Water heater swap", "customer_id": seed.customer_id, "tax_rate": 10}
    body.update(extra)
    r = client.post("/estimates/", json=body)
    assert r.status_code == 201, r.get_json()
    return r.get_json()["id"]


def _save(client, est_id, **body):
    body.setdefault("line_items", [
        {"item_type": "labor", "quantity": 2, "rate_key": "standard"},
        {"item_type": "discount", "description": "Promo", "unit_price": -20},
    ])
    return client.put(f"/estimates/{est_id}", json=body)


def test_anonymous_gets_401(client, seed):
    r = client.get("/estimates/list.json")
    assert r.status_code == 401
    assert r.get_json()["error"] == "unauthorized"


def test_non_member_gets_404(client, seed, login_as):
    # outsider's session points at an org they do not belong to
    login_as(seed.outsider_id, seed.org_id)
    r = client.get("/estimates/list.json")
    assert r.status_code == 404
    assert r.get_json()["error"] == "not_found"


def test_create_and_fetch(client, seed, login_as):
    login_as(seed.member_id, seed.org_id)
    est_id = _create(client, seed)

    r = client.get(f"/estimates/{est_id}.json")
    assert r.status_code == 200
    data = r.get_json()
    assert data["estimate_number"].startswith("EST-")
    assert data["customer_name"] == "Jane Homeowner"
    assert data["status"] == "draft"
    assert data["allowed_actions"] == ["send"]
    assert data["line_items"] == []


def test_create_validation_error(client, seed, login_as):
    login_as(seed.member_id, seed.org_id)
    r = client.post("/estimates/", json={"job_title": ""})
    assert r.status_code == 400
    body = r.get_json()
    assert body["error"] == "validation_error"
    assert "job_title" in body["fields"]


def test_editor_json_has_catalogs_and_default_item(client, seed, login_as):
    login_as(seed.member_id, seed.org_id)
    est_id = _create(client, seed)
    data = client.get(f"/estimates/{est_id}/editor.json").get_json()
    assert len(data["items"]) == 1
    assert [r["key"] for r in data["labor_rates"]] == ["standard", "after_hours", "emergency"]
    assert data["parts"][0]["name"] == "Flame sensor"
    assert data["equipment"][0]["display_name"] == "Carrier 59SC5"
    assert data["totals"]["total"] == 0.0


def test_totals_preview_writes_nothing(client, seed, login_as):
    login_as(seed.member_id, seed.org_id)
    est_id = _create(client, seed)
    r = client.post(f"/estimates/{est_id}/totals.json", json={
        "line_items": [{"item_type": "labor", "description": "x", "quantity": 2, "unit_price": 100},
                       {"item_type": "discount", "description": "y", "unit_price": -20}],
    })
    assert r.status_code == 200
    assert r.get_json()["totals"] == {"subtotal": 200.0, "discount": 20.0, "tax_amount": 18.0, "total": 198.0}
    assert client.get(f"/estimates/{est_id}.json").get_json()["total_amount"] == 0.0


def test_save_roundtrip(client, seed, login_as):
    login_as(seed.member_id, seed.org_id)
    est_id = _create(client, seed)
    version = client.get(f"/estimates/{est_id}.json").get_json()["version"]

    r = _save(client, est_id, version=version, site_location="12 Elm St")
    assert r.status_code == 200, r.get_json()
    body = r.get_json()
    assert body["inserted"] == 2
    assert body["warnings"] == []
    assert body["totals"]["total"] == 198.0
    assert body["estimate"]["site_location"] == "12 Elm St"
    assert [li["description"] for li in body["estimate"]["line_items"]] == ["Standard Rate", "Promo"]
    assert body["estimate"]["version"] > version


def test_save_with_only_blank_items_warns(client, seed, login_as):
    login_as(seed.member_id, seed.org_id)
    est_id = _create(client, seed)
    r = _save(client, est_id, line_items=[{"description": ""}])
    assert r.status_code == 200
    body = r.get_json()
    assert body["warnings"] == ["no_line_items"]
    assert body["dropped_blank"] == 1


def test_save_shape_errors(client, seed, login_as):
    login_as(seed.member_id, seed.org_id)
    est_id = _create(client, seed)
    r = _save(client, est_id, line_items=[{"item_type": "fee", "quantity": "lots"}])
    assert r.status_code == 400
    fields = r.get_json()["fields"]
    assert "line_items[0].item_type" in fields
    assert "line_items[0].quantity" in fields


def test_save_stale_version_conflict(client, seed, login_as):
    login_as(seed.member_id, seed.org_id)
    est_id = _create(client, seed)
    version = client.get(f"/estimates/{est_id}.json").get_json()["version"]
    assert _save(client, est_id, version=version).status_code == 200

    r = _save(client, est_id, version=version)
    assert r.status_code == 409
    assert r.get_json()["error"] == "conflict"


def test_full_lifecycle_to_ticket(client, seed, login_as):
    login_as(seed.member_id, seed.org_id)
    est_id = _create(client, seed)
    _save(client, est_id)

    assert client.post(f"/estimates/{est_id}/send").status_code == 200
    r = client.post(f"/estimates/{est_id}/view")
    assert r.get_json()["estimate"]["status"] == "viewed"
    r = client.post(f"/estimates/{est_id}/accept")
    assert r.get_json()["estimate"]["allowed_actions"] == ["convert_ticket", "convert_project"]

    r = client.post(f"/estimates/{est_id}/convert/ticket")
    assert r.status_code == 201
    body = r.get_json()
    assert body["ticket"]["ticket_number"].startswith("SVC-")
    assert body["estimate"]["status"] == "converted"
    assert body["estimate"]["converted_to_ticket_id"] == body["ticket"]["id"]

    r = client.post(f"/estimates/{est_id}/convert/project")
    assert r.status_code == 409
    assert r.get_json()["error"] == "already_converted"

    r = _save(client, est_id)
    assert r.status_code == 409
    assert r.get_json()["error"] == "estimate_locked"


def test_invalid_transition_is_409(client, seed, login_as):
    login_as(seed.member_id, seed.org_id)
    est_id = _create(client, seed)
    r = client.post(f"/estimates/{est_id}/accept")
    assert r.status_code == 409
    assert r.get_json()["error"] == "invalid_transition"


def test_unknown_estimate_is_404(client, seed, login_as):
    login_as(seed.member_id, seed.org_id)
    r = client.get("/estimates/999999.json")
    assert r.status_code == 404


def test_list_and_csv_export(client, seed, login_as):
    login_as(seed.member_id, seed.org_id)
    est_id = _create(client, seed)
    _save(client, est_id)

    rows = client.get("/estimates/list.json?q=water").get_json()["rows"]
    assert [r["id"] for r in rows] == [est_id]
    assert client.get("/estimates/list.json?status=accepted").get_json()["rows"] == []

    r = client.get("/estimates/export/index.csv")
    assert r.status_code == 200
    assert r.headers["Content-Type"].startswith("text/csv")
    lines = r.get_data(as_text=True).strip().splitlines()
    assert lines[0].startswith("estimate_number,job_title,customer,status")
    assert "Water heater swap,Jane Homeowner,draft" in lines[1]
    assert lines[1].endswith("198.00")


def test_save_rejects_non_finite_numbers(client, seed, login_as):
    login_as(seed.member_id, seed.org_id)
    est_id = _create(client, seed)
    r = _save(client, est_id, line_items=[
        {"item_type": "parts", "description": "wire", "quantity": "Infinity", "unit_price": 10},
        {"item_type": "discount", "description": "Promo", "line_total": "NaN"},
        {"item_type": "other", "description": "Trip", "unit_price": "1e30"},
    ])
    assert r.status_code == 400
    fields = r.get_json()["fields"]
    assert fields["line_items[0].quantity"] == "must be a number"
    assert fields["line_items[1].line_total"] == "must be a number"
    assert fields["line_items[2].unit_price"] == "out of range"


def test_header_only_put_keeps_line_items(client, seed, login_as):
    login_as(seed.member_id, seed.org_id)
    est_id = _create(client, seed)
    assert _save(client, est_id).status_code == 200

    r = client.put(f"/estimates/{est_id}", json={"notes": "just a note"})
    assert r.status_code == 200, r.get_json()
    body = r.get_json()
    assert body["inserted"] == 0
    assert body["warnings"] == []
    assert body["totals"]["total"] == 198.0
    assert body["estimate"]["notes"] == "just a note"
    assert len(body["estimate"]["line_items"]) == 2


def test_discount_as_line_total_over_http(client, seed, login_as):
    login_as(seed.member_id, seed.org_id)
    est_id = _create(client, seed)
    r = _save(client, est_id, line_items=[
        {"item_type": "labor", "description": "Labor", "quantity": 2, "unit_price": 100},
        {"item_type": "discount", "description": "Promo", "line_total": -20},
    ])
    assert r.status_code == 200, r.get_json()
    assert r.get_json()["totals"] == {"subtotal": 200.0, "discount": 20.0, "tax_amount": 18.0, "total": 198.0}
