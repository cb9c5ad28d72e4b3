def test_member_can_read_catalogs(client, seed, login_as):
    login_as(seed.member_id, seed.org_id)
    parts = client.get("/libraries/parts.json").get_json()
    assert [p["name"] for p in parts] == ["Flame sensor"]
    assert parts[0]["cost"] == 24.5

    equip = client.get(f"/libraries/equipment.json?customer_id={seed.customer_id}").get_json()
    assert equip[0]["display_name"] == "Carrier 59SC5"

    custs = client.get("/libraries/customers.json?q=jane").get_json()
    assert [c["name"] for c in custs] == ["Jane Homeowner"]

    rates = client.get("/libraries/labor-rates.json").get_json()
    assert [r["rate"] for r in rates["rates"]] == [100.0, 150.0, 200.0]


def test_member_cannot_write_catalogs(client, seed, login_as):
    login_as(seed.member_id, seed.org_id)
    r = client.post("/libraries/parts.json", json={"name": "Igniter", "cost": 30})
    assert r.status_code == 403
    body = r.get_json()
    assert body["error"] == "permission_denied"
    assert body["message"].endswith("Please contact your administrator.")


def test_owner_creates_part_and_customer(client, seed, login_as):
    login_as(seed.owner_id, seed.org_id)
    r = client.post("/libraries/parts.json", json={"name": "Igniter", "part_number": "IG-2", "cost": "30.456"})
    assert r.status_code == 201
    assert r.get_json()["cost"] == 30.46

    r = client.post("/libraries/customers.json", json={"name": "Bob", "phone": "1-555-123-4567"})
    assert r.status_code == 201
    assert r.get_json()["phone"] == "(555) 123-4567"


def test_catalog_validation(client, seed, login_as):
    login_as(seed.owner_id, seed.org_id)
    r = client.post("/libraries/parts.json", json={"name": "", "cost": -1})
    assert r.status_code == 400
    assert set(r.get_json()["fields"]) == {"name", "cost"}

    r = client.post("/libraries/customers.json", json={"name": "X", "email": "not-an-email"})
    assert r.status_code == 400

    r = client.post("/libraries/equipment.json", json={"manufacturer": "Trane", "model_number": "XR14", "customer_id": 999999})
    assert r.status_code == 400
    assert r.get_json()["fields"] == {"customer_id": "unknown customer"}


def test_labor_rates_put_replaces_active_profile(client, seed, login_as):
    login_as(seed.owner_id, seed.org_id)
    r = client.put("/libraries/labor-rates.json", json={
        "standard_rate": 110, "after_hours_rate": 165, "emergency_rate": 220,
    })
    assert r.status_code == 200
    assert r.get_json()["standard_rate"] == 110.0

    rates = client.get("/libraries/labor-rates.json").get_json()
    assert [r["rate"] for r in rates["rates"]] == [110.0, 165.0, 220.0]


def test_catalogs_are_org_scoped(client, seed, login_as):
    login_as(seed.outsider_id, seed.other_org_id)
    assert client.get("/libraries/parts.json").get_json() == []
    assert client.get("/libraries/labor-rates.json").get_json() == {}
