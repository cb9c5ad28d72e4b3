def test_login_me_logout(client, seed):
    r = client.post("/auth/login", json={"email": "Owner@Example.com", "password": "testpass"})
    assert r.status_code == 200
    session = r.get_json()["session"]
    assert session["org_id"] == seed.org_id
    assert session["role"] == "owner"
    assert session["can_write"] is True

    me = client.get("/auth/me").get_json()["session"]
    assert me["user_id"] == seed.owner_id

    assert client.post("/auth/logout").status_code == 200
    assert client.get("/auth/me").status_code == 401


def test_member_session_cannot_write(client, seed):
    r = client.post("/auth/login", json={"email": "tech@example.com", "password": "testpass"})
    assert r.get_json()["session"]["can_write"] is False


def test_bad_credentials(client, seed):
    r = client.post("/auth/login", json={"email": "owner@example.com", "password": "wrong"})
    assert r.status_code == 401
    assert r.get_json()["error"] == "unauthorized"

    r = client.post("/auth/login", json={"email": "", "password": ""})
    assert r.status_code == 400


def test_csrf_token_endpoint(client):
    r = client.get("/auth/csrf")
    assert r.status_code == 200
    assert r.get_json()["csrf_token"]


def test_healthz(client):
    r = client.get("/api/healthz")
    assert r.status_code == 200
    assert r.get_json() == {"status": "ok"}


def test_first_login_without_org_becomes_owner(app, client):
    from fieldservice.extensions import db
    from fieldservice.models import User

    with app.app_context():
        u = User(email="solo@example.com", is_active=True)
        u.set_password("pw")
        db.session.add(u)
        db.session.commit()

    r = client.post("/auth/login", json={"email": "solo@example.com", "password": "pw"})
    assert r.status_code == 200
    session = r.get_json()["session"]
    assert session["role"] == "owner"
    assert session["org_id"]
