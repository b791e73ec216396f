from theatre_pos.util.security import create_token


def test_login_and_bad_password(client, auth_headers):
    r = client.post("/auth/login", json={"email": "admin@example.com", "password": "wrong"})
    assert r.status_code == 401
    r = client.post("/auth/login", json={"email": "ADMIN@example.com", "password": "admin"})
    assert r.status_code == 200
    assert r.json()["token_type"] == "bearer"


def test_token_for_unknown_user_is_rejected(client, auth_headers):
    headers = {"Authorization": f"Bearer {create_token('no-such-user')}"}
    assert client.get("/products/", headers=headers).status_code == 401


def test_garbage_token(client):
    assert client.get("/products/", headers={"Authorization": "Bearer nope"}).status_code == 401


def test_healthz_and_request_id(client):
    r = client.get("/healthz", headers={"X-Request-ID": "abc-123"})
    assert r.json() == {"ok": True}
    assert r.headers["X-Request-ID"] == "abc-123"


def test_bootstrap_is_idempotent(client, auth_headers):
    r = client.post("/admin/dev-bootstrap")
    assert r.status_code == 200
    products = client.get("/products/", headers=auth_headers).json()
    assert len(products) == 5
