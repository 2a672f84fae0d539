def test_login_and_me(client, admin_user, password):
    resp = client.post("/auth/login", json={"email": "ADMIN@example.com", "password": password})

    assert resp.status_code == 200
    body = resp.json()
    assert body["token_type"] == "bearer"
    assert body["user"]["is_admin"] is True

    me = client.get("/auth/me", headers={"Authorization": f"Bearer {body['access_token']}"})
    assert me.status_code == 200
    assert me.json()["id"] == admin_user.id


def test_login_rejects_bad_password(client, regular_user):
    resp = client.post("/auth/login", json={"email": regular_user.email, "password": "wrong"})
    assert resp.status_code == 401
    assert resp.json() == {"error": "Invalid credentials"}


def test_me_requires_token(client):
    assert client.get("/auth/me").status_code == 401


def test_malformed_body_is_400(client):
    resp = client.post("/auth/login", json={"email": "not-an-email", "password": "x"})
    assert resp.status_code == 400
    assert "error" in resp.json()
