def test_me_returns_public_profile(client, make_user, login_as):
    user = login_as(make_user(name="Alice", email="alice@example.com", role="manager"))

    response = client.get("/auth/me")

    assert response.status_code == 200
    data = response.json()["user"]
    assert data["id"] == user.id
    assert data["role"] == "manager"
    assert "password_hash" not in data


def test_profile_update_keeps_missing_fields(client, make_user, login_as):
    login_as(make_user(name="Alice", email="alice@example.com"))

    response = client.put("/auth/profile", json={"avatar": "/uploads/a.png"})

    assert response.status_code == 200
    data = response.json()["user"]
    assert data["name"] == "Alice"
    assert data["avatar"] == "/uploads/a.png"


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "OK"
