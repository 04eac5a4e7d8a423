from app.core.security import create_access_token


def test_register_login_and_me(client):
    response = client.post("/api/auth/register", json={"email": "Asha@Example.com", "password": "secret123"})
    assert response.status_code == 201
    assert response.json()["email"] == "asha@example.com"

    response = client.post("/api/auth/login", json={"email": "asha@example.com", "password": "secret123"})
    assert response.status_code == 200
    body = response.json()
    assert body["token_type"] == "bearer"

    me = client.get("/api/auth/me", headers={"Authorization": f"Bearer {body['access_token']}"})
    assert me.status_code == 200
    assert me.json()["user_id"] == body["user"]["user_id"]


def test_register_twice_is_rejected(client):
    payload = {"email": "dup@example.com", "password": "secret123"}
    assert client.post("/api/auth/register", json=payload).status_code == 201
    assert client.post("/api/auth/register", json=payload).status_code == 400


def test_login_with_wrong_password(client):
    client.post("/api/auth/register", json={"email": "ravi@example.com", "password": "secret123"})
    response = client.post("/api/auth/login", json={"email": "ravi@example.com", "password": "nope-nope"})
    assert response.status_code == 401


def test_protected_routes_need_token(client):
    assert client.get("/api/expenses/").status_code == 401
    assert client.get("/api/recommendations/spending-analysis").status_code == 401
    bad = {"Authorization": "Bearer not-a-jwt"}
    assert client.get("/api/messages/", headers=bad).status_code == 401


def test_token_without_subject_is_rejected(client):
    token = create_access_token(data={"role": "user"})
    response = client.get("/api/expenses/", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 401


def test_profile_update(client, store):
    client.post("/api/auth/register", json={"email": "meera@example.com", "password": "secret123"})
    user = store.get_user_by_email("meera@example.com")
    headers = {"Authorization": f"Bearer {create_access_token(data={'sub': user['user_id']})}"}

    response = client.put("/api/profile", json={"profile_picture": "https://img.test/m.png"}, headers=headers)
    assert response.status_code == 200
    assert response.json()["data"]["user"]["profile_picture"] == "https://img.test/m.png"

    profile = client.get("/api/profile", headers=headers).json()
    assert profile["data"]["user"]["email"] == "meera@example.com"


def test_health(client):
    assert client.get("/api/health").json()["status"] == "healthy"
    assert client.get("/api/health/ai").json()["ai_service"]["success"] is True
