from pulse_chat_app.users.routers import auth_routers


def test_register_returns_token_and_public_user(client):
    res = client.post("/api/auth/register", json={
        "username": "alice",
        "email": "alice@example.com",
        "password": "secret123",
        "profile": {"firstName": "Alice", "bio": "hi"},
    })

    assert res.status_code == 201
    body = res.json()
    assert body["token"]
    assert body["user"]["username"] == "alice"
    assert body["user"]["profile"]["firstName"] == "Alice"
    assert "password" not in body["user"]


def test_register_rejects_duplicates(client, register):
    register("alice")

    res = client.post("/api/auth/register", json={
        "username": "alice", "email": "other@example.com", "password": "x",
    })
    assert res.status_code == 400
    assert res.json()["message"] == "Username already taken"

    res = client.post("/api/auth/register", json={
        "username": "alice2", "email": "alice@example.com", "password": "x",
    })
    assert res.status_code == 400
    assert res.json()["message"] == "Email already registered"


def test_register_missing_fields_is_400(client):
    res = client.post("/api/auth/register", json={"username": "bob"})
    assert res.status_code == 400


def test_login(client, register):
    register("alice", password="pw-alice")

    res = client.post("/api/auth/login", json={"email": "alice@example.com", "password": "pw-alice"})
    assert res.status_code == 200
    assert res.json()["token"]
    assert res.json()["user"]["isOnline"] is True

    res = client.post("/api/auth/login", json={"email": "alice@example.com", "password": "wrong"})
    assert res.status_code == 401


def test_requests_without_valid_token_are_401(client):
    assert client.get("/api/auth/users").status_code == 401
    res = client.get("/api/auth/users", headers={"Authorization": "Bearer not-a-token"})
    assert res.status_code == 401


def test_users_excludes_caller_and_lists_online_first(client, register):
    _, _, alice = register("alice")
    register("bob")
    register("carol")
    client.post("/api/auth/login", json={"email": "carol@example.com", "password": "secret123"})

    res = client.get("/api/auth/users", headers=alice)
    assert res.status_code == 200
    names = [u["username"] for u in res.json()]
    assert "alice" not in names
    assert names[0] == "carol"
    assert set(names) == {"bob", "carol"}


def test_profile_update_and_logout(client, register):
    _, _, headers = register("alice")

    res = client.put("/api/auth/profile", headers=headers, json={
        "profile": {"firstName": "Al", "lastName": "Ice", "phone": "123"},
    })
    assert res.status_code == 200
    assert res.json()["user"]["profile"]["lastName"] == "Ice"

    res = client.get("/api/auth/profile", headers=headers)
    assert res.json()["profile"]["phone"] == "123"

    client.post("/api/auth/login", json={"email": "alice@example.com", "password": "secret123"})
    res = client.post("/api/auth/logout", headers=headers)
    assert res.status_code == 200
    assert client.get("/api/auth/profile", headers=headers).json()["isOnline"] is False


def test_register_race_on_unique_index_is_400(client, register, monkeypatch):
    register("alice")

    real_check = auth_routers._duplicate_detail
    calls = []

    async def check_misses_first_time(user):
        calls.append(user.username)
        if len(calls) == 1:
            return None
        return await real_check(user)

    monkeypatch.setattr(auth_routers, "_duplicate_detail", check_misses_first_time)
    res = client.post("/api/auth/register", json={
        "username": "alice", "email": "alice@example.com", "password": "x",
    })
    assert res.status_code == 400
    assert res.json()["message"] == "Username already taken"
    assert len(calls) == 2
