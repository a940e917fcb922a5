from database import USERS


def test_first_login_creates_user(client, db):
    res = client.post("/users", json={"email": "a@x.com", "uid": "firebase-1", "name": "Ada"})
    assert res.status_code == 201
    assert res.json()["success"] is True

    user = db[USERS].find_one({"email": "a@x.com"})
    assert user["uid"] == "firebase-1"
    assert user["role"] == "customer"
    assert user["name"] == "Ada"
    assert user["lastLogin"] is not None


def test_repeat_login_only_touches_last_login(client, db):
    client.post("/users", json={"email": "a@x.com", "uid": "firebase-1", "role": "admin"})
    first_login = db[USERS].find_one({"email": "a@x.com"})["lastLogin"]

    res = client.post("/users", json={"email": "a@x.com", "uid": "firebase-2", "role": "customer"})
    assert res.status_code == 200

    assert db[USERS].count_documents({"email": "a@x.com"}) == 1
    user = db[USERS].find_one({"email": "a@x.com"})
    assert user["uid"] == "firebase-1"
    assert user["role"] == "admin"
    assert user["lastLogin"] >= first_login


def test_login_requires_email_and_uid(client, db):
    assert client.post("/users", json={"uid": "firebase-1"}).status_code == 400
    assert client.post("/users", json={"email": "a@x.com"}).status_code == 400
    assert db[USERS].count_documents({}) == 0


def test_list_users(client, make_users):
    make_users("a@x.com", "b@x.com")
    res = client.get("/users")
    assert res.status_code == 200
    assert sorted(u["email"] for u in res.json()["users"]) == ["a@x.com", "b@x.com"]


def test_role_lookup(client):
    client.post("/users", json={"email": "boss@x.com", "uid": "u1", "role": "admin"})
    assert client.get("/users/role/boss@x.com").json() == {"role": "admin"}

    res = client.get("/users/role/nobody@x.com")
    assert res.status_code == 404
    assert res.json() == {"role": None}
