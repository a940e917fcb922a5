import mongomock
import pytest
from fastapi.testclient import TestClient

import main
from media import get_uploader

HOSTED_URL = "https://res.cloudinary.com/demo/image/upload/robe_products/banner.png"


@pytest.fixture
def db():
    return mongomock.MongoClient()["robeDB_test"]


@pytest.fixture
def uploads():
    return []


@pytest.fixture
def client(db, uploads):
    def fake_upload(image):
        uploads.append(image)
        return HOSTED_URL

    main.app.state.db = db
    main.app.dependency_overrides[get_uploader] = lambda: fake_upload
    with TestClient(main.app) as c:
        yield c
    main.app.dependency_overrides.clear()
    main.app.state.db = None


@pytest.fixture
def make_users(client):
    def _make(*emails):
        for i, email in enumerate(emails):
            res = client.post("/users", json={"email": email, "uid": f"uid-{i}"})
            assert res.status_code == 201
    return _make
