import pytest
from bson import ObjectId
from fastapi.testclient import TestClient
from mongomock_motor import AsyncMongoMockClient
from pymongo.errors import PyMongoError

from main import app
from routes import get_expenses_collection
from utils.auth import CurrentUser, get_current_user
from utils.rate_limit import limiter

OWNER_ID = str(ObjectId())
OTHER_OWNER_ID = str(ObjectId())


@pytest.fixture
def collection():
    return AsyncMongoMockClient()["expense_tracker_test"]["expenses"]


@pytest.fixture
def current_user() -> CurrentUser:
    # Tests switch owners by reassigning current_user.id
    return CurrentUser(id=OWNER_ID, role="admin")


@pytest.fixture
def client(collection, current_user):
    app.dependency_overrides[get_expenses_collection] = lambda: collection
    app.dependency_overrides[get_current_user] = lambda: current_user
    limiter.reset()
    # Not entered as a context manager so the lifespan never dials MongoDB
    yield TestClient(app)
    app.dependency_overrides.clear()


def create_expense(client: TestClient, **overrides) -> dict:
    body = {"title": "Coffee", "amount": 3.5, "category": "Food", "paymentMethod": "card"}
    body.update(overrides)
    response = client.post("/expense/create", json=body)
    assert response.status_code == 201, response.text
    return response.json()["data"]


def list_expenses(client: TestClient, **params) -> dict:
    response = client.get("/expense/all", params=params)
    assert response.status_code == 200, response.text
    return response.json()


class UnreachableCollection:
    """Collection whose every call fails the way motor does when MongoDB is down."""

    def __getattr__(self, name):
        def fail(*args, **kwargs):
            raise PyMongoError("connection refused")
        return fail


@pytest.fixture
def unreachable_store(client):
    app.dependency_overrides[get_expenses_collection] = lambda: UnreachableCollection()
