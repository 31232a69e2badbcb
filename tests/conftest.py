"""
Pytest configuration for the Bistro API tests.

The app runs inside its lifespan against an in-memory mongomock client and
a fake payment gateway, so no MongoDB server or Stripe account is needed.
"""

import mongomock
import pytest
from fastapi.testclient import TestClient

from auth import TokenService
from config import Settings
from main import create_app

TOKEN_SECRET = "test-token-secret-0123456789abcdef0123456789"
ADMIN_EMAIL = "admin@bistro.test"
USER_EMAIL = "guest@bistro.test"


class FakePayments:
    """Records payment intents instead of calling Stripe."""

    def __init__(self):
        self.calls = []
        self.error = None

    def create_payment_intent(self, amount, currency="usd"):
        if self.error is not None:
            raise self.error
        self.calls.append({"amount": amount, "currency": currency})
        return f"pi_{amount}_secret_test"


@pytest.fixture
def settings():
    return Settings(
        token_secret=TOKEN_SECRET,
        database_url="mongodb://localhost:27017",
        database_name="BistroTest",
    )


@pytest.fixture
def mongo_client():
    return mongomock.MongoClient()


@pytest.fixture
def payments():
    return FakePayments()


@pytest.fixture
def client(settings, mongo_client, payments):
    app = create_app(settings=settings, mongo_client=mongo_client, payments=payments)
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def store(client):
    return client.app.state.store


@pytest.fixture
def tokens(settings):
    return TokenService(settings.token_secret)


@pytest.fixture
def auth_header(tokens):
    """Build an Authentication header for the given email."""

    def make(email):
        return {"Authentication": f"Bearer {tokens.issue({'email': email})}"}

    return make


@pytest.fixture
def admin_headers(store, auth_header):
    store.users.insert_one({"email": ADMIN_EMAIL, "name": "Admin", "role": "@Admin"})
    return auth_header(ADMIN_EMAIL)


@pytest.fixture
def user_headers(store, auth_header):
    store.users.insert_one({"email": USER_EMAIL, "name": "Guest"})
    return auth_header(USER_EMAIL)
