"""Shared fixtures: fake hosted services wired into the FastAPI app."""

import pytest
from fastapi.testclient import TestClient

from src.config import Settings
from src.core.rate_limiter import limiter
from src.main import app
from tests.fakes import FakeFirestore, FakeGemini, knowledge_doc


@pytest.fixture
def settings():
    return Settings(_env_file=None, firebase_storage_bucket="ecovibe-test.appspot.com")


@pytest.fixture
def fake_gemini():
    return FakeGemini()


@pytest.fixture
def fake_firestore():
    return FakeFirestore(
        docs=[
            knowledge_doc("Hybrid wood floors combine a real oak top layer with a stone core."),
            knowledge_doc("Хибридният паркет съчетава дъб и каменно ядро.", locale="bg"),
        ]
    )


@pytest.fixture
def client(fake_gemini, fake_firestore):
    """Test client with fake Gemini and Firestore on app.state."""
    limiter.enabled = False
    app.state.gemini = fake_gemini
    app.state.firestore = fake_firestore
    with TestClient(app) as test_client:
        yield test_client
    app.state.gemini = None
    app.state.firestore = None
    limiter.enabled = True
