import firebase_admin
import pytest
from fastapi.testclient import TestClient

from openlearnhub.main import app
from openlearnhub.services import firebase_service


def test_startup_fails_without_required_configuration(monkeypatch):
    for name in ("FIREBASE_CREDENTIALS", "OPENROUTER_API_KEY", "JWT_SECRET"):
        monkeypatch.delenv(name, raising=False)

    with pytest.raises(RuntimeError):
        with TestClient(app):
            pass


def test_init_firebase_reuses_existing_app(monkeypatch):
    existing = object()
    monkeypatch.setattr(firebase_admin, "_apps", {"[DEFAULT]": existing})
    assert firebase_service.init_firebase({"type": "service_account"}) is existing


def test_init_firebase_initializes_once(monkeypatch):
    calls = []
    monkeypatch.setattr(firebase_admin, "_apps", {})
    monkeypatch.setattr(firebase_service.credentials, "Certificate", lambda info: ("cert", info["project_id"]))

    def fake_initialize(cred):
        calls.append(cred)
        return "firebase-app"

    monkeypatch.setattr(firebase_service.firebase_admin, "initialize_app", fake_initialize)

    assert firebase_service.init_firebase({"project_id": "demo"}) == "firebase-app"
    assert calls == [("cert", "demo")]


def test_root(client):
    response = client.get("/")
    assert response.status_code == 200
    assert response.text == "OpenLearn Hub Backend is running successfully!"
