"""Shared fixtures: an in-memory MongoDB and a TestClient bound to it."""

import mongomock
import pytest
from fastapi.testclient import TestClient

import database
from database import create_document


@pytest.fixture
def db(monkeypatch):
    mock_db = mongomock.MongoClient()["storefront_test"]
    monkeypatch.setattr(database, "db", mock_db)
    return mock_db


@pytest.fixture
def client(db):
    from main import app

    return TestClient(app, raise_server_exceptions=False)


@pytest.fixture
def make_product(db):
    def _make(**overrides):
        doc = {
            "name": "Widget",
            "description": "A plain widget",
            "price": 10.0,
            "stock": 5,
            "category": "tools",
            "rating": 4.0,
            "imageUrl": "",
        }
        doc.update(overrides)
        return create_document(db, "product", doc)

    return _make
