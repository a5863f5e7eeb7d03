"""
Fixtures for API tests: a TestClient with mocked services injected.
"""

from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient

from classrag.api.deps import (
    get_document_service,
    get_retrieval_service,
    get_settings_dependency,
)
from classrag.api.main import create_app
from classrag.application.services import DocumentService, RetrievalService
from classrag.configs import Settings


@pytest.fixture
def mock_document_service() -> MagicMock:
    return MagicMock(spec=DocumentService)


@pytest.fixture
def mock_retrieval_service() -> MagicMock:
    return MagicMock(spec=RetrievalService)


@pytest.fixture
def app(mock_document_service, mock_retrieval_service):
    app = create_app()
    app.dependency_overrides[get_document_service] = lambda: mock_document_service
    app.dependency_overrides[get_retrieval_service] = lambda: mock_retrieval_service
    app.dependency_overrides[get_settings_dependency] = lambda: Settings(environment="test")
    yield app
    app.dependency_overrides.clear()


@pytest.fixture
def client(app) -> TestClient:
    """Client without lifespan, so no real services are built."""
    return TestClient(app)
