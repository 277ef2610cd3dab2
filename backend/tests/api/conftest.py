import pytest
from fastapi.testclient import TestClient

from teachease.core.container import assemble_services
from teachease.integrations.cloud import InMemoryDocumentStore
from teachease.main import create_app
from teachease.services.auth import StaticAuthProvider
from teachease.services.persistence import MemoryKeyValueBackend


@pytest.fixture
def services():
    return assemble_services(MemoryKeyValueBackend(), InMemoryDocumentStore(), StaticAuthProvider("teacher-1"))


@pytest.fixture
def client(services):
    with TestClient(create_app(services=services)) as test_client:
        yield test_client
