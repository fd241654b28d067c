import pytest

from docsift import runtime
from docsift.runtime import RuntimeConfig
from docsift.storage import init_db

from tests.pdfs import FakeVision


@pytest.fixture(autouse=True)
def fresh_global_config(monkeypatch):
    monkeypatch.setattr(runtime, "_global_config", None)


@pytest.fixture
def vision():
    return FakeVision()


@pytest.fixture
def config():
    return RuntimeConfig()


@pytest.fixture
def conn():
    connection = init_db(":memory:")
    yield connection
    connection.close()
