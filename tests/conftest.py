import pytest

import mutate

from exc import NamespaceNotFound


NAMESPACES = {
    "default": {"metadata": {"name": "default"}},
    "cars": {"metadata": {"name": "cars", "labels": {"team": "fleet"}}},
}


class FakeProvider:
    def __init__(self):
        self.calls = []

    def namespace(self, name):
        self.calls.append(name)
        try:
            return NAMESPACES[name]
        except KeyError:
            raise NamespaceNotFound(f"namespace {name} does not exist")


class ErrorProvider:
    def namespace(self, name):
        raise ConnectionError("connection refused")


@pytest.fixture()
def fake_provider():
    return FakeProvider()


@pytest.fixture()
def app():
    app = mutate.create_app(
        PROVIDER=FakeProvider,
        TESTING=True,
    )
    yield app


@pytest.fixture()
def client(app):
    return app.test_client()


@pytest.fixture()
def error_provider():
    return ErrorProvider()
