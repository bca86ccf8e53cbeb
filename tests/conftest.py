import pytest

from tests.fakes import FakeRevisionSource


@pytest.fixture
def fake_source():
    return FakeRevisionSource()
