import pytest

from tests.fakes import FakeClock, FakeGitHub


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def github():
    return FakeGitHub()
