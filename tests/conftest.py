import pytest

from shieldforge.application.passkeys import PasskeyCeremonyCoordinator
from shieldforge.domain.entities import User
from shieldforge.infrastructure.challenges.memory import InMemoryChallengeStore
from tests.fakes import (
    FakeClock,
    FakeNotifier,
    FakePasswordResetRepo,
    FakeUserRepo,
    FakeVerifier,
)


@pytest.fixture()
def clock():
    return FakeClock()


@pytest.fixture()
def challenge_store(clock):
    return InMemoryChallengeStore(clock=clock)


@pytest.fixture()
def verifier():
    return FakeVerifier()


@pytest.fixture()
def coordinator(challenge_store, verifier):
    return PasskeyCeremonyCoordinator(
        rp_name="Example",
        rp_id="example.com",
        origin="https://example.com",
        challenge_ttl_seconds=300,
        challenge_store=challenge_store,
        verifier=verifier,
    )


@pytest.fixture()
def user():
    return User(id="u1", email="user@example.com", password_hash="hashed-old")


@pytest.fixture()
def users(user):
    return FakeUserRepo([user])


@pytest.fixture()
def resets():
    return FakePasswordResetRepo()


@pytest.fixture()
def notifier():
    return FakeNotifier()


@pytest.fixture()
def hash_password_stub():
    return lambda p: "hashed-" + p
