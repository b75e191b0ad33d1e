from datetime import timedelta

import pytest

from testmate.errors import InvalidSignature, TokenExpired
from testmate.services.session_tokens import SessionTokenRegistry

THREE_DAYS = 3 * 24 * 60 * 60


@pytest.fixture
def registry(db, clock):
    return SessionTokenRegistry(db, clock=clock)


def test_issue_and_verify(registry, make_account):
    account = make_account()
    token = registry.issue(account.id)

    assert registry.verify(token) == account.id


def test_tokens_issued_together_differ(registry):
    assert registry.issue(1) != registry.issue(1)


def test_verify_rejects_tampered_and_foreign_tokens(db, clock, registry):
    token = registry.issue(7)
    *header_payload, signature = token.split(".")
    foreign = SessionTokenRegistry(
        db, clock=clock, secret_key="another-secret-key-used-elsewhere-0123456789"
    ).issue(7)

    with pytest.raises(InvalidSignature):
        registry.verify(".".join(header_payload + [signature[::-1]]))
    with pytest.raises(InvalidSignature):
        registry.verify(foreign)
    with pytest.raises(InvalidSignature):
        registry.verify("not-a-jwt")


def test_verify_rejects_expired_token(db, clock):
    clock.advance(days=-4)
    token = SessionTokenRegistry(db, clock=clock).issue(7)

    with pytest.raises(TokenExpired):
        SessionTokenRegistry(db).verify(token)


def test_record_and_prune_drops_stale_records(db, clock, make_account):
    account = make_account()
    now = clock.now
    registry = SessionTokenRegistry(db, clock=clock)

    clock.now = now - timedelta(days=4)
    registry.record_and_prune(account, "stale")
    clock.now = now - timedelta(days=2)
    registry.record_and_prune(account, "recent")
    clock.now = now
    registry.record_and_prune(account, "fresh")

    db.refresh(account)
    assert [record["token"] for record in account.tokens] == ["recent", "fresh"]
    prune_time = registry.now()
    assert all(prune_time - record["signed_at"] < THREE_DAYS for record in account.tokens)


def test_record_past_retention_window_is_dropped(db, clock, make_account):
    account = make_account()
    registry = SessionTokenRegistry(db, clock=clock)
    start = clock.now

    registry.record_and_prune(account, "old")
    clock.now = start + timedelta(seconds=THREE_DAYS + 1)
    registry.record_and_prune(account, "new")

    assert [record["token"] for record in account.tokens] == ["new"]


def test_revoke_removes_only_matching_token(db, registry, make_account):
    account = make_account()
    registry.record_and_prune(account, "one")
    registry.record_and_prune(account, "two")

    registry.revoke(account, "one")
    registry.revoke(account, "unknown")

    db.refresh(account)
    assert [record["token"] for record in account.tokens] == ["two"]


def test_revoked_token_keeps_valid_signature(registry, make_account):
    account = make_account()
    token = registry.issue(account.id)
    registry.record_and_prune(account, token)

    registry.revoke(account, token)

    assert registry.verify(token) == account.id
    assert not registry.is_active(account, token)


def test_expiry_follows_registry_clock(registry, clock):
    token = registry.issue(7)

    clock.advance(seconds=THREE_DAYS - 1)
    assert registry.verify(token) == 7

    clock.advance(seconds=1)
    with pytest.raises(TokenExpired):
        registry.verify(token)


def test_token_issued_ahead_of_wall_clock_verifies(registry, clock):
    clock.advance(days=1)

    assert registry.verify(registry.issue(7)) == 7
