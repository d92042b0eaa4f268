"""Tests for bearer token issue and resolution."""

from datetime import datetime, timedelta, timezone

from modcert.auth.sessions import SESSIONS_COLLECTION, TokenStore


def test_issue_and_resolve(store):
    tokens = TokenStore(store)
    token = tokens.issue("u1", "u1@wbs.de", role="operations")
    assert token.startswith("mc_")

    info = tokens.resolve(token)
    assert info.uid == "u1"
    assert info.email == "u1@wbs.de"
    assert info.role == "operations"


def test_raw_token_is_not_stored(store):
    token = TokenStore(store).issue("u1", "u1@wbs.de")
    assert not store.get(SESSIONS_COLLECTION, token).exists


def test_unknown_token(store):
    assert TokenStore(store).resolve("mc_nope") is None


def test_expired_token_is_removed(store):
    tokens = TokenStore(store)
    token = tokens.issue("u1", "u1@wbs.de")
    key = tokens._hash_token(token)
    past = (datetime.now(timezone.utc) - timedelta(minutes=1)).isoformat()
    store.update(SESSIONS_COLLECTION, key, {"expiresAt": past})

    assert tokens.resolve(token) is None
    assert not store.get(SESSIONS_COLLECTION, key).exists


def test_revoke(store):
    tokens = TokenStore(store)
    token = tokens.issue("u1", "u1@wbs.de")
    assert tokens.revoke(token) is True
    assert tokens.resolve(token) is None
