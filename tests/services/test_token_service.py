from __future__ import annotations

from datetime import UTC, datetime, timedelta
from pathlib import Path

import jwt
import pytest
from cryptography.hazmat.primitives.asymmetric import ec, rsa

from shoplist_server.models.claims import ISSUER, Claims
from shoplist_server.models.user import User
from shoplist_server.repos.user_repo import InMemoryUserDirectory
from shoplist_server.services import auth_service, jwt_codec
from shoplist_server.services.errors import (
    BadSignature,
    IdentityMismatch,
    InvalidSignatureAlgorithm,
    MalformedToken,
    MissingToken,
    SecretExpired,
    TokenExpired,
    TokenNotIssuedByServer,
    TokenNotYetValid,
    UnknownUser,
)
from shoplist_server.services.secret_store import SecretStore
from shoplist_server.services.token_ledger import TokenLedger
from shoplist_server.services.token_service import TokenIssuer, TokenVerifier
from tests.conftest import write_secret

TIMEOUT = timedelta(minutes=5)


@pytest.fixture
def directory() -> InMemoryUserDirectory:
    return InMemoryUserDirectory()


@pytest.fixture
def alice(directory: InMemoryUserDirectory) -> User:
    return directory.create_user("alice", auth_service.hash_password("pw"))


@pytest.fixture
def issuer(secret_store: SecretStore, ledger: TokenLedger) -> TokenIssuer:
    return TokenIssuer(secret_store, ledger, timeout=TIMEOUT)


@pytest.fixture
def verifier(
    secret_store: SecretStore, ledger: TokenLedger, directory: InMemoryUserDirectory
) -> TokenVerifier:
    return TokenVerifier(secret_store, ledger, directory)


# ---- issue / verify round trip ----


def test_issued_token_verifies_to_the_same_identity(
    issuer: TokenIssuer, verifier: TokenVerifier, alice: User
) -> None:
    token = issuer.issue(alice.id, alice.username)
    principal = verifier.verify(token)
    assert principal.user_id == alice.id
    assert principal.username == "alice"
    assert principal.admin is False


def test_issued_token_carries_expected_claims(
    issuer: TokenIssuer, secret_store: SecretStore, alice: User
) -> None:
    token = issuer.issue(alice.id, alice.username)
    assert jwt.get_unverified_header(token)["alg"] == "HS512"

    payload = jwt.decode(token, secret_store.current().value, algorithms=["HS512"])
    assert payload["id"] == alice.id
    assert payload["username"] == "alice"
    assert payload["iss"] == ISSUER
    assert payload["nbf"] == payload["iat"]
    assert payload["exp"] - payload["iat"] == int(TIMEOUT.total_seconds())


def test_every_issuance_is_distinct_and_recorded(
    issuer: TokenIssuer, ledger: TokenLedger, alice: User
) -> None:
    first = issuer.issue(alice.id, alice.username)
    second = issuer.issue(alice.id, alice.username)
    assert first != second
    assert ledger.contains(first)
    assert ledger.contains(second)


def test_issue_rejects_empty_username(issuer: TokenIssuer) -> None:
    with pytest.raises(ValueError):
        issuer.issue(1, "")


def test_issuer_rejects_non_positive_timeout(
    secret_store: SecretStore, ledger: TokenLedger
) -> None:
    with pytest.raises(ValueError):
        TokenIssuer(secret_store, ledger, timeout=timedelta(0))


def test_issue_fails_with_expired_secret(
    tmp_path: Path, ledger: TokenLedger, alice: User
) -> None:
    write_secret(tmp_path / "old.json", valid_for=timedelta(seconds=-1))
    issuer = TokenIssuer(SecretStore(tmp_path / "old.json"), ledger, timeout=TIMEOUT)
    with pytest.raises(SecretExpired):
        issuer.issue(alice.id, alice.username)
    assert len(ledger) == 0


# ---- temporal checks ----


def test_expired_token_is_rejected(
    secret_store: SecretStore,
    ledger: TokenLedger,
    verifier: TokenVerifier,
    alice: User,
) -> None:
    past = datetime.now(UTC) - timedelta(hours=1)
    issuer = TokenIssuer(secret_store, ledger, timeout=TIMEOUT, clock=lambda: past)
    token = issuer.issue(alice.id, alice.username)
    with pytest.raises(TokenExpired):
        verifier.verify(token)


def test_token_from_the_future_is_rejected(
    secret_store: SecretStore,
    ledger: TokenLedger,
    verifier: TokenVerifier,
    alice: User,
) -> None:
    future = datetime.now(UTC) + timedelta(hours=1)
    issuer = TokenIssuer(secret_store, ledger, timeout=TIMEOUT, clock=lambda: future)
    token = issuer.issue(alice.id, alice.username)
    with pytest.raises(TokenNotYetValid):
        verifier.verify(token)


# ---- signature and algorithm ----


def test_token_signed_with_another_secret_is_rejected(
    verifier: TokenVerifier, alice: User
) -> None:
    claims = Claims.new(
        user_id=alice.id,
        username=alice.username,
        now=datetime.now(UTC),
        timeout=TIMEOUT,
    )
    forged = jwt_codec.encode(claims.to_payload(), "an-entirely-different-secret" * 3)
    with pytest.raises(BadSignature):
        verifier.verify(forged)


def test_bad_signature_wins_over_expiry(verifier: TokenVerifier, alice: User) -> None:
    claims = Claims.new(
        user_id=alice.id,
        username=alice.username,
        now=datetime.now(UTC) - timedelta(hours=1),
        timeout=TIMEOUT,
    )
    forged = jwt_codec.encode(claims.to_payload(), "an-entirely-different-secret" * 3)
    with pytest.raises(BadSignature):
        verifier.verify(forged)


def test_single_character_tampering_invalidates(
    issuer: TokenIssuer, verifier: TokenVerifier, alice: User
) -> None:
    token = issuer.issue(alice.id, alice.username)
    header, payload, signature = token.split(".")
    mid = len(signature) // 2
    flipped = "B" if signature[mid] == "A" else "A"
    signature = signature[:mid] + flipped + signature[mid + 1 :]
    tampered = ".".join([header, payload, signature])

    with pytest.raises(BadSignature):
        verifier.verify(tampered)


def _asymmetric_token(key: object, algorithm: str, user: User) -> str:
    now = datetime.now(UTC)
    payload = {
        "id": user.id,
        "username": user.username,
        "iat": now,
        "nbf": now,
        "exp": now + TIMEOUT,
        "iss": ISSUER,
    }
    return jwt.encode(payload, key, algorithm=algorithm)  # type: ignore[arg-type]


def test_rsa_signed_token_is_rejected(verifier: TokenVerifier, alice: User) -> None:
    key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    token = _asymmetric_token(key, "RS256", alice)
    with pytest.raises(InvalidSignatureAlgorithm):
        verifier.verify(token)


def test_ecdsa_signed_token_is_rejected(verifier: TokenVerifier, alice: User) -> None:
    key = ec.generate_private_key(ec.SECP256R1())
    token = _asymmetric_token(key, "ES256", alice)
    with pytest.raises(InvalidSignatureAlgorithm):
        verifier.verify(token)


@pytest.mark.parametrize("garbage", ["", "abc", "a.b", "not.a.jwt"])
def test_garbage_is_malformed(verifier: TokenVerifier, garbage: str) -> None:
    with pytest.raises(MalformedToken):
        verifier.verify(garbage)


def test_token_without_issuer_is_malformed(
    verifier: TokenVerifier, secret_store: SecretStore, alice: User
) -> None:
    payload = Claims.new(
        user_id=alice.id,
        username=alice.username,
        now=datetime.now(UTC),
        timeout=TIMEOUT,
    ).to_payload()
    del payload["iss"]
    token = jwt_codec.encode(payload, secret_store.current().value)
    with pytest.raises(MalformedToken):
        verifier.verify(token)


# ---- identity and ledger ----


def test_token_for_unknown_user_is_rejected(
    issuer: TokenIssuer, verifier: TokenVerifier
) -> None:
    token = issuer.issue(999, "ghost")
    with pytest.raises(UnknownUser):
        verifier.verify(token)


def test_renamed_user_token_is_rejected(
    issuer: TokenIssuer,
    verifier: TokenVerifier,
    directory: InMemoryUserDirectory,
    alice: User,
) -> None:
    token = issuer.issue(alice.id, alice.username)
    directory.update_username(alice.id, "alice2")
    with pytest.raises(IdentityMismatch):
        verifier.verify(token)


def test_correctly_signed_but_unrecorded_token_is_rejected(
    verifier: TokenVerifier, secret_store: SecretStore, alice: User
) -> None:
    claims = Claims.new(
        user_id=alice.id,
        username=alice.username,
        now=datetime.now(UTC),
        timeout=TIMEOUT,
    )
    token = jwt_codec.encode(claims.to_payload(), secret_store.current().value)
    with pytest.raises(TokenNotIssuedByServer):
        verifier.verify(token)


# ---- Authorization header parsing ----


def test_bearer_header_is_accepted_case_insensitively(
    issuer: TokenIssuer, verifier: TokenVerifier, alice: User
) -> None:
    token = issuer.issue(alice.id, alice.username)
    assert verifier.verify_header(f"Bearer {token}").user_id == alice.id
    assert verifier.verify_header(f"bearer {token}").user_id == alice.id


@pytest.mark.parametrize("header", [None, "", "   "])
def test_missing_header(verifier: TokenVerifier, header: str | None) -> None:
    with pytest.raises(MissingToken):
        verifier.verify_header(header)


def test_bare_token_rejected_by_default(
    issuer: TokenIssuer, verifier: TokenVerifier, alice: User
) -> None:
    token = issuer.issue(alice.id, alice.username)
    with pytest.raises(MalformedToken):
        verifier.verify_header(token)


def test_bare_token_accepted_when_enabled(
    issuer: TokenIssuer,
    secret_store: SecretStore,
    ledger: TokenLedger,
    directory: InMemoryUserDirectory,
    alice: User,
) -> None:
    verifier = TokenVerifier(secret_store, ledger, directory, allow_bare_token=True)
    token = issuer.issue(alice.id, alice.username)
    assert verifier.verify_header(token).user_id == alice.id


def test_other_scheme_is_malformed(verifier: TokenVerifier) -> None:
    with pytest.raises(MalformedToken):
        verifier.verify_header("Basic dGVlOnB3")
