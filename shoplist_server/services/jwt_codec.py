"""Thin PyJWT wrapper shared by the issuer, verifier, ledger and admin keys.

Translates PyJWT's exception hierarchy into the AuthError taxonomy and
pins the accepted algorithms to the HMAC family.  Asymmetric or ``none``
tokens are refused before any key is looked up, which closes the
algorithm-confusion hole of letting the token header choose the
verification method.
"""

from __future__ import annotations

from collections.abc import Sequence

import jwt

from shoplist_server.services.errors import (
    BadSignature,
    InvalidSignatureAlgorithm,
    MalformedToken,
    SigningFailure,
    TokenExpired,
    TokenNotYetValid,
)

SIGNING_ALGORITHM = "HS512"
HMAC_ALGORITHMS = ["HS256", "HS384", "HS512"]


def encode(payload: dict, secret: str) -> str:
    try:
        return jwt.encode(payload, secret, algorithm=SIGNING_ALGORITHM)
    except (TypeError, ValueError, jwt.PyJWTError) as e:
        raise SigningFailure(f"failed to sign token: {e}") from e


def require_hmac(token: str) -> None:
    """Reject tokens that do not parse or are not HMAC-signed."""
    try:
        header = jwt.get_unverified_header(token)
    except jwt.DecodeError as e:
        raise MalformedToken(str(e)) from None
    alg = header.get("alg")
    if alg not in HMAC_ALGORITHMS:
        raise InvalidSignatureAlgorithm(f"alg={alg!r} is not HMAC")


def decode(
    token: str,
    secret: str,
    *,
    issuer: str | None = None,
    require: Sequence[str] = (),
) -> dict:
    """Verify signature then temporal claims; return the payload.

    PyJWT checks the signature before exp/nbf, so a forged token reports
    BadSignature even when it is also expired.
    """
    try:
        return jwt.decode(
            token,
            secret,
            algorithms=HMAC_ALGORITHMS,
            issuer=issuer,
            options={"require": list(require)},
        )
    # InvalidSignatureError subclasses DecodeError; keep it first.
    except jwt.InvalidSignatureError:
        raise BadSignature("signature verification failed") from None
    except jwt.ExpiredSignatureError:
        raise TokenExpired("token expired") from None
    except jwt.ImmatureSignatureError:
        raise TokenNotYetValid("token not yet valid") from None
    except jwt.InvalidAlgorithmError:
        raise InvalidSignatureAlgorithm("algorithm not allowed") from None
    except jwt.InvalidTokenError as e:
        raise MalformedToken(str(e)) from None
