"""Authentication failure taxonomy.

Every step of the verification chains raises one of these.  The HTTP
layer only ever sees ``status_code`` and ``public_message``; ``reason``
goes to the logs and the auth_decisions_total metric so operators can
tell the failures apart without handing clients an oracle.
"""

from __future__ import annotations


class AuthError(Exception):
    status_code = 401
    reason = "auth_error"
    public_message = "invalid token"


class MissingToken(AuthError):
    reason = "missing_token"


class MalformedToken(AuthError):
    reason = "malformed_token"


class InvalidSignatureAlgorithm(AuthError):
    reason = "invalid_signature_algorithm"


class BadSignature(AuthError):
    reason = "bad_signature"


class SecretExpired(AuthError):
    reason = "secret_expired"


class TokenExpired(AuthError):
    reason = "token_expired"


class TokenNotYetValid(AuthError):
    reason = "token_not_yet_valid"


class UnknownUser(AuthError):
    reason = "unknown_user"


class IdentityMismatch(AuthError):
    reason = "identity_mismatch"


class TokenNotIssuedByServer(AuthError):
    reason = "token_not_issued_by_server"


class InvalidAdminKey(AuthError):
    reason = "invalid_admin_key"
    public_message = "invalid API key"


class InsufficientPrivilege(AuthError):
    status_code = 403
    reason = "insufficient_privilege"
    public_message = "forbidden"


class KeyMismatch(AuthError):
    status_code = 403
    reason = "key_mismatch"
    public_message = "forbidden"


class IPNotAllowed(AuthError):
    status_code = 403
    reason = "ip_not_allowed"
    public_message = "request from IP not allowed"


# ---------------------------------------------------------------------------
# Operator-facing errors (never reach a client as-is)
# ---------------------------------------------------------------------------


class SigningFailure(RuntimeError):
    """A token could not be encoded.  Not expected in normal operation."""


class SecretStoreError(RuntimeError):
    """A secret file is unusable; the process must not serve traffic."""


class SecretNotProvisioned(SecretStoreError):
    pass


class SecretFileMalformed(SecretStoreError):
    pass
