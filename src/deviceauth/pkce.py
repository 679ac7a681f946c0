"""PKCE verifier / challenge generation (:rfc:`7636`, S256 method).

The verifier is 32 bytes from :mod:`secrets`, base64url-encoded without
padding (43 characters). The challenge is the base64url-encoded SHA-256
digest of the verifier's UTF-8 bytes, also without padding.
"""

from __future__ import annotations

import base64
import hashlib
import secrets

from deviceauth.exceptions import PKCEError
from deviceauth.models import PKCEPair

VERIFIER_BYTES = 32


def _b64url(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii")


def generate_verifier() -> str:
    """Return a fresh code verifier drawn from the OS secure random source.

    Raises:
        PKCEError: If the platform has no secure random source.
    """
    try:
        raw = secrets.token_bytes(VERIFIER_BYTES)
    except NotImplementedError as exc:
        raise PKCEError(f"No secure random source available: {exc}") from exc
    return _b64url(raw)


def derive_challenge(verifier: str) -> str:
    """Return the S256 code challenge for *verifier*."""
    digest = hashlib.sha256(verifier.encode("utf-8")).digest()
    return _b64url(digest)


def generate_pkce_pair() -> PKCEPair:
    """Generate a :class:`~deviceauth.models.PKCEPair` for one flow run."""
    verifier = generate_verifier()
    return PKCEPair(verifier=verifier, challenge=derive_challenge(verifier))
