"""PKCE (:rfc:`7636`) verifier and S256 challenge generation.

A fresh pair is generated for every login attempt that does not hold a
client secret. The verifier stays in process memory until it is sent in
the token exchange body.
"""

from __future__ import annotations

import base64
import hashlib
import secrets

from loginkit.models import PKCEPair

MIN_VERIFIER_BYTES = 32


def _b64url_nopad(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii")


def derive_challenge(verifier: str) -> str:
    """Return ``base64url(sha256(verifier))`` without padding.

    The digest is taken over the verifier string exactly as it is
    transmitted, encoded as ASCII.
    """
    digest = hashlib.sha256(verifier.encode("ascii")).digest()
    return _b64url_nopad(digest)


def generate_pkce_pair(num_bytes: int = MIN_VERIFIER_BYTES) -> PKCEPair:
    """Generate a PKCE ``code_verifier`` / ``code_challenge`` pair (S256).

    Args:
        num_bytes: Bytes of randomness behind the verifier. Values below
            32 are rejected.

    Returns:
        A :class:`~loginkit.models.PKCEPair`.
    """
    if num_bytes < MIN_VERIFIER_BYTES:
        raise ValueError(f"PKCE verifier needs at least {MIN_VERIFIER_BYTES} bytes of entropy")
    # RFC 7636: 43-128 characters from the unreserved set; 32 bytes -> 43 chars
    verifier = _b64url_nopad(secrets.token_bytes(num_bytes))[:128]
    return PKCEPair(verifier=verifier, challenge=derive_challenge(verifier))
