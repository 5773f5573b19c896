"""Tests for PKCE verifier and challenge generation."""

from __future__ import annotations

import base64
import hashlib
import re

import pytest

from loginkit.oauth.pkce import derive_challenge, generate_pkce_pair

_UNRESERVED = re.compile(r"^[A-Za-z0-9\-._~]+$")


class TestGeneratePkcePair:
    def test_verifier_shape(self) -> None:
        pair = generate_pkce_pair()
        assert 43 <= len(pair.verifier) <= 128
        assert _UNRESERVED.match(pair.verifier)

    def test_challenge_is_s256_of_verifier(self) -> None:
        pair = generate_pkce_pair()
        digest = hashlib.sha256(pair.verifier.encode("ascii")).digest()
        expected = base64.urlsafe_b64encode(digest).rstrip(b"=").decode("ascii")
        assert pair.challenge == expected
        assert pair.method == "S256"
        assert "=" not in pair.challenge

    def test_pairs_are_unique(self) -> None:
        verifiers = {generate_pkce_pair().verifier for _ in range(20)}
        assert len(verifiers) == 20

    def test_more_entropy_allowed(self) -> None:
        pair = generate_pkce_pair(num_bytes=64)
        assert len(pair.verifier) == 86

    def test_too_little_entropy_rejected(self) -> None:
        with pytest.raises(ValueError, match="32 bytes"):
            generate_pkce_pair(num_bytes=16)


def test_derive_challenge_known_vector() -> None:
    # Appendix B of RFC 7636.
    verifier = "dBjftJeZ4CVP-mB92K27uhbUJU1p1r_wW1gFWFOEjXk"
    assert derive_challenge(verifier) == "E9Melhoa2OwvFrEMTJguCHaoeK1t8URWbuGKgfBqJ3Q"
