# src/slider_gate/utils/hash.py
"""BLAKE3 helpers for fingerprinting client context."""

from __future__ import annotations

from blake3 import blake3

_FINGERPRINT_DOMAIN = b"slider-gate:client:"


def blake3_hexdigest(data: bytes) -> str:
    """Return the hexadecimal BLAKE3 digest of the supplied data."""
    return blake3(data).hexdigest()


def client_fingerprint(address: str | None) -> str | None:
    """Return a stable fingerprint of a client address.

    Challenge records keep this instead of the raw IP so the durable tier
    does not hold addresses in the clear.
    """
    if not address:
        return None
    return blake3_hexdigest(_FINGERPRINT_DOMAIN + address.encode())
