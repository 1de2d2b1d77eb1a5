"""
storage/passwords.py

Credential hashing schemes for the account directory.

Two schemes are available:

``pbkdf2`` (default)
    PBKDF2-HMAC-SHA256, 260 000 iterations, 16-byte random salt, stored as a
    single colon-delimited string ``"<hex_salt>:<hex_hash>"``.

``plaintext``
    Stores the password verbatim.  Reproduces the behaviour of the original
    browser demo, which kept passwords in cleartext in localStorage.  Useful
    for behavioural comparison only; never use it for real accounts.

Both schemes compare with ``hmac.compare_digest`` to avoid timing leaks.
"""

from __future__ import annotations

import hashlib
import hmac
import os
from typing import Protocol

_ITERATIONS = 260_000
_HASH_ALG = "sha256"


class CredentialHasher(Protocol):
    """Turns a plaintext password into stored credential material and back."""

    scheme: str

    def hash(self, password: str) -> str: ...

    def verify(self, password: str, stored: str) -> bool: ...


class Pbkdf2Hasher:
    scheme = "pbkdf2"

    def __init__(self, iterations: int = _ITERATIONS) -> None:
        self.iterations = iterations

    def _derive(self, password: str, salt: bytes) -> bytes:
        return hashlib.pbkdf2_hmac(_HASH_ALG, password.encode("utf-8"), salt, self.iterations)

    def hash(self, password: str) -> str:
        salt = os.urandom(16)
        dk = self._derive(password, salt)
        return f"{salt.hex()}:{dk.hex()}"

    def verify(self, password: str, stored: str) -> bool:
        """
        Verify *password* against a stored ``"<hex_salt>:<hex_hash>"`` blob.
        Malformed blobs never verify.
        """
        try:
            hex_salt, hex_hash = stored.split(":", 1)
            salt = bytes.fromhex(hex_salt)
        except ValueError:
            return False
        return hmac.compare_digest(self._derive(password, salt).hex(), hex_hash)


class PlaintextHasher:
    scheme = "plaintext"

    def hash(self, password: str) -> str:
        return password

    def verify(self, password: str, stored: str) -> bool:
        return hmac.compare_digest(password.encode("utf-8"), stored.encode("utf-8"))


def get_hasher(scheme: str) -> CredentialHasher:
    """Return the hasher registered under *scheme*."""
    if scheme == Pbkdf2Hasher.scheme:
        return Pbkdf2Hasher()
    if scheme == PlaintextHasher.scheme:
        return PlaintextHasher()
    raise ValueError(f"Unknown credential scheme '{scheme}'. Must be 'pbkdf2' or 'plaintext'.")
