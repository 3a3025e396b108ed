"""
Ed25519 key ring.

Holds the worker's named signing keys. Strategy orders name the raw 32-byte
public key of the "default" key as their authorised signer.
"""
from __future__ import annotations

import logging
from typing import Optional

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric.ed25519 import (
    Ed25519PrivateKey,
    Ed25519PublicKey,
)

from pool_strategy_bot.exceptions import ConfigurationError, SigningKeyMissingError

logger = logging.getLogger(__name__)


def _raw_public_bytes(key: Ed25519PublicKey) -> bytes:
    return key.public_bytes(
        encoding=serialization.Encoding.Raw,
        format=serialization.PublicFormat.Raw,
    )


class KeyRing:
    """
    Named Ed25519 private keys.

    Usage:
        ring = KeyRing.from_hex({"default": "<64 hex chars>"})
        signature = ring.sign("default", payload)
    """

    def __init__(self, keys: Optional[dict[str, Ed25519PrivateKey]] = None) -> None:
        self._keys: dict[str, Ed25519PrivateKey] = dict(keys or {})

    @classmethod
    def from_hex(cls, seeds: dict[str, str]) -> "KeyRing":
        """
        Build a key ring from hex-encoded 32-byte private key seeds.

        Raises:
            ConfigurationError: If a seed is not 32 bytes of hex
        """
        keys = {}
        for name, seed_hex in seeds.items():
            try:
                seed = bytes.fromhex(seed_hex)
                keys[name] = Ed25519PrivateKey.from_private_bytes(seed)
            except ValueError as e:
                raise ConfigurationError(f"Invalid Ed25519 seed for key '{name}': {e}") from e
        return cls(keys)

    @classmethod
    def generate(cls, *names: str) -> "KeyRing":
        """Fresh random keys, e.g. for dry runs."""
        return cls({name: Ed25519PrivateKey.generate() for name in names})

    def __contains__(self, name: str) -> bool:
        return name in self._keys

    def _private_key(self, name: str) -> Ed25519PrivateKey:
        try:
            return self._keys[name]
        except KeyError:
            raise SigningKeyMissingError(name) from None

    def public_key(self, name: str) -> bytes:
        """Raw 32-byte public key for a named key."""
        return _raw_public_bytes(self._private_key(name).public_key())

    def public_keys(self) -> dict[str, bytes]:
        return {name: _raw_public_bytes(k.public_key()) for name, k in self._keys.items()}

    def sign(self, name: str, payload: bytes) -> bytes:
        """
        Sign a payload with a named key.

        Raises:
            SigningKeyMissingError: If no key has that name
        """
        signature = self._private_key(name).sign(payload)
        logger.debug(f"Signed {len(payload)} bytes with key '{name}'")
        return signature

    def verify(self, name: str, payload: bytes, signature: bytes) -> bool:
        public = Ed25519PublicKey.from_public_bytes(self.public_key(name))
        try:
            public.verify(signature, payload)
        except InvalidSignature:
            return False
        return True
