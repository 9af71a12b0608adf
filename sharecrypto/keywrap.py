"""
Key Wrap Module

Derives a per-recipient wrapping key from the KEM shared secret with
HKDF-SHA256 and wraps the content key under it with AES-256-GCM.

The salt is generated here when the caller does not supply one and is
handed back so it can travel in the recipient entry; the recipient needs
the exact salt and context label to derive the same key again.
"""

from dataclasses import dataclass
import os
from typing import Optional

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.hkdf import HKDF

from .content import ContentKey, NONCE_SIZE
from .errors import AuthenticationFailure

# Protocol constant. Changing it breaks every existing recipient entry.
WRAP_CONTEXT = "file-wrap"
SALT_SIZE = 16
DERIVED_KEY_SIZE = 32


@dataclass(frozen=True)
class DerivedKey:
    key: bytes
    salt: bytes

    def __repr__(self) -> str:
        return f"DerivedKey(salt={self.salt.hex()})"


@dataclass(frozen=True)
class WrappedKey:
    wrapped_key: bytes
    wrap_nonce: bytes


class KeyWrapDeriver:
    """HKDF derivation plus AES-GCM wrapping of the content key."""

    def derive(
        self,
        shared_secret: bytes,
        salt: Optional[bytes] = None,
        context: str = WRAP_CONTEXT,
    ) -> DerivedKey:
        """
        Extract-and-expand a wrapping key from a KEM shared secret.

        Args:
            shared_secret: Secret from encapsulation (or decapsulation)
            salt: Salt to reuse; a fresh random one is generated when None
            context: Context label bound into the HKDF info parameter

        Returns:
            DerivedKey holding the key and the salt actually used
        """
        if salt is None:
            salt = os.urandom(SALT_SIZE)
        hkdf = HKDF(
            algorithm=hashes.SHA256(),
            length=DERIVED_KEY_SIZE,
            salt=salt,
            info=context.encode("utf-8"),
        )
        return DerivedKey(key=hkdf.derive(shared_secret), salt=salt)

    def wrap(self, derived: DerivedKey, content_key: ContentKey) -> WrappedKey:
        """Encrypt the content key under the derived key, single-use nonce per call."""
        nonce = os.urandom(NONCE_SIZE)
        wrapped = AESGCM(derived.key).encrypt(nonce, content_key.raw(), None)
        return WrappedKey(wrapped_key=wrapped, wrap_nonce=nonce)

    def unwrap(self, derived: DerivedKey, wrapped_key: bytes, wrap_nonce: bytes) -> ContentKey:
        """Recover the content key. Raises AuthenticationFailure on tamper or wrong key."""
        try:
            raw = AESGCM(derived.key).decrypt(wrap_nonce, wrapped_key, None)
        except (InvalidTag, ValueError) as e:
            raise AuthenticationFailure("wrapped content key failed authentication") from e
        return ContentKey(raw)
