"""
Content Encryption Module

Generates the ephemeral per-upload content key and encrypts the file body
once with AES-256-GCM. The ciphertext carries the 16-byte GCM tag appended,
so a single blob can be shipped as the raw upload payload.
"""

from dataclasses import dataclass
import os

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from .errors import AuthenticationFailure, EncryptionFailure

CONTENT_KEY_SIZE = 32  # AES-256
NONCE_SIZE = 12  # 96-bit GCM nonce
TAG_SIZE = 16


class ContentKey:
    """
    Raw symmetric key for one upload.

    The bytes live in a mutable buffer so the pipeline can overwrite them
    once the envelope has been sent or the attempt aborted.
    """

    def __init__(self, raw: bytes):
        if len(raw) != CONTENT_KEY_SIZE:
            raise ValueError(f"content key must be {CONTENT_KEY_SIZE} bytes")
        self._buf = bytearray(raw)

    def raw(self) -> bytes:
        if not self._buf:
            raise ValueError("content key has been discarded")
        return bytes(self._buf)

    @property
    def discarded(self) -> bool:
        return not self._buf

    def discard(self) -> None:
        for i in range(len(self._buf)):
            self._buf[i] = 0
        self._buf = bytearray()

    def __repr__(self) -> str:
        state = "discarded" if self.discarded else "live"
        return f"<ContentKey {state}>"


@dataclass(frozen=True)
class EncryptedContent:
    ciphertext: bytes  # ciphertext || tag
    nonce: bytes


class FileKeyManager:
    """Produces a fresh content key for every upload."""

    def generate(self) -> ContentKey:
        return ContentKey(os.urandom(CONTENT_KEY_SIZE))


class ContentCipher:
    """AES-256-GCM over the whole file body."""

    def encrypt(self, plaintext: bytes, key: ContentKey) -> EncryptedContent:
        """
        Encrypt plaintext under the content key with a freshly generated nonce.

        Args:
            plaintext: The original file bytes
            key: The upload's content key

        Returns:
            EncryptedContent with ciphertext||tag and the nonce used

        A key of the wrong size raises ValueError from the primitive; that is
        a programming error and is not translated.
        """
        aesgcm = AESGCM(key.raw())
        nonce = os.urandom(NONCE_SIZE)
        try:
            ciphertext = aesgcm.encrypt(nonce, plaintext, None)
        except OverflowError as e:
            raise EncryptionFailure(f"file too large for AES-GCM: {e}") from e
        return EncryptedContent(ciphertext=ciphertext, nonce=nonce)

    def decrypt(self, encrypted: EncryptedContent, key: ContentKey) -> bytes:
        """
        Decrypt and authenticate. Raises AuthenticationFailure if the
        ciphertext or nonce was altered or the key is wrong.
        """
        if len(encrypted.ciphertext) < TAG_SIZE:
            raise AuthenticationFailure("ciphertext shorter than GCM tag")
        aesgcm = AESGCM(key.raw())
        try:
            return aesgcm.decrypt(encrypted.nonce, encrypted.ciphertext, None)
        except (InvalidTag, ValueError) as e:
            raise AuthenticationFailure("content failed authentication") from e
