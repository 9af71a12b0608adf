"""Client-side cryptography for multi-recipient file sharing."""

from .content import (
    ContentCipher,
    ContentKey,
    EncryptedContent,
    FileKeyManager,
)

from .kem import (
    EncapsulationResult,
    KemEncapsulator,
    generate_keypair,
    decapsulate,
)

from .keywrap import (
    WRAP_CONTEXT,
    DerivedKey,
    KeyWrapDeriver,
    WrappedKey,
)

from .encoding import b64, b64d

__all__ = [
    # Content
    "ContentCipher",
    "ContentKey",
    "EncryptedContent",
    "FileKeyManager",
    # KEM
    "EncapsulationResult",
    "KemEncapsulator",
    "generate_keypair",
    "decapsulate",
    # Key wrap
    "WRAP_CONTEXT",
    "DerivedKey",
    "KeyWrapDeriver",
    "WrappedKey",
    # Encoding
    "b64",
    "b64d",
]
