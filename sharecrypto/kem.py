"""
Post-Quantum Key Encapsulation Module

ML-KEM-768 (FIPS 203 / Kyber) through the pqcrypto bindings. Each call to
encapsulate() produces a fresh (ciphertext, shared secret) pair, so two
wraps for the same recipient never share a secret.
"""

from dataclasses import dataclass
import logging
from typing import Tuple

from pqcrypto.kem import ml_kem_768

from .errors import AuthenticationFailure, InvalidPublicKey

logger = logging.getLogger(__name__)

KEM_ALGORITHM = "ML-KEM-768"
PUBLIC_KEY_SIZE = getattr(ml_kem_768, "PUBLIC_KEY_SIZE", 1184)
SECRET_KEY_SIZE = getattr(ml_kem_768, "SECRET_KEY_SIZE", 2400)
CIPHERTEXT_SIZE = getattr(ml_kem_768, "CIPHERTEXT_SIZE", 1088)


KYBER_Q = 3329
POLY_VECTOR_BYTES = PUBLIC_KEY_SIZE - 32  # t-hat; the trailing 32 bytes are rho


def _coefficients_in_range(public_key: bytes) -> bool:
    """
    FIPS 203 encapsulation key modulus check: every 12-bit little-endian
    coefficient of the encoded vector must be below q.
    """
    data = public_key[:POLY_VECTOR_BYTES]
    for i in range(0, len(data) - 2, 3):
        b0, b1, b2 = data[i], data[i + 1], data[i + 2]
        if (b0 | (b1 & 0x0F) << 8) >= KYBER_Q or (b1 >> 4 | b2 << 4) >= KYBER_Q:
            return False
    return True


@dataclass(frozen=True)
class EncapsulationResult:
    kem_ciphertext: bytes
    shared_secret: bytes

    def __repr__(self) -> str:
        # shared_secret omitted
        return f"EncapsulationResult(kem_ciphertext=<{len(self.kem_ciphertext)} bytes>)"


class KemEncapsulator:
    """Sender-side ML-KEM encapsulation against a recipient public key."""

    def encapsulate(self, public_key: bytes) -> EncapsulationResult:
        """
        Run ML-KEM encapsulation.

        Args:
            public_key: The recipient's raw ML-KEM-768 public key

        Returns:
            EncapsulationResult with the KEM ciphertext and a single-use shared secret

        Raises:
            InvalidPublicKey: if the key is malformed
        """
        if not isinstance(public_key, (bytes, bytearray)):
            raise InvalidPublicKey(detail="public key must be bytes")
        if len(public_key) != PUBLIC_KEY_SIZE:
            raise InvalidPublicKey(
                detail=f"expected {PUBLIC_KEY_SIZE} bytes, got {len(public_key)}"
            )
        if not _coefficients_in_range(public_key):
            raise InvalidPublicKey(detail="encoded coefficient out of range (modulus check)")
        try:
            ciphertext, shared_secret = ml_kem_768.encrypt(bytes(public_key))
        except (ValueError, TypeError) as e:
            raise InvalidPublicKey(detail=str(e)) from e
        return EncapsulationResult(kem_ciphertext=ciphertext, shared_secret=shared_secret)


def generate_keypair() -> Tuple[bytes, bytes]:
    """Generate a recipient ML-KEM-768 key pair. Returns (public_key, secret_key)."""
    public_key, secret_key = ml_kem_768.generate_keypair()
    logger.debug("generated %s key pair", KEM_ALGORITHM)
    return public_key, secret_key


def decapsulate(secret_key: bytes, kem_ciphertext: bytes) -> bytes:
    """
    Recover the shared secret on the recipient side.

    ML-KEM uses implicit rejection, so a tampered ciphertext yields a
    different secret rather than an error; the mismatch surfaces later when
    the wrapped key fails to authenticate.
    """
    if len(kem_ciphertext) != CIPHERTEXT_SIZE:
        raise AuthenticationFailure(
            f"KEM ciphertext must be {CIPHERTEXT_SIZE} bytes, got {len(kem_ciphertext)}"
        )
    if len(secret_key) != SECRET_KEY_SIZE:
        raise ValueError(f"ML-KEM secret key must be {SECRET_KEY_SIZE} bytes")
    return ml_kem_768.decrypt(secret_key, kem_ciphertext)
