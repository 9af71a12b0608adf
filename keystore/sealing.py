"""
Passphrase sealing of ML-KEM secret keys.

The sealing key is derived with Argon2id (argon2-cffi's raw hash API) and the
secret key is encrypted with AES-256-GCM. The recipient id is bound in as
associated data, so a sealed key copied under another identity will not open.
Each sealed key records the Argon2 costs it was sealed with.
"""

from dataclasses import dataclass
import os
from typing import Any, Dict

from argon2.low_level import Type, hash_secret_raw
from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from sharecrypto.encoding import b64, b64d

SEAL_SALT_SIZE = 16
SEAL_NONCE_SIZE = 12

# argon2-cffi's RFC 9106 low-memory profile
TIME_COST = 3
MEMORY_COST = 64 * 1024  # KiB
PARALLELISM = 4


@dataclass(frozen=True)
class SealedKey:
    ciphertext: bytes
    nonce: bytes
    salt: bytes
    time_cost: int = TIME_COST
    memory_cost: int = MEMORY_COST
    parallelism: int = PARALLELISM

    def __repr__(self) -> str:
        return (
            f"SealedKey(<{len(self.ciphertext)} bytes>, "
            f"argon2id t={self.time_cost} m={self.memory_cost})"
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ciphertext": b64(self.ciphertext),
            "nonce": b64(self.nonce),
            "salt": b64(self.salt),
            "kdf": {
                "name": "argon2id",
                "time_cost": self.time_cost,
                "memory_cost": self.memory_cost,
                "parallelism": self.parallelism,
            },
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SealedKey":
        kdf = data["kdf"]
        if kdf.get("name") != "argon2id":
            raise ValueError(f"unsupported key derivation: {kdf.get('name')!r}")
        return cls(
            ciphertext=b64d(data["ciphertext"]),
            nonce=b64d(data["nonce"]),
            salt=b64d(data["salt"]),
            time_cost=int(kdf["time_cost"]),
            memory_cost=int(kdf["memory_cost"]),
            parallelism=int(kdf["parallelism"]),
        )


class SecretKeySealer:
    def __init__(
        self,
        time_cost: int = TIME_COST,
        memory_cost: int = MEMORY_COST,
        parallelism: int = PARALLELISM,
    ):
        self.time_cost = time_cost
        self.memory_cost = memory_cost
        self.parallelism = parallelism

    @staticmethod
    def _sealing_key(
        passphrase: str, salt: bytes, time_cost: int, memory_cost: int, parallelism: int
    ) -> bytes:
        return hash_secret_raw(
            secret=passphrase.encode("utf-8"),
            salt=salt,
            time_cost=time_cost,
            memory_cost=memory_cost,
            parallelism=parallelism,
            hash_len=32,
            type=Type.ID,
        )

    def seal(self, secret_key: bytes, passphrase: str, recipient_id: str) -> SealedKey:
        salt = os.urandom(SEAL_SALT_SIZE)
        nonce = os.urandom(SEAL_NONCE_SIZE)
        key = self._sealing_key(passphrase, salt, self.time_cost, self.memory_cost, self.parallelism)
        ciphertext = AESGCM(key).encrypt(nonce, secret_key, recipient_id.encode("utf-8"))
        return SealedKey(
            ciphertext=ciphertext,
            nonce=nonce,
            salt=salt,
            time_cost=self.time_cost,
            memory_cost=self.memory_cost,
            parallelism=self.parallelism,
        )

    def unseal(self, sealed: SealedKey, passphrase: str, recipient_id: str) -> bytes:
        """
        Open a sealed secret key.

        Raises:
            ValueError: wrong passphrase, wrong recipient id, or a tampered record
        """
        key = self._sealing_key(
            passphrase, sealed.salt, sealed.time_cost, sealed.memory_cost, sealed.parallelism
        )
        try:
            return AESGCM(key).decrypt(sealed.nonce, sealed.ciphertext, recipient_id.encode("utf-8"))
        except InvalidTag as e:
            raise ValueError("Incorrect passphrase or damaged key record") from e
