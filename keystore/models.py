from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict

from sharecrypto.encoding import b64, b64d
from sharecrypto.kem import KEM_ALGORITHM

from .sealing import SealedKey


@dataclass(frozen=True)
class Identity:
    """One local recipient: the id the key directory knows, and its key pair."""

    recipient_id: str
    public_key: bytes
    sealed_secret_key: SealedKey
    created_at: str  # ISO8601 "YYYY-MM-DDTHH:MM:SSZ"
    kem_algorithm: str = KEM_ALGORITHM

    @staticmethod
    def new(recipient_id: str, public_key: bytes, sealed_secret_key: SealedKey) -> "Identity":
        now = datetime.now(timezone.utc).isoformat(timespec="seconds").replace("+00:00", "Z")
        return Identity(
            recipient_id=recipient_id,
            public_key=public_key,
            sealed_secret_key=sealed_secret_key,
            created_at=now,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Stored form; the recipient id is the key it is stored under."""
        return {
            "kem_algorithm": self.kem_algorithm,
            "created_at": self.created_at,
            "public_key": b64(self.public_key),
            "sealed_secret_key": self.sealed_secret_key.to_dict(),
        }

    @classmethod
    def from_dict(cls, recipient_id: str, data: Dict[str, Any]) -> "Identity":
        return cls(
            recipient_id=recipient_id,
            public_key=b64d(data["public_key"]),
            sealed_secret_key=SealedKey.from_dict(data["sealed_secret_key"]),
            created_at=data["created_at"],
            kem_algorithm=data.get("kem_algorithm", KEM_ALGORITHM),
        )
