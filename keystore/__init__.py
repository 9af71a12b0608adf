"""Local keystore for recipients' ML-KEM identities."""

from .manager import IdentityManager
from .models import Identity
from .sealing import SealedKey, SecretKeySealer
from .store import IdentityStore

__all__ = [
    "IdentityManager",
    "Identity",
    "IdentityStore",
    "SealedKey",
    "SecretKeySealer",
]
