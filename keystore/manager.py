import logging
from typing import List, Optional

from sharecrypto.kem import generate_keypair

from .models import Identity
from .sealing import SecretKeySealer
from .store import IdentityStore

logger = logging.getLogger(__name__)


class IdentityManager:
    """
    Local recipient identities: an ML-KEM key pair per recipient id, with the
    secret key sealed under the owner's passphrase.
    """

    def __init__(self, store: IdentityStore, sealer: Optional[SecretKeySealer] = None):
        self.store = store
        self.sealer = sealer or SecretKeySealer()

    def create(self, recipient_id: str, passphrase: str) -> Identity:
        """Generate and store a key pair. The recipient id is kept verbatim."""
        if not recipient_id:
            raise ValueError("recipient id cannot be empty")
        if recipient_id in self.store:
            raise ValueError(f"Identity '{recipient_id}' already exists.")

        public_key, secret_key = generate_keypair()
        sealed = self.sealer.seal(secret_key, passphrase, recipient_id)
        identity = Identity.new(recipient_id, public_key, sealed)
        self.store.add(identity)
        logger.info("created %s identity for %s", identity.kem_algorithm, recipient_id)
        return identity

    def get(self, recipient_id: str) -> Optional[Identity]:
        return self.store.get(recipient_id)

    def all(self) -> List[Identity]:
        return list(self.store)

    def public_key(self, identity: Identity) -> bytes:
        """Raw public key bytes, as registered with the key directory."""
        return identity.public_key

    def unlock(self, recipient_id: str, passphrase: str) -> bytes:
        """
        Return the identity's ML-KEM secret key.
        Raises LookupError for an unknown id and ValueError for a wrong
        passphrase or tampered key file.
        """
        identity = self.store.get(recipient_id)
        if identity is None:
            raise LookupError(f"No identity for '{recipient_id}'")
        return self.sealer.unseal(identity.sealed_secret_key, passphrase, recipient_id)
