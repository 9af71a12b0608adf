from __future__ import annotations

from dataclasses import dataclass
import json
from typing import Any, Dict, List, Optional, Sequence, Tuple

from sharecrypto.encoding import b64, b64d


@dataclass(frozen=True)
class RecipientEntry:
    """
    Wrapped content key for one recipient.

    Each entry is self-contained: the recipient decapsulates `kem_ciphertext`
    with their secret key, re-derives the wrapping key from the shared secret
    using `hkdf_salt`, and unwraps `wrapped_content_key` with `wrap_nonce`.
    Entries never depend on each other or on their position in the envelope.
    """
    recipient_id: str
    kem_ciphertext: bytes
    wrapped_content_key: bytes
    wrap_nonce: bytes
    hkdf_salt: bytes

    def to_dict(self) -> Dict[str, str]:
        return {
            "recipientId": self.recipient_id,
            "kemCiphertext": b64(self.kem_ciphertext),
            "wrappedContentKey": b64(self.wrapped_content_key),
            "wrapNonce": b64(self.wrap_nonce),
            "hkdfSalt": b64(self.hkdf_salt),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, str]) -> "RecipientEntry":
        return cls(
            recipient_id=data["recipientId"],
            kem_ciphertext=b64d(data["kemCiphertext"]),
            wrapped_content_key=b64d(data["wrappedContentKey"]),
            wrap_nonce=b64d(data["wrapNonce"]),
            hkdf_salt=b64d(data["hkdfSalt"]),
        )


@dataclass(frozen=True)
class UploadEnvelope:
    """
    The unit of transmission: one encrypted file plus every recipient's
    wrap record.

    `encrypted_content` is the raw AES-GCM output (ciphertext||tag) and goes
    on the wire as a binary multipart part rather than base64.
    """

    filename: str
    content_nonce: bytes
    recipients: Tuple[RecipientEntry, ...]
    encrypted_content: bytes

    def recipient_ids(self) -> List[str]:
        return [entry.recipient_id for entry in self.recipients]

    def entry_for(self, recipient_id: str) -> Optional[RecipientEntry]:
        """First entry for a recipient id (ids compare verbatim)."""
        for entry in self.recipients:
            if entry.recipient_id == recipient_id:
                return entry
        return None

    def to_form(self) -> Dict[str, str]:
        """Text form fields of the upload request."""
        return {
            "filename": self.filename,
            "contentNonce": b64(self.content_nonce),
            "recipients": json.dumps([entry.to_dict() for entry in self.recipients]),
        }

    @classmethod
    def from_form(cls, form: Dict[str, Any], encrypted_content: bytes) -> "UploadEnvelope":
        raw_recipients = form["recipients"]
        if isinstance(raw_recipients, str):
            raw_recipients = json.loads(raw_recipients)
        entries: Sequence[RecipientEntry] = [
            RecipientEntry.from_dict(item) for item in raw_recipients
        ]
        return cls(
            filename=form["filename"],
            content_nonce=b64d(form["contentNonce"]),
            recipients=tuple(entries),
            encrypted_content=encrypted_content,
        )
