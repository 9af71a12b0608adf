from typing import List

from sharecrypto.content import EncryptedContent

from .errors import NoRecipients, Stage
from .models import RecipientEntry, UploadEnvelope


class EnvelopeBuilder:
    """
    Accumulates recipient entries around one encrypted file.

    Entries keep the order they were added in. The builder can be finalized
    once; after that, or after discard(), it accepts nothing further.
    """

    def __init__(self, filename: str, content: EncryptedContent):
        self.filename = filename
        self.content = content
        self._entries: List[RecipientEntry] = []
        self._closed = False

    def __len__(self) -> int:
        return len(self._entries)

    def add(self, entry: RecipientEntry) -> None:
        if self._closed:
            raise RuntimeError("envelope builder is closed")
        self._entries.append(entry)

    def finalize(self) -> UploadEnvelope:
        if self._closed:
            raise RuntimeError("envelope builder is closed")
        if not self._entries:
            raise NoRecipients("Cannot build an envelope without recipients", stage=Stage.FINALIZE)
        self._closed = True
        return UploadEnvelope(
            filename=self.filename,
            content_nonce=self.content.nonce,
            recipients=tuple(self._entries),
            encrypted_content=self.content.ciphertext,
        )

    def discard(self) -> None:
        """Drop every accumulated entry; used when the operation aborts."""
        self._entries.clear()
        self._closed = True
