import json

from sharecrypto.content import ContentCipher, ContentKey, EncryptedContent
from sharecrypto.kem import decapsulate
from sharecrypto.keywrap import WRAP_CONTEXT, KeyWrapDeriver

from .errors import RecipientNotFound
from .models import RecipientEntry, UploadEnvelope


def unwrap_entry(entry: RecipientEntry, secret_key: bytes) -> ContentKey:
    """Recover the content key from one recipient entry."""
    shared_secret = decapsulate(secret_key, entry.kem_ciphertext)
    deriver = KeyWrapDeriver()
    derived = deriver.derive(shared_secret, entry.hkdf_salt, WRAP_CONTEXT)
    return deriver.unwrap(derived, entry.wrapped_content_key, entry.wrap_nonce)


def open_envelope(envelope: UploadEnvelope, recipient_id: str, secret_key: bytes) -> bytes:
    """
    Decrypt an envelope as one of its recipients.

    Raises:
        RecipientNotFound: no entry carries this recipient id
        AuthenticationFailure: wrong secret key or tampered envelope
    """
    entry = envelope.entry_for(recipient_id)
    if entry is None:
        raise RecipientNotFound(recipient_id)
    content_key = unwrap_entry(entry, secret_key)
    try:
        return ContentCipher().decrypt(
            EncryptedContent(ciphertext=envelope.encrypted_content, nonce=envelope.content_nonce),
            content_key,
        )
    finally:
        content_key.discard()


def load_envelope(form_path: str, payload_path: str) -> UploadEnvelope:
    """
    Read a received envelope: the upload form fields saved as JSON, and the
    binary encrypted content saved next to it.
    """
    with open(form_path, "r", encoding="utf-8") as f:
        form = json.load(f)
    with open(payload_path, "rb") as f:
        encrypted_content = f.read()
    try:
        return UploadEnvelope.from_form(form, encrypted_content)
    except (KeyError, TypeError) as e:
        raise ValueError(f"{form_path} is not an envelope form: {e}") from e
