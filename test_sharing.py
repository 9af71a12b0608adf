"""
Tests for the key directory client, envelope builder, wire form, upload
transport, and configuration.
"""
import json

import pytest
import requests

from conftest import API_BASE, FakeBackend, FakeResponse
from sharecrypto.content import ContentCipher, EncryptedContent, FileKeyManager
from sharing import (
    ClientConfig,
    EnvelopeBuilder,
    KeyDirectoryClient,
    RecipientEntry,
    UploadEnvelope,
    UploadTransport,
    parse_recipients,
    resolve_api_base,
)
from sharing.errors import (
    DirectoryUnavailable,
    InvalidPublicKey,
    NetworkUnreachable,
    NoRecipients,
    RecipientNotFound,
    Stage,
    TransportFailure,
)


def _entry(recipient_id: str, fill: int = 1) -> RecipientEntry:
    return RecipientEntry(
        recipient_id=recipient_id,
        kem_ciphertext=bytes([fill]) * 8,
        wrapped_content_key=bytes([fill + 1]) * 48,
        wrap_nonce=bytes([fill + 2]) * 12,
        hkdf_salt=bytes([fill + 3]) * 16,
    )


def _content() -> EncryptedContent:
    return ContentCipher().encrypt(b"payload", FileKeyManager().generate())


# ============================================================================
# Key directory
# ============================================================================

def test_lookup_returns_public_key(directory, keypairs, backend):
    assert directory.lookup("alice") == keypairs["alice"][0]
    assert backend.lookups == ["alice"]


def test_lookup_unknown_recipient(directory):
    with pytest.raises(RecipientNotFound) as exc:
        directory.lookup("unknown-user")
    assert exc.value.recipient_id == "unknown-user"
    assert "unknown-user" in exc.value.message
    assert exc.value.stage is Stage.LOOKUP


def test_lookup_is_case_sensitive(directory):
    with pytest.raises(RecipientNotFound):
        directory.lookup("Alice")


def test_lookup_quotes_identifier(config):
    backend = FakeBackend({"team/ops lead": b"k" * 10})
    client = KeyDirectoryClient(config, session=backend)
    assert client.lookup("team/ops lead") == b"k" * 10
    assert client._url("team/ops lead") == API_BASE + "/keys/team%2Fops%20lead"


def test_lookup_transport_error(directory, backend, connection_error):
    backend.fail_lookup_with = connection_error
    with pytest.raises(DirectoryUnavailable):
        directory.lookup("alice")


def test_lookup_server_error_is_not_not_found(config):
    class Broken:
        def get(self, url, timeout=None):
            return FakeResponse(503, text="maintenance")

    with pytest.raises(DirectoryUnavailable) as exc:
        KeyDirectoryClient(config, session=Broken()).lookup("alice")
    assert exc.value.status == 503


@pytest.mark.parametrize("payload", [{}, {"publicKey": "%%%"}, ["nope"]])
def test_lookup_malformed_body(config, payload):
    class Odd:
        def get(self, url, timeout=None):
            return FakeResponse(200, payload)

    with pytest.raises(InvalidPublicKey) as exc:
        KeyDirectoryClient(config, session=Odd()).lookup("alice")
    assert exc.value.recipient_id == "alice"


# ============================================================================
# Envelope builder and wire form
# ============================================================================

def test_builder_keeps_insertion_order():
    builder = EnvelopeBuilder("report.pdf", _content())
    for i, name in enumerate(["carol", "alice", "bob"]):
        builder.add(_entry(name, i))
    envelope = builder.finalize()
    assert envelope.recipient_ids() == ["carol", "alice", "bob"]
    assert envelope.filename == "report.pdf"


def test_builder_rejects_empty_finalize():
    builder = EnvelopeBuilder("report.pdf", _content())
    with pytest.raises(NoRecipients) as exc:
        builder.finalize()
    assert exc.value.stage is Stage.FINALIZE


def test_builder_finalizes_once():
    builder = EnvelopeBuilder("report.pdf", _content())
    builder.add(_entry("alice"))
    builder.finalize()
    with pytest.raises(RuntimeError):
        builder.finalize()
    with pytest.raises(RuntimeError):
        builder.add(_entry("bob"))


def test_builder_discard_drops_entries():
    builder = EnvelopeBuilder("report.pdf", _content())
    builder.add(_entry("alice"))
    builder.discard()
    assert len(builder) == 0
    with pytest.raises(RuntimeError):
        builder.add(_entry("bob"))


def test_envelope_form_fields():
    content = _content()
    builder = EnvelopeBuilder("report.pdf", content)
    builder.add(_entry("alice"))
    form = builder.finalize().to_form()

    assert set(form) == {"filename", "contentNonce", "recipients"}
    recipients = json.loads(form["recipients"])
    assert list(recipients[0]) == [
        "recipientId", "kemCiphertext", "wrappedContentKey", "wrapNonce", "hkdfSalt",
    ]
    assert recipients[0]["recipientId"] == "alice"

    parsed = UploadEnvelope.from_form(form, content.ciphertext)
    assert parsed.recipients[0] == _entry("alice")
    assert parsed.content_nonce == content.nonce


def test_entry_for_returns_first_match():
    builder = EnvelopeBuilder("a.txt", _content())
    builder.add(_entry("alice", 1))
    builder.add(_entry("alice", 5))
    envelope = builder.finalize()
    assert envelope.entry_for("alice").kem_ciphertext == bytes([1]) * 8
    assert envelope.entry_for("nobody") is None


# ============================================================================
# Upload transport
# ============================================================================

def _envelope() -> UploadEnvelope:
    builder = EnvelopeBuilder("report.pdf", _content())
    builder.add(_entry("alice"))
    return builder.finalize()


def test_send_posts_multipart_and_returns_id(transport, backend):
    envelope = _envelope()
    assert transport.send(envelope) == "file-7f3a"

    sent = backend.uploads[0]
    assert sent["data"]["filename"] == "report.pdf"
    name, payload, content_type = sent["files"]["encryptedContent"]
    assert payload == envelope.encrypted_content  # raw bytes, not base64
    assert name == "file.bin"
    assert content_type == "application/octet-stream"


def test_send_reports_status_and_body_verbatim(transport, backend):
    backend.upload_response = FakeResponse(413, text="Payload Too Large")
    with pytest.raises(TransportFailure) as exc:
        transport.send(_envelope())
    assert exc.value.status == 413
    assert exc.value.body == "Payload Too Large"
    assert "413" in exc.value.message


def test_send_network_unreachable(transport, backend):
    backend.fail_upload_with = requests.exceptions.Timeout("timed out")
    with pytest.raises(NetworkUnreachable) as exc:
        transport.send(_envelope())
    assert API_BASE in exc.value.message


def test_send_success_without_id(transport, backend):
    backend.upload_response = FakeResponse(200, {"status": "ok"})
    with pytest.raises(TransportFailure):
        transport.send(_envelope())


# ============================================================================
# Config and recipient parsing
# ============================================================================

def test_resolve_api_base_from_env():
    assert resolve_api_base({"PQSHARE_API_BASE_URL": " https://api.example.org/ "}) == "https://api.example.org"
    assert resolve_api_base({"PQSHARE_API_PORT": "8080"}) == "http://localhost:8080"
    assert resolve_api_base({}) == "http://localhost:5000"


def test_config_from_env():
    config = ClientConfig.from_env({"PQSHARE_API_BASE_URL": "https://x", "PQSHARE_TIMEOUT": "2.5"})
    assert config.api_base == "https://x"
    assert config.request_timeout == 2.5
    assert config.max_file_size == 50 * 1024 * 1024


def test_parse_recipients_trims_and_keeps_duplicates():
    assert parse_recipients(" alice, bob ,,alice ,") == ["alice", "bob", "alice"]
    assert parse_recipients("  ") == []
