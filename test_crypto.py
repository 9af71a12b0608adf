"""
Tests for the client-side crypto: content encryption, ML-KEM encapsulation,
and HKDF key wrapping.
"""
import pytest

from sharecrypto import (
    WRAP_CONTEXT,
    ContentCipher,
    ContentKey,
    EncryptedContent,
    FileKeyManager,
    KemEncapsulator,
    KeyWrapDeriver,
    b64,
    b64d,
    decapsulate,
)
from sharecrypto.errors import AuthenticationFailure, InvalidPublicKey
from sharecrypto.kem import POLY_VECTOR_BYTES, PUBLIC_KEY_SIZE
from sharecrypto.keywrap import SALT_SIZE


def test_content_round_trip():
    key = FileKeyManager().generate()
    cipher = ContentCipher()
    plaintext = b"quarterly numbers\n" * 1000

    encrypted = cipher.encrypt(plaintext, key)

    assert encrypted.ciphertext != plaintext
    assert len(encrypted.nonce) == 12
    assert cipher.decrypt(encrypted, key) == plaintext


def test_content_round_trip_empty_file():
    key = FileKeyManager().generate()
    cipher = ContentCipher()
    assert cipher.decrypt(cipher.encrypt(b"", key), key) == b""


def test_fresh_key_and_nonce_every_time():
    manager = FileKeyManager()
    cipher = ContentCipher()
    k1, k2 = manager.generate(), manager.generate()
    assert k1.raw() != k2.raw()
    assert cipher.encrypt(b"x", k1).nonce != cipher.encrypt(b"x", k1).nonce


def test_tampered_content_is_rejected():
    key = FileKeyManager().generate()
    cipher = ContentCipher()
    encrypted = cipher.encrypt(b"report body", key)

    flipped = bytearray(encrypted.ciphertext)
    flipped[0] ^= 0x01
    tampered = EncryptedContent(ciphertext=bytes(flipped), nonce=encrypted.nonce)

    with pytest.raises(AuthenticationFailure):
        cipher.decrypt(tampered, key)


def test_tampered_nonce_and_wrong_key_are_rejected():
    manager = FileKeyManager()
    key = manager.generate()
    cipher = ContentCipher()
    encrypted = cipher.encrypt(b"report body", key)

    bad_nonce = EncryptedContent(ciphertext=encrypted.ciphertext, nonce=b"\x00" * 12)
    with pytest.raises(AuthenticationFailure):
        cipher.decrypt(bad_nonce, key)
    with pytest.raises(AuthenticationFailure):
        cipher.decrypt(encrypted, manager.generate())


def test_content_key_discard():
    key = FileKeyManager().generate()
    key.discard()
    assert key.discarded
    with pytest.raises(ValueError):
        key.raw()
    assert "discarded" in repr(key)


def test_content_key_rejects_wrong_size():
    with pytest.raises(ValueError):
        ContentKey(b"short")


def test_encapsulate_and_decapsulate_agree(keypairs):
    public_key, secret_key = keypairs["alice"]
    result = KemEncapsulator().encapsulate(public_key)
    assert decapsulate(secret_key, result.kem_ciphertext) == result.shared_secret
    assert "shared_secret" not in repr(result)


def test_encapsulation_is_fresh_per_call(keypairs):
    public_key, _ = keypairs["alice"]
    kem = KemEncapsulator()
    first, second = kem.encapsulate(public_key), kem.encapsulate(public_key)
    assert first.kem_ciphertext != second.kem_ciphertext
    assert first.shared_secret != second.shared_secret


@pytest.mark.parametrize("bad_key", [b"", b"\x01" * 32, b"\x01" * 2000])
def test_malformed_public_key(bad_key):
    with pytest.raises(InvalidPublicKey):
        KemEncapsulator().encapsulate(bad_key)


def test_full_length_key_with_out_of_range_coefficients():
    with pytest.raises(InvalidPublicKey) as exc:
        KemEncapsulator().encapsulate(b"\xff" * PUBLIC_KEY_SIZE)
    assert "modulus" in exc.value.message


def test_last_coefficient_out_of_range(keypairs):
    public_key, _ = keypairs["alice"]
    # top coefficient of the final triple set to 0xfff
    tampered = bytearray(public_key)
    tampered[POLY_VECTOR_BYTES - 2] |= 0xF0
    tampered[POLY_VECTOR_BYTES - 1] = 0xFF
    with pytest.raises(InvalidPublicKey):
        KemEncapsulator().encapsulate(bytes(tampered))


def test_derive_generates_and_returns_salt():
    deriver = KeyWrapDeriver()
    derived = deriver.derive(b"s" * 32)
    assert len(derived.salt) == SALT_SIZE
    assert len(derived.key) == 32
    # same secret, salt and context derive the same key
    assert deriver.derive(b"s" * 32, derived.salt).key == derived.key
    assert deriver.derive(b"s" * 32).salt != derived.salt


def test_context_label_separates_keys():
    deriver = KeyWrapDeriver()
    salt = b"\x02" * SALT_SIZE
    assert WRAP_CONTEXT == "file-wrap"
    assert (
        deriver.derive(b"s" * 32, salt, WRAP_CONTEXT).key
        != deriver.derive(b"s" * 32, salt, "other-use").key
    )


def test_wrap_unwrap_round_trip(keypairs):
    public_key, secret_key = keypairs["bob"]
    content_key = FileKeyManager().generate()
    deriver = KeyWrapDeriver()

    encapsulated = KemEncapsulator().encapsulate(public_key)
    derived = deriver.derive(encapsulated.shared_secret)
    wrapped = deriver.wrap(derived, content_key)

    # recipient side
    shared = decapsulate(secret_key, encapsulated.kem_ciphertext)
    recovered = deriver.unwrap(deriver.derive(shared, derived.salt), wrapped.wrapped_key, wrapped.wrap_nonce)
    assert recovered.raw() == content_key.raw()


def test_wrap_nonce_is_single_use():
    deriver = KeyWrapDeriver()
    derived = deriver.derive(b"s" * 32)
    key = FileKeyManager().generate()
    a, b = deriver.wrap(derived, key), deriver.wrap(derived, key)
    assert a.wrap_nonce != b.wrap_nonce
    assert a.wrapped_key != b.wrapped_key


def test_unwrap_with_wrong_salt_fails():
    deriver = KeyWrapDeriver()
    derived = deriver.derive(b"s" * 32)
    wrapped = deriver.wrap(derived, FileKeyManager().generate())
    wrong = deriver.derive(b"s" * 32, b"\x00" * SALT_SIZE)
    with pytest.raises(AuthenticationFailure):
        deriver.unwrap(wrong, wrapped.wrapped_key, wrapped.wrap_nonce)


def test_base64_helpers():
    assert b64d(b64(b"\x00\xffdata")) == b"\x00\xffdata"
    with pytest.raises(ValueError):
        b64d("not base64!!")
