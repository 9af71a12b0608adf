"""
Command-line interface for post-quantum file sharing.

Provides text-based menu for:
- Selecting a file and a recipient list
- Encrypting and uploading the file for every recipient
- Creating local recipient identities (ML-KEM key pairs)
- Printing a public key for registration with the key directory
- Opening a received envelope with a local identity
"""

from getpass import getpass
import logging
import os

from keystore import IdentityManager, IdentityStore
from sharecrypto.encoding import b64
from sharing import (
    ClientConfig,
    SenderSession,
    UploadPipeline,
    load_envelope,
    open_envelope,
    parse_recipients,
)
from sharing.errors import ShareError


def configure_logging() -> None:
    level = os.environ.get("PQSHARE_LOG_LEVEL", "WARNING").upper()
    logging.basicConfig(
        level=getattr(logging, level, logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def create_identity_manager() -> IdentityManager:
    store = IdentityStore(os.environ.get("PQSHARE_KEYSTORE", "identities.json"))
    return IdentityManager(store)


def print_menu(session: SenderSession) -> None:
    print("\n" + "=" * 50)
    print("  🔐 PQ File Share")
    print("=" * 50)
    selected = session.selected_file
    if selected:
        print(f"  File: {selected.name} ({selected.size / 1024 / 1024:.2f} MB)")
    if session.recipients:
        print(f"  Recipients: {', '.join(session.recipients)}")
    print("  1) Select file")
    print("  2) Set recipients")
    print("  3) Encrypt & send file")
    print("  4) Create recipient identity")
    print("  5) Show public key")
    print("  6) Open received file")
    print("  0) Quit")
    print("=" * 50)


def handle_select_file(session: SenderSession, config: ClientConfig) -> None:
    filepath = input("File path: ").strip()
    if not filepath:
        print("❌ File path cannot be empty")
        return
    try:
        selected = session.select_file(filepath, config.max_file_size)
    except FileNotFoundError:
        print(f"❌ File not found: {filepath}")
        return
    except ShareError as e:
        print(f"❌ {e.message}")
        return
    print(f"Selected: {selected.name} ({selected.size / 1024 / 1024:.2f} MB)")
    print('Choose "Encrypt & send file" to proceed')


def handle_set_recipients(session: SenderSession) -> None:
    recipients = parse_recipients(input("Recipients (comma-separated user ids): "))
    if not recipients:
        print("❌ Add recipient user ids")
        return
    session.set_recipients(recipients)
    print(f"   Will share with: {', '.join(recipients)}")


def handle_send(session: SenderSession, config: ClientConfig) -> None:
    print("\n📤 Encrypt & Send")
    pipeline = UploadPipeline(config, on_progress=lambda msg: print(f"   {msg}"))
    outcome = pipeline.run(session)
    if outcome.succeeded:
        print(f"\n✅ {outcome.message}")
    else:
        print(f"\n❌ {outcome.message}")


def handle_create_identity(identities: IdentityManager) -> None:
    print("\n📝 Create Recipient Identity")
    recipient_id = input("Recipient id: ").strip()
    if not recipient_id:
        print("❌ Recipient id cannot be empty")
        return

    passphrase = getpass("Passphrase: ")
    if len(passphrase) < 6:
        print("❌ Passphrase must be at least 6 characters")
        return
    if passphrase != getpass("Confirm passphrase: "):
        print("❌ Passphrases don't match")
        return

    try:
        identity = identities.create(recipient_id, passphrase)
    except ValueError as e:
        print(f"❌ Error: {e}")
        return
    print(f"✅ Identity created: {identity.recipient_id}")
    print(f"   {identity.kem_algorithm} key pair generated and securely stored")
    print("   Register this public key with the key directory:")
    print(f"   {b64(identity.public_key)}")


def handle_show_public_key(identities: IdentityManager) -> None:
    known = identities.all()
    if not known:
        print("   No identities yet")
        return
    for i, identity in enumerate(known, 1):
        print(f"   {i}. {identity.recipient_id} ({identity.created_at[:10]})")
    try:
        choice = int(input("\nSelect identity: ")) - 1
        if choice < 0 or choice >= len(known):
            print("❌ Invalid selection")
            return
    except ValueError:
        print("❌ Invalid input")
        return
    print(b64(identities.public_key(known[choice])))


def handle_open_envelope(identities: IdentityManager) -> None:
    print("\n📥 Open Received File")
    form_path = input("Envelope form (.json): ").strip()
    payload_path = input("Encrypted content (.bin): ").strip()
    try:
        envelope = load_envelope(form_path, payload_path)
    except FileNotFoundError as e:
        print(f"❌ File not found: {e.filename}")
        return
    except ValueError as e:
        print(f"❌ Error: {e}")
        return
    print(f"   {envelope.filename} for {', '.join(envelope.recipient_ids())}")

    recipient_id = input("Open as recipient id: ").strip()
    passphrase = getpass("Passphrase: ")
    try:
        secret_key = identities.unlock(recipient_id, passphrase)
        plaintext = open_envelope(envelope, recipient_id, secret_key)
    except LookupError:
        print(f"❌ No local identity for '{recipient_id}'")
        return
    except ValueError as e:
        print(f"❌ Error: {e}")
        return
    except ShareError as e:
        print(f"❌ {e.message}")
        return

    default_name = os.path.basename(envelope.filename) or "received.bin"
    output = input(f"Save as [{default_name}]: ").strip() or default_name
    with open(output, "wb") as f:
        f.write(plaintext)
    print(f"✅ Decrypted {len(plaintext):,} bytes to {output}")


def main():
    configure_logging()
    config = ClientConfig.from_env()
    session = SenderSession()
    identities = create_identity_manager()

    print("\n🔐 Post-Quantum File Sharing")
    print(f"   Backend: {config.api_base}\n")

    while True:
        print_menu(session)
        choice = input("> ").strip()

        if choice == "1":
            handle_select_file(session, config)
        elif choice == "2":
            handle_set_recipients(session)
        elif choice == "3":
            handle_send(session, config)
        elif choice == "4":
            handle_create_identity(identities)
        elif choice == "5":
            handle_show_public_key(identities)
        elif choice == "6":
            handle_open_envelope(identities)
        elif choice == "0":
            print("\nGoodbye! 👋")
            break
        else:
            print("❌ Invalid choice")


if __name__ == "__main__":
    main()
