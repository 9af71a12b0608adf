"""
Upload pipeline.

Runs one share operation as a fixed sequence of steps:

    IDLE -> KEY_GENERATED -> CONTENT_ENCRYPTED
         -> WRAPPING_RECIPIENT(0..N-1) -> READY -> UPLOADING -> SUCCEEDED

Any error moves straight to FAILED. Nothing is uploaded unless every
recipient was wrapped, and the content key plus all per-recipient secrets
are dropped before control returns to the caller, whatever the outcome.
"""

from contextlib import contextmanager
from dataclasses import dataclass
from enum import Enum
import logging
from pathlib import Path
from threading import Lock
from typing import Callable, Iterator, List, Optional, Sequence

from sharecrypto.content import ContentCipher, ContentKey, EncryptedContent, FileKeyManager
from sharecrypto.kem import KemEncapsulator
from sharecrypto.keywrap import WRAP_CONTEXT, KeyWrapDeriver

from .config import ClientConfig
from .directory import KeyDirectoryClient
from .envelope import EnvelopeBuilder
from .errors import (
    FileTooLarge,
    InvalidPublicKey,
    NoFileSelected,
    NoRecipients,
    PipelineBusy,
    ShareError,
    Stage,
)
from .models import RecipientEntry, UploadEnvelope
from .transport import UploadTransport

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[str], None]


class PipelineState(str, Enum):
    IDLE = "idle"
    KEY_GENERATED = "key_generated"
    CONTENT_ENCRYPTED = "content_encrypted"
    WRAPPING_RECIPIENT = "wrapping_recipient"
    READY = "ready"
    UPLOADING = "uploading"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


def parse_recipients(text: str) -> List[str]:
    """Split a comma separated recipient list, trimming blanks. Duplicates are kept."""
    return [part.strip() for part in text.split(",") if part.strip()]


@dataclass(frozen=True)
class SelectedFile:
    name: str
    data: bytes

    @property
    def size(self) -> int:
        return len(self.data)

    @classmethod
    def from_path(cls, filepath: str, max_size: Optional[int] = None) -> "SelectedFile":
        """Read a file from disk, refusing it up front if it is over max_size."""
        src = Path(filepath).expanduser()
        if not src.is_file():
            raise FileNotFoundError(f"{filepath} is not a file")
        size = src.stat().st_size
        if max_size is not None and size > max_size:
            raise FileTooLarge(size, max_size)
        return cls(name=src.name, data=src.read_bytes())


class SenderSession:
    """
    Sender-side state: the selected file, the recipient list, and the
    "operation in progress" guard that keeps uploads from interleaving.
    """

    def __init__(self) -> None:
        self.selected_file: Optional[SelectedFile] = None
        self.recipients: List[str] = []
        self._in_progress = Lock()

    def select_file(self, filepath: str, max_size: Optional[int] = None) -> SelectedFile:
        self.selected_file = SelectedFile.from_path(filepath, max_size)
        return self.selected_file

    def select_bytes(self, name: str, data: bytes) -> SelectedFile:
        self.selected_file = SelectedFile(name=name, data=data)
        return self.selected_file

    def set_recipients(self, recipients: Sequence[str]) -> None:
        self.recipients = list(recipients)

    @property
    def busy(self) -> bool:
        return self._in_progress.locked()

    @contextmanager
    def operation(self) -> Iterator[None]:
        if not self._in_progress.acquire(blocking=False):
            raise PipelineBusy()
        try:
            yield
        finally:
            self._in_progress.release()


@dataclass(frozen=True)
class UploadOutcome:
    state: PipelineState
    file_id: Optional[str] = None
    error: Optional[ShareError] = None
    recipients: Sequence[str] = ()

    @property
    def succeeded(self) -> bool:
        return self.state is PipelineState.SUCCEEDED

    @property
    def stage(self) -> Optional[Stage]:
        return self.error.stage if self.error else None

    @property
    def message(self) -> str:
        if self.error is not None:
            return f"Error during {self.error.stage.value}: {self.error.message}"
        return (
            f"File uploaded successfully!\nFile ID: {self.file_id}\n"
            f"Recipients: {', '.join(self.recipients)}"
        )


class UploadPipeline:
    def __init__(
        self,
        config: ClientConfig,
        *,
        directory: Optional[KeyDirectoryClient] = None,
        transport: Optional[UploadTransport] = None,
        key_manager: Optional[FileKeyManager] = None,
        cipher: Optional[ContentCipher] = None,
        kem: Optional[KemEncapsulator] = None,
        deriver: Optional[KeyWrapDeriver] = None,
        builder_factory: Callable[[str, EncryptedContent], EnvelopeBuilder] = EnvelopeBuilder,
        on_progress: Optional[ProgressCallback] = None,
    ):
        self.config = config
        self.directory = directory or KeyDirectoryClient(config)
        self.transport = transport or UploadTransport(config)
        self.key_manager = key_manager or FileKeyManager()
        self.cipher = cipher or ContentCipher()
        self.kem = kem or KemEncapsulator()
        self.deriver = deriver or KeyWrapDeriver()
        self.builder_factory = builder_factory
        self.on_progress = on_progress

        self.state = PipelineState.IDLE
        self.recipient_index: Optional[int] = None
        self.transitions: List[PipelineState] = []
        self.envelope: Optional[UploadEnvelope] = None

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _advance(self, state: PipelineState, index: Optional[int] = None) -> None:
        self.state = state
        self.recipient_index = index
        self.transitions.append(state)
        logger.debug("pipeline -> %s%s", state.value, "" if index is None else f"({index})")

    def _progress(self, message: str) -> None:
        logger.info(message)
        if self.on_progress:
            self.on_progress(message)

    def _reset(self) -> None:
        self.state = PipelineState.IDLE
        self.recipient_index = None
        self.transitions = [PipelineState.IDLE]
        self.envelope = None

    def _validate(self, session: SenderSession) -> SelectedFile:
        selected = session.selected_file
        if selected is None:
            raise NoFileSelected()
        if not session.recipients:
            raise NoRecipients("Add recipient user ids")
        if selected.size > self.config.max_file_size:
            raise FileTooLarge(selected.size, self.config.max_file_size)
        return selected

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------

    def _wrap_for(self, recipient_id: str, content_key: ContentKey) -> RecipientEntry:
        """Lookup, encapsulate, derive and wrap for a single recipient."""
        public_key = self.directory.lookup(recipient_id)
        try:
            encapsulated = self.kem.encapsulate(public_key)
        except InvalidPublicKey as e:
            raise InvalidPublicKey(recipient_id, e.detail) from e

        derived = self.deriver.derive(encapsulated.shared_secret, None, WRAP_CONTEXT)
        wrapped = self.deriver.wrap(derived, content_key)
        return RecipientEntry(
            recipient_id=recipient_id,
            kem_ciphertext=encapsulated.kem_ciphertext,
            wrapped_content_key=wrapped.wrapped_key,
            wrap_nonce=wrapped.wrap_nonce,
            hkdf_salt=derived.salt,
        )

    def _execute(self, selected: SelectedFile, recipients: Sequence[str]) -> str:
        content_key: Optional[ContentKey] = None
        builder: Optional[EnvelopeBuilder] = None
        try:
            content_key = self.key_manager.generate()
            self._advance(PipelineState.KEY_GENERATED)

            self._progress(f"Encrypting file: {selected.name}...")
            encrypted = self.cipher.encrypt(selected.data, content_key)
            self._advance(PipelineState.CONTENT_ENCRYPTED)
            self._progress(
                f"File encrypted. Wrapping key for {len(recipients)} recipient(s)..."
            )

            builder = self.builder_factory(selected.name, encrypted)
            for index, recipient_id in enumerate(recipients):
                self._advance(PipelineState.WRAPPING_RECIPIENT, index)
                self._progress(f"Fetching public key for {recipient_id}...")
                builder.add(self._wrap_for(recipient_id, content_key))
                self._progress(
                    f"Wrapped key for {recipient_id}. ({index + 1}/{len(recipients)})"
                )

            envelope = builder.finalize()
            self._advance(PipelineState.READY)
            content_key.discard()

            self._advance(PipelineState.UPLOADING)
            self._progress("Uploading encrypted file to server...")
            file_id = self.transport.send(envelope)
            self.envelope = envelope
            return file_id
        finally:
            if content_key is not None:
                content_key.discard()
            if builder is not None and self.envelope is None:
                builder.discard()

    # ------------------------------------------------------------------
    # Entry point
    # ------------------------------------------------------------------

    def run(self, session: SenderSession) -> UploadOutcome:
        """
        Share the session's selected file with its recipients.

        Expected failures come back as a FAILED outcome naming the stage;
        anything unexpected propagates after key material is discarded.
        """
        try:
            with session.operation():
                return self._run_guarded(session)
        except PipelineBusy as e:
            logger.warning("rejected upload: %s", e.message)
            return UploadOutcome(state=PipelineState.FAILED, error=e)

    def _run_guarded(self, session: SenderSession) -> UploadOutcome:
        self._reset()
        recipients = list(session.recipients)
        try:
            selected = self._validate(session)
            file_id = self._execute(selected, recipients)
        except ShareError as e:
            self._advance(PipelineState.FAILED)
            logger.warning("upload failed during %s: %s", e.stage.value, e.message)
            outcome = UploadOutcome(state=PipelineState.FAILED, error=e, recipients=recipients)
            self._progress(outcome.message)
            return outcome
        except Exception:
            self._advance(PipelineState.FAILED)
            raise

        self._advance(PipelineState.SUCCEEDED)
        outcome = UploadOutcome(
            state=PipelineState.SUCCEEDED, file_id=file_id, recipients=recipients
        )
        self._progress(outcome.message)
        return outcome
