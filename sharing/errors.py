"""Errors surfaced by the upload pipeline, one class per failure kind."""

from typing import Optional

from sharecrypto.errors import (
    AuthenticationFailure,
    EncryptionFailure,
    InvalidPublicKey,
    ShareError,
    Stage,
)


class NoFileSelected(ShareError):
    stage = Stage.VALIDATE

    def __init__(self, message: str = "No file selected"):
        super().__init__(message)


class NoRecipients(ShareError):
    stage = Stage.VALIDATE

    def __init__(self, message: str = "No recipients given", *, stage: Optional[Stage] = None):
        super().__init__(message, stage=stage)


class FileTooLarge(ShareError):
    stage = Stage.VALIDATE

    def __init__(self, size: int, limit: int):
        self.size = size
        self.limit = limit
        super().__init__(f"File is {size:,} bytes; the limit is {limit:,} bytes")


class PipelineBusy(ShareError):
    stage = Stage.VALIDATE

    def __init__(self):
        super().__init__("An upload is already in progress for this session")


class RecipientNotFound(ShareError):
    stage = Stage.LOOKUP

    def __init__(self, recipient_id: str):
        self.recipient_id = recipient_id
        super().__init__(f"Recipient '{recipient_id}' not found in key directory")


class DirectoryUnavailable(ShareError):
    """Transport-level failure talking to the key directory; retrying may help."""

    stage = Stage.LOOKUP

    def __init__(self, message: str, *, status: Optional[int] = None):
        self.status = status
        super().__init__(message)


class TransportFailure(ShareError):
    """The backend answered the upload with a non-success status."""

    stage = Stage.UPLOAD

    def __init__(self, status: int, body: str):
        self.status = status
        self.body = body
        super().__init__(f"Upload failed ({status}): {body or 'Unknown error'}")


class NetworkUnreachable(ShareError):
    stage = Stage.UPLOAD

    def __init__(self, url: str, detail: str):
        self.url = url
        self.detail = detail
        super().__init__(f"Network error: failed to connect to backend at {url}: {detail}")


__all__ = [
    "Stage",
    "ShareError",
    "NoFileSelected",
    "NoRecipients",
    "FileTooLarge",
    "PipelineBusy",
    "RecipientNotFound",
    "DirectoryUnavailable",
    "InvalidPublicKey",
    "EncryptionFailure",
    "TransportFailure",
    "NetworkUnreachable",
    "AuthenticationFailure",
]
