"""
Error taxonomy shared by the crypto layer and the upload pipeline.

Every expected failure is a ShareError carrying the pipeline stage it
belongs to, so the caller can report which step failed.
"""

from enum import Enum
from typing import Optional


class Stage(str, Enum):
    VALIDATE = "validate"
    KEYGEN = "keygen"
    ENCRYPT = "encrypt"
    LOOKUP = "lookup"
    ENCAPSULATE = "encapsulate"
    WRAP = "wrap"
    FINALIZE = "finalize"
    UPLOAD = "upload"
    OPEN = "open"


class ShareError(Exception):
    """Base class for recoverable, reportable pipeline errors."""

    stage: Stage = Stage.VALIDATE

    def __init__(self, message: str, *, stage: Optional[Stage] = None):
        super().__init__(message)
        self.message = message
        if stage is not None:
            self.stage = stage


class EncryptionFailure(ShareError):
    stage = Stage.ENCRYPT


class AuthenticationFailure(ShareError):
    """Ciphertext, nonce, or key did not authenticate."""

    stage = Stage.OPEN


class InvalidPublicKey(ShareError):
    """The recipient's public key was rejected by the KEM."""

    stage = Stage.ENCAPSULATE

    def __init__(
        self,
        recipient_id: Optional[str] = None,
        detail: str = "",
        *,
        stage: Optional[Stage] = None,
    ):
        self.recipient_id = recipient_id
        self.detail = detail
        who = f" for recipient '{recipient_id}'" if recipient_id is not None else ""
        msg = f"Invalid public key{who}"
        if detail:
            msg = f"{msg}: {detail}"
        super().__init__(msg, stage=stage)
