"""Multi-recipient envelope building, key directory lookup, and upload."""

from .config import ClientConfig, resolve_api_base
from .directory import KeyDirectoryClient
from .envelope import EnvelopeBuilder
from .models import RecipientEntry, UploadEnvelope
from .pipeline import (
    PipelineState,
    SelectedFile,
    SenderSession,
    UploadOutcome,
    UploadPipeline,
    parse_recipients,
)
from .recipient import load_envelope, open_envelope
from .transport import UploadTransport

__all__ = [
    "ClientConfig",
    "resolve_api_base",
    "KeyDirectoryClient",
    "EnvelopeBuilder",
    "RecipientEntry",
    "UploadEnvelope",
    "PipelineState",
    "SelectedFile",
    "SenderSession",
    "UploadOutcome",
    "UploadPipeline",
    "parse_recipients",
    "load_envelope",
    "open_envelope",
    "UploadTransport",
]
