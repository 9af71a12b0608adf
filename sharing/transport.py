"""
Upload transport.

Sends a finished envelope as one multipart/form-data POST. The encrypted
file travels as a raw binary part; the recipients list as a JSON string
field.
"""

import logging
from typing import Optional

import requests

from .config import UPLOAD_PATH, ClientConfig
from .errors import NetworkUnreachable, TransportFailure
from .models import UploadEnvelope

logger = logging.getLogger(__name__)

PAYLOAD_NAME = "file.bin"
PAYLOAD_TYPE = "application/octet-stream"


class UploadTransport:
    def __init__(self, config: ClientConfig, session: Optional[requests.Session] = None):
        self.config = config
        self.session = session or requests.Session()

    @property
    def upload_url(self) -> str:
        return self.config.api_base + UPLOAD_PATH

    def send(self, envelope: UploadEnvelope) -> str:
        """
        Deliver the envelope and return the file id the backend assigned.

        Raises:
            NetworkUnreachable: the request never got a response
            TransportFailure: non-success status (status and body verbatim),
                or a success response without an id
        """
        url = self.upload_url
        files = {
            "encryptedContent": (PAYLOAD_NAME, envelope.encrypted_content, PAYLOAD_TYPE),
        }
        logger.debug("uploading %s (%d bytes) to %s",
                     envelope.filename, len(envelope.encrypted_content), url)
        try:
            response = self.session.post(
                url,
                data=envelope.to_form(),
                files=files,
                timeout=self.config.request_timeout,
            )
        except requests.exceptions.RequestException as e:
            raise NetworkUnreachable(url, str(e)) from e

        if not response.ok:
            raise TransportFailure(response.status_code, response.text)

        try:
            file_id = response.json()["id"]
        except (ValueError, KeyError, TypeError) as e:
            raise TransportFailure(response.status_code, response.text) from e
        if file_id is None or str(file_id) == "":
            raise TransportFailure(response.status_code, response.text)
        return str(file_id)
