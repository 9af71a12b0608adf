"""
Key directory client.

Resolves a recipient identifier to the ML-KEM public key the backend has on
file. A missing recipient (HTTP 404) is reported separately from transport
trouble so callers can tell a typo from an outage.
"""

import logging
from typing import Optional
from urllib.parse import quote

import requests

from sharecrypto.encoding import b64d

from .config import KEYS_PATH, ClientConfig
from .errors import DirectoryUnavailable, InvalidPublicKey, RecipientNotFound, Stage

logger = logging.getLogger(__name__)


class KeyDirectoryClient:
    def __init__(self, config: ClientConfig, session: Optional[requests.Session] = None):
        self.config = config
        self.session = session or requests.Session()

    def _url(self, recipient_id: str) -> str:
        path = KEYS_PATH.format(recipient_id=quote(recipient_id, safe=""))
        return f"{self.config.api_base}{path}"

    def lookup(self, recipient_id: str) -> bytes:
        """
        Fetch a recipient's public encapsulation key.

        Args:
            recipient_id: Recipient identifier, used verbatim (case-sensitive)

        Returns:
            Raw public key bytes

        Raises:
            RecipientNotFound: the directory does not know the identifier
            DirectoryUnavailable: connection failure or unexpected status
            InvalidPublicKey: the response carried no usable key
        """
        url = self._url(recipient_id)
        logger.debug("directory lookup %s", url)
        try:
            response = self.session.get(url, timeout=self.config.request_timeout)
        except requests.exceptions.RequestException as e:
            raise DirectoryUnavailable(f"Key directory unreachable at {url}: {e}") from e

        if response.status_code == 404:
            raise RecipientNotFound(recipient_id)
        if not response.ok:
            raise DirectoryUnavailable(
                f"Failed to fetch public key for {recipient_id}: {response.status_code}",
                status=response.status_code,
            )

        try:
            encoded = response.json()["publicKey"]
            return b64d(encoded)
        except (ValueError, KeyError, TypeError) as e:
            raise InvalidPublicKey(
                recipient_id, "directory returned no decodable publicKey", stage=Stage.LOOKUP
            ) from e
