"""
Identity store keyed by recipient id.

On disk this is one JSON document:

    {"version": 1, "identities": {"<recipient id>": {...}, ...}}

Without a path the store lives in memory only, which is what the tests use.
"""

import json
import logging
import os
import tempfile
from typing import Dict, Iterator, List, Optional

from .models import Identity

logger = logging.getLogger(__name__)

STORE_VERSION = 1


class IdentityStore:
    def __init__(self, path: Optional[str] = None):
        self.path = path
        self._identities: Dict[str, Identity] = {}
        if path is not None and os.path.exists(path):
            self._identities = self._read(path)

    @staticmethod
    def _read(path: str) -> Dict[str, Identity]:
        with open(path, "r", encoding="utf-8") as f:
            document = json.load(f)
        version = document.get("version")
        if version != STORE_VERSION:
            raise ValueError(f"{path}: unsupported keystore version {version!r}")
        return {
            recipient_id: Identity.from_dict(recipient_id, record)
            for recipient_id, record in document["identities"].items()
        }

    def _flush(self) -> None:
        if self.path is None:
            return
        document = {
            "version": STORE_VERSION,
            "identities": {rid: identity.to_dict() for rid, identity in self._identities.items()},
        }
        directory = os.path.dirname(self.path) or "."
        fd, tmp = tempfile.mkstemp(prefix=".keystore.", suffix=".tmp", dir=directory)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(document, f, indent=2, sort_keys=True)
            os.replace(tmp, self.path)
        finally:
            if os.path.exists(tmp):
                os.remove(tmp)
        logger.debug("wrote %d identities to %s", len(self._identities), self.path)

    def __contains__(self, recipient_id: str) -> bool:
        return recipient_id in self._identities

    def __iter__(self) -> Iterator[Identity]:
        return iter(list(self._identities.values()))

    def __len__(self) -> int:
        return len(self._identities)

    def get(self, recipient_id: str) -> Optional[Identity]:
        return self._identities.get(recipient_id)

    def add(self, identity: Identity) -> None:
        if identity.recipient_id in self._identities:
            raise ValueError(f"Identity '{identity.recipient_id}' already exists.")
        self._identities[identity.recipient_id] = identity
        self._flush()

    def recipient_ids(self) -> List[str]:
        return sorted(self._identities)
