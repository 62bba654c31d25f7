"""
Client for the bucket-scoped key-value endpoint holding the shared AppState JSON.
"""
import logging
from typing import Any, Dict, Optional

import requests

DEFAULT_BASE_URL = "https://kvdb.io"
DEFAULT_BUCKET = "masjid_app_demo_v1"
DEFAULT_KEY = "masjid_master_data_v5_features"


class RemoteNotProvisionedError(Exception):
    """Write answered 404: no bucket exists at the configured URL."""


class RemoteStore:
    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        bucket: str = DEFAULT_BUCKET,
        key: str = DEFAULT_KEY,
        timeout: float = 10,
    ):
        self.base_url = base_url.rstrip("/")
        self.bucket = bucket
        self.key = key
        self.timeout = timeout
        self.logger = logging.getLogger(self.__class__.__name__)

    @classmethod
    def from_config(cls, config_data: Optional[Dict[str, Any]]) -> "RemoteStore":
        remote = ((config_data or {}).get("masjid") or {}).get("remote") or {}
        return cls(
            base_url=remote.get("base_url", DEFAULT_BASE_URL),
            bucket=remote.get("bucket", DEFAULT_BUCKET),
            key=remote.get("key", DEFAULT_KEY),
            timeout=float(remote.get("timeout", 10)),
        )

    @property
    def url(self) -> str:
        return f"{self.base_url}/{self.bucket}/{self.key}"

    def fetch(self) -> Optional[Dict[str, Any]]:
        """GET the stored payload. None when the key does not exist yet.
        Raises requests.RequestException on transport errors / non-OK status, ValueError on bad JSON."""
        self.logger.debug(f"Fetching state from {self.url}")
        response = requests.get(
            self.url,
            headers={"Accept": "application/json", "Cache-Control": "no-store"},
            timeout=self.timeout,
        )
        if response.status_code == 404:
            self.logger.info("Remote store has no value at key yet")
            return None
        response.raise_for_status()
        return response.json()

    def push(self, payload: Dict[str, Any]) -> None:
        """Overwrite the value at the key with payload."""
        self.logger.debug(f"Pushing state to {self.url}")
        response = requests.post(self.url, json=payload, timeout=self.timeout)
        if response.status_code == 404:
            raise RemoteNotProvisionedError(f"No bucket at {self.url}")
        response.raise_for_status()
