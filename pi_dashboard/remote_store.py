"""
Reference remote binding for the override store.

Each key maps to GET/POST calls against a key-value endpoint addressed by
(prefix, year, userId); attachments go to a separate upload endpoint.
Transient gateway failures (502/504, dropped connections) are retried with
exponential backoff. A server-side crash (HTTP 500 or an error status in the
body) fails fast. Neither ever reaches the caller as an exception: reads come
back absent and writes come back False.
"""
import logging
import time
from typing import Optional

import requests

from pi_dashboard import config
from pi_dashboard.keys import OverrideKey, Scope
from pi_dashboard.store import OverrideStore

logger = logging.getLogger(__name__)

RETRY_STATUSES = (502, 504)
GLOBAL_USER_ID = "global"


class RemoteUnavailable(Exception):
    """The remote store could not be reached after all retries."""


class ServerLogicCrash(Exception):
    """The remote store answered, but its own logic failed."""


class RemoteStore(OverrideStore):

    def __init__(self, base_url: str, board: str = config.BOARD_ACCOMPLISHMENT,
                 session: Optional[requests.Session] = None,
                 max_retries: Optional[int] = None,
                 backoff_seconds: Optional[float] = None,
                 timeout: Optional[float] = None,
                 sleep=time.sleep):
        super().__init__(board)
        if not base_url:
            raise ValueError("REMOTE_STORE_URL is not configured")
        self.base_url = base_url.rstrip("/")
        self.session = session or requests.Session()
        self.max_retries = config.REMOTE_MAX_RETRIES if max_retries is None else max_retries
        self.backoff_seconds = config.REMOTE_BACKOFF_SECONDS if backoff_seconds is None else backoff_seconds
        self.timeout = config.REMOTE_TIMEOUT_SECONDS if timeout is None else timeout
        self._sleep = sleep

    def _address(self, raw_key: str) -> dict:
        """Map a serialized key onto the endpoint's (prefix, year, userId) triple."""
        key = OverrideKey.parse(raw_key)
        if key.scope == Scope.GLOBAL:
            user_id = GLOBAL_USER_ID
        elif key.scope == Scope.GROUP:
            user_id = f"group:{key.owner}"
        else:
            user_id = key.owner
        return {
            "prefix": key.board,
            "year": key.year,
            "userId": user_id,
            "key": raw_key,
        }

    def _request(self, method: str, path: str, **kwargs) -> dict:
        url = f"{self.base_url}/{path}"
        last_error = None
        for attempt in range(self.max_retries + 1):
            try:
                response = self.session.request(method, url, timeout=self.timeout, **kwargs)
            except (requests.ConnectionError, requests.Timeout) as e:
                last_error = e
            else:
                if response.status_code in RETRY_STATUSES:
                    last_error = RemoteUnavailable(f"HTTP {response.status_code} from {url}")
                elif response.status_code == 500:
                    raise ServerLogicCrash(f"HTTP 500 from {url}")
                elif not response.ok:
                    raise RemoteUnavailable(f"HTTP {response.status_code} from {url}")
                else:
                    try:
                        payload = response.json()
                    except ValueError:
                        raise ServerLogicCrash(f"Non-JSON response from {url}")
                    if isinstance(payload, dict) and payload.get("status") == "error":
                        raise ServerLogicCrash(payload.get("message") or f"Error status from {url}")
                    return payload

            if attempt < self.max_retries:
                delay = self.backoff_seconds * (2 ** attempt)
                logger.warning("Remote store %s failed (%s), retrying in %.2fs", url, last_error, delay)
                self._sleep(delay)

        raise RemoteUnavailable(f"{url} unavailable after {self.max_retries + 1} attempts: {last_error}")

    def _read(self, raw_key):
        try:
            payload = self._request("GET", "kv", params=self._address(raw_key))
        except (RemoteUnavailable, ServerLogicCrash) as e:
            logger.error("Remote read failed for %s: %s", raw_key, e)
            return None
        if not isinstance(payload, dict):
            return None
        return payload.get("value")

    def _write(self, raw_key, encoded):
        body = dict(self._address(raw_key), value=encoded)
        try:
            self._request("POST", "kv", json=body)
        except (RemoteUnavailable, ServerLogicCrash) as e:
            logger.error("Remote write failed for %s: %s", raw_key, e)
            return False
        return True

    def _delete(self, raw_key):
        body = dict(self._address(raw_key), delete=True)
        try:
            self._request("POST", "kv", json=body)
        except (RemoteUnavailable, ServerLogicCrash) as e:
            logger.error("Remote delete failed for %s: %s", raw_key, e)
            return False
        return True

    def upload_file(self, filename: str, content: bytes, user_id: str,
                    file_type: str = "mov", content_type: str = "application/octet-stream") -> Optional[str]:
        """Upload an attachment and return its public URL, or None on failure."""
        try:
            payload = self._request(
                "POST", "upload",
                files={"file": (filename, content, content_type)},
                data={"userId": user_id, "type": file_type},
            )
        except (RemoteUnavailable, ServerLogicCrash) as e:
            logger.error("File upload failed for %s: %s", filename, e)
            return None
        if not isinstance(payload, dict):
            return None
        return payload.get("fileUrl")
