"""Thin HTTP client for the model-runner daemon."""
from __future__ import annotations

import json
import logging
from typing import Iterator, List, Optional, Union

import requests

from constants import DAEMON
from errors import DaemonError, DaemonUnreachable, FetchError, ModelNotFound
from model_types import InstalledModel, ProgressEvent, RunningModel

logger = logging.getLogger(__name__)

KEEP_LOADED = -1
UNLOAD_NOW = 0


class OllamaClient:
    def __init__(
        self,
        base_url: str = DAEMON.BASE_URL,
        *,
        session: Optional[requests.Session] = None,
        timeout: float = DAEMON.READ_TIMEOUT,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.session = session or requests.Session()
        self.timeout = (DAEMON.CONNECT_TIMEOUT, timeout)

    def _url(self, path: str) -> str:
        return f"{self.base_url}{path}"

    def _get_json(self, path: str) -> dict:
        url = self._url(path)
        try:
            resp = self.session.get(url, timeout=self.timeout)
            resp.raise_for_status()
            return resp.json()
        except requests.RequestException as exc:
            logger.warning("GET %s failed: %s", url, exc)
            raise FetchError(f"could not reach the daemon at {self.base_url}: {exc}") from exc
        except ValueError as exc:
            raise FetchError(f"invalid response from {url}: {exc}") from exc

    def version(self) -> str:
        try:
            data = self._get_json("/api/version")
        except FetchError as exc:
            raise DaemonUnreachable(exc.message) from exc
        return str(data.get("version") or "unknown")

    def list_installed(self) -> List[InstalledModel]:
        data = self._get_json("/api/tags")
        models = [InstalledModel.from_api(item) for item in data.get("models") or []]
        logger.info("daemon reports %d installed model(s)", len(models))
        return models

    def list_running(self) -> List[RunningModel]:
        data = self._get_json("/api/ps")
        models = [RunningModel.from_api(item) for item in data.get("models") or []]
        logger.info("daemon reports %d running model(s)", len(models))
        return models

    def pull(self, name: str) -> Iterator[ProgressEvent]:
        """Yield progress records for ``name`` until the daemon reports success.

        Blocks between records; transport failures are raised as
        :class:`DaemonError` and are not retried.
        """
        url = self._url("/api/pull")
        logger.info("pulling %s", name)
        try:
            with self.session.post(
                url,
                json={"name": name, "stream": True},
                stream=True,
                timeout=(DAEMON.CONNECT_TIMEOUT, None),
            ) as resp:
                if resp.status_code != 200:
                    raise DaemonError(f"failed to pull {name}: {_error_detail(resp)}")
                for line in resp.iter_lines():
                    if not line:
                        continue
                    event = _decode_progress(name, line)
                    yield event
                    if event.is_success:
                        return
        except requests.RequestException as exc:
            logger.warning("pull of %s aborted: %s", name, exc)
            raise DaemonError(f"failed to pull {name}: {exc}") from exc
        raise DaemonError("pull stream ended before completion")

    def delete(self, name: str) -> None:
        url = self._url("/api/delete")
        try:
            resp = self.session.delete(url, json={"name": name}, timeout=self.timeout)
        except requests.RequestException as exc:
            raise DaemonError(f"failed to perform request: {exc}") from exc
        if resp.status_code == 404:
            raise ModelNotFound(f"model not found: {name}")
        if resp.status_code != 200:
            raise DaemonError(f"unexpected status code: {resp.status_code}")
        logger.info("deleted %s", name)

    def keep_alive(self, name: str, duration: Union[int, str]) -> None:
        """Load ``name`` and keep it resident for ``duration``.

        A negative duration keeps the model loaded indefinitely, zero unloads it.
        """
        url = self._url("/api/generate")
        try:
            resp = self.session.post(
                url,
                json={"model": name, "keep_alive": duration, "stream": False},
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            raise DaemonError(f"failed to reach the daemon: {exc}") from exc
        if resp.status_code == 404:
            raise ModelNotFound(f"model not found: {name}")
        if resp.status_code != 200:
            raise DaemonError(f"keep-alive request for {name} failed: {_error_detail(resp)}")
        logger.info("keep_alive=%s applied to %s", duration, name)


def _decode_progress(name: str, line: bytes) -> ProgressEvent:
    try:
        record = json.loads(line)
    except ValueError as exc:
        raise DaemonError(f"failed to decode pull progress: {exc}") from exc
    if not isinstance(record, dict):
        raise DaemonError(f"failed to decode pull progress: expected an object, got {record!r}")
    if record.get("error"):
        raise DaemonError(f"failed to pull {name}: {record['error']}")
    try:
        return ProgressEvent.from_api(record)
    except (TypeError, ValueError) as exc:
        raise DaemonError(f"failed to decode pull progress: {exc}") from exc


def _error_detail(resp: requests.Response) -> str:
    try:
        data = resp.json()
    except ValueError:
        data = None
    if isinstance(data, dict) and data.get("error"):
        return str(data["error"])
    return f"unexpected status code: {resp.status_code}"
