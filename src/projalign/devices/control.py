from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any

import requests

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProjectorControl:
    """HTTP client for the player that drives the projector."""

    base_url: str
    timeout: float = 30.0

    def _url(self, endpoint: str) -> str:
        return f"{self.base_url.rstrip('/')}/{endpoint}"

    def show_image(self, data: bytes, fmt: str = "png") -> None:
        """Display an encoded image full screen. `fmt` is "png", "jpg" etc."""
        url = self._url("show_image")
        logger.info("posting %d byte %s image to %s", len(data), fmt, url)
        res = requests.post(url, data=data, headers={"Content-Type": f"image/{fmt}"}, timeout=self.timeout)
        res.raise_for_status()

    def send_command(self, command: str, payload: dict[str, Any] | None = None) -> None:
        url = self._url(command)
        logger.info("sending %s command to %s", command, url)
        body = json.dumps(payload) if payload is not None else None
        res = requests.post(url, data=body, headers={"Content-Type": "application/json"}, timeout=self.timeout)
        res.raise_for_status()


def post_json(url: str, payload: dict[str, Any], timeout: float = 30.0) -> None:
    """POST a JSON document to an arbitrary URL (e.g. a content server's config endpoint)."""
    logger.info("posting JSON to %s", url)
    res = requests.post(url, json=payload, timeout=timeout)
    res.raise_for_status()
