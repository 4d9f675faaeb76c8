from __future__ import annotations

import logging
import subprocess
import tempfile
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol, Union

import numpy as np
import requests

from projalign.errors import CaptureError
from projalign.vision.image_io import decode_gray_u8

logger = logging.getLogger(__name__)


class PhotoSource(Protocol):
    def capture(self) -> np.ndarray: ...


@dataclass(frozen=True)
class FilePhotoSource:
    """Returns the same image file on every capture."""

    path: Path

    def capture(self) -> np.ndarray:
        logger.warning("%s is being provided as a camera photo", self.path)
        try:
            data = Path(self.path).read_bytes()
        except OSError as e:
            raise CaptureError(f"could not read photo {self.path}: {e}") from e
        return decode_gray_u8(data)


@dataclass(frozen=True)
class HttpPhotoSource:
    url: str
    timeout: float = 30.0

    def capture(self) -> np.ndarray:
        logger.info("fetching camera photo from %s", self.url)
        try:
            res = requests.get(self.url, timeout=self.timeout)
            res.raise_for_status()
        except requests.RequestException as e:
            raise CaptureError(f"failed to fetch photo from {self.url}: {e}") from e
        if not res.content:
            raise CaptureError(f"response from {self.url} didn't contain image data")
        return decode_gray_u8(res.content)


@dataclass(frozen=True)
class TetheredPhotoSource:
    """
    USB-tethered camera driven through the gphoto2 command line tool.

    Two shots are taken and the second one kept: some cameras (Sony a5100/a6000)
    do not reliably hand over the first capture.
    """

    command: str = "gphoto2"
    shots: int = 2
    settle_s: float = 1.0

    def capture(self) -> np.ndarray:
        with tempfile.TemporaryDirectory(prefix="projalign-") as tmp:
            fpath = Path(tmp) / "capture.jpg"
            for _ in range(int(self.shots)):
                self._run(fpath)
                time.sleep(self.settle_s)
            if not fpath.exists():
                raise CaptureError(f"{self.command} did not produce {fpath}")
            logger.info("returning gphoto image data")
            return decode_gray_u8(fpath.read_bytes())

    def _run(self, fpath: Path) -> None:
        args = [self.command, "--capture-image-and-download", "--force-overwrite", "--filename", str(fpath)]
        try:
            out = subprocess.run(args, capture_output=True, text=True, check=False)
        except FileNotFoundError as e:
            raise CaptureError(f"{self.command} executable not found. Is the gphoto2 package not installed?") from e
        except OSError as e:
            raise CaptureError(f"error while running {self.command}: {e}") from e
        logger.debug("gphoto2 stdout: %s", out.stdout)
        logger.debug("gphoto2 stderr: %s", out.stderr)
        if out.returncode != 0:
            raise CaptureError(f"{self.command} exited with status {out.returncode}: {out.stderr.strip()}")


AnyPhotoSource = Union[FilePhotoSource, HttpPhotoSource, TetheredPhotoSource]


def photo_source_from_option(option: str | None) -> AnyPhotoSource:
    """`--camera` option -> source: unset = tethered camera, http(s) URL, or an image file."""
    if option is None:
        return TetheredPhotoSource()
    if option.startswith(("http://", "https://")):
        return HttpPhotoSource(url=option)
    return FilePhotoSource(path=Path(option))
