"""
Image fetching and the per-run resource cache.

Every puzzle number maps to one image URL, and the same image is inserted
many times per booklet (rows, columns, groups, reference and solution pages),
so each URL is downloaded once and reused for the rest of the run.
"""

import logging
from dataclasses import dataclass
from typing import Callable, Dict, Optional

import cv2
import numpy as np
import requests

from .errors import ExternalCollaboratorError

logger = logging.getLogger(__name__)

CONTENT_TYPE = "image/png"


@dataclass(frozen=True)
class ImageResource:
    """A fetched image, normalised to PNG bytes."""

    locator: str
    data: bytes
    content_type: str = CONTENT_TYPE


def fetch_url(locator: str, timeout: float = 30.0) -> bytes:
    """
    Download an image over HTTP.

    Args:
        locator: Image URL
        timeout: Seconds to wait for the server

    Returns:
        Raw response body

    Raises:
        ExternalCollaboratorError: On connection errors or a non-2xx status
    """
    try:
        response = requests.get(locator, timeout=timeout)
        response.raise_for_status()
    except requests.RequestException as e:
        raise ExternalCollaboratorError(f"Failed to fetch image '{locator}': {e}") from e
    return response.content


def to_png(data: bytes, locator: str = "image") -> bytes:
    """
    Re-encode image bytes (PNG, JPEG, WebP, ...) as PNG.

    The document layer only embeds formats it can parse, so everything is
    normalised to PNG before it is cached. Vector formats such as SVG are
    rejected, and animated images keep only their first frame.

    Raises:
        ExternalCollaboratorError: If the bytes cannot be decoded as an image
    """
    if not data:
        raise ExternalCollaboratorError(f"Image '{locator}' is empty")

    buffer = np.frombuffer(data, dtype=np.uint8)
    image = cv2.imdecode(buffer, cv2.IMREAD_UNCHANGED)
    if image is None or image.size == 0:
        raise ExternalCollaboratorError(f"Image '{locator}' could not be decoded")

    ok, encoded = cv2.imencode(".png", image)
    if not ok:
        raise ExternalCollaboratorError(f"Image '{locator}' could not be encoded as PNG")
    return encoded.tobytes()


class ResourceCache:
    """
    Memoises fetched images by locator for the lifetime of one run.

    There is no eviction: a run only ever sees a handful of distinct URLs.
    """

    def __init__(self, fetch: Optional[Callable[[str], bytes]] = None, content_type: str = CONTENT_TYPE):
        self.fetch = fetch if fetch is not None else fetch_url
        self.content_type = content_type
        self._entries: Dict[str, ImageResource] = {}

    def get(self, locator: str) -> ImageResource:
        cached = self._entries.get(locator)
        if cached is not None:
            return cached

        logger.debug("Fetching image %s", locator)
        data = to_png(self.fetch(locator), locator)
        resource = ImageResource(locator, data, self.content_type)
        self._entries[locator] = resource
        return resource

    def __contains__(self, locator: str) -> bool:
        return locator in self._entries

    def __len__(self) -> int:
        return len(self._entries)
