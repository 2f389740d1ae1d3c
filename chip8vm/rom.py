"""
Program image acquisition and display snapshots.
"""

import logging
import os

from PIL import Image

from .display import Display
from .errors import SourceUnavailable

logger = logging.getLogger(__name__)


def read_rom(filename: str) -> bytes:
    """Load a ROM file"""
    try:
        with open(filename, 'rb') as f:
            data = f.read()
    except OSError as e:
        raise SourceUnavailable(f"ROM not found or unreadable: {filename} ({e.strerror})") from e

    logger.debug("Read %d bytes from %s", len(data), filename)
    return data


def save_screenshot(display: Display, path: str, scale: int = 8) -> str:
    """Save the display as a grayscale PNG, scaled up for visibility"""
    directory = os.path.dirname(path)
    if directory:
        os.makedirs(directory, exist_ok=True)

    img = Image.fromarray(display.as_image(scale))
    img.save(path)
    logger.info("Saved screenshot to %s", path)
    return path
