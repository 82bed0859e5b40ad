"""
Generated asset naming and lookup

Files are named generated_<millis>[_<call id>].png. The call id segment is
only written for Responses API images and is the id needed to refine them.
"""

import os
import re
from typing import List, Optional, Tuple

ASSETS_DIRNAME = "assets"
FILENAME_PREFIX = "generated_"
FILENAME_SUFFIX = ".png"

_CALL_ID_PATTERN = re.compile(r"generated_\d+_([^.]+)\.png")


def assets_dir() -> str:
    return os.path.join(os.getcwd(), ASSETS_DIRNAME)


def name_for(timestamp_millis: int, call_id: Optional[str] = None) -> str:
    """Build the asset filename for a generation."""
    if call_id:
        return f"{FILENAME_PREFIX}{timestamp_millis}_{call_id}{FILENAME_SUFFIX}"
    return f"{FILENAME_PREFIX}{timestamp_millis}{FILENAME_SUFFIX}"


def extract_call_id(filename: str) -> Optional[str]:
    """Return the image generation call id embedded in a filename, if any."""
    match = _CALL_ID_PATTERN.fullmatch(filename)
    return match.group(1) if match else None


def list_generated() -> List[str]:
    """List generated image filenames in the assets directory."""
    folder = assets_dir()
    if not os.path.isdir(folder):
        return []
    return [
        name for name in os.listdir(folder)
        if name.startswith(FILENAME_PREFIX) and name.endswith(FILENAME_SUFFIX)
    ]


def refinable() -> List[Tuple[str, str]]:
    """List (filename, call id) pairs for images that can be refined."""
    entries: List[Tuple[str, str]] = []
    for filename in list_generated():
        call_id = extract_call_id(filename)
        if call_id:
            entries.append((filename, call_id))
    return entries
