"""
Ambient track selection.

The ambient bed is the default first input when only one file is given.
Tracks live in the asset directory, LOHIGH_ASSET_DIR (default: ./asset).
"""

import os
import random
from typing import List, Optional

from lohigh.logger import get_logger

logger = get_logger(__name__)

DEFAULT_AMBIENT = "ambient.wav"

AMBIENT_FILES = [
    "ambient.wav",
    "ambient_vinyl.wav",
    "ambient_rain.wav",
    "ambient_cafe.wav",
    "ambient_night.wav",
]


def get_asset_dir(asset_dir: Optional[str] = None) -> str:
    return asset_dir or os.environ.get("LOHIGH_ASSET_DIR", "asset")


def select_ambient_file(
    choice: Optional[str] = None,
    asset_dir: Optional[str] = None,
    rng: Optional[random.Random] = None,
) -> str:
    """
    Resolve an ambient choice to a file path.

    Args:
        choice: None for the default, "random", a known name (with or
            without .wav), or a path to a custom file
        asset_dir: Directory holding the ambient tracks
        rng: Random source for "random" (for reproducible picks)

    Returns:
        Path to the selected ambient file; unknown choices fall back to the
        default track with a warning
    """
    asset_dir = get_asset_dir(asset_dir)
    default_path = os.path.join(asset_dir, DEFAULT_AMBIENT)

    if not choice:
        return default_path

    if choice.lower() == "random":
        available = [
            os.path.join(asset_dir, name)
            for name in AMBIENT_FILES
            if os.path.exists(os.path.join(asset_dir, name))
        ]
        if not available:
            logger.warning("No ambient files found, using default")
            return default_path
        selected = (rng or random).choice(available)
        logger.debug(f"Randomly selected ambient: {os.path.basename(selected)}")
        return selected

    candidate = os.path.join(asset_dir, choice)
    if os.path.exists(candidate):
        logger.debug(f"Using ambient: {choice}")
        return candidate

    if not choice.endswith(".wav"):
        candidate = os.path.join(asset_dir, choice + ".wav")
        if os.path.exists(candidate):
            logger.debug(f"Using ambient: {choice}.wav")
            return candidate

    if os.path.exists(choice):
        logger.debug(f"Using custom ambient: {choice}")
        return choice

    logger.warning(f"Ambient file '{choice}' not found, using default")
    return default_path


def list_ambient_files(asset_dir: Optional[str] = None) -> List[str]:
    """Names (without .wav) of the known ambient tracks present on disk."""
    asset_dir = get_asset_dir(asset_dir)
    return [
        name[:-len(".wav")]
        for name in AMBIENT_FILES
        if os.path.exists(os.path.join(asset_dir, name))
    ]
