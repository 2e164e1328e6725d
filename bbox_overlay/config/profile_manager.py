"""Active overlay profile shared by the CLI, API and viewer.

The first lookup resolves BBOX_OVERLAY_PROFILE when it is set, else the
``default`` profile (or the built-in defaults when no profile files exist).
"""

import logging
import os
import threading
from typing import Optional

from .profile_loader import ProfileConfig, get_default_profile, load_profile

logger = logging.getLogger(__name__)

PROFILE_ENV = "BBOX_OVERLAY_PROFILE"

_lock = threading.RLock()
_active: Optional[ProfileConfig] = None


def _initial_profile() -> ProfileConfig:
    name = os.getenv(PROFILE_ENV)
    if name:
        try:
            return load_profile(name)
        except (FileNotFoundError, ValueError) as e:
            logger.warning(f"{PROFILE_ENV}={name} could not be loaded ({e}), using default profile")
    return get_default_profile()


def set_profile(profile_name: str = "default") -> ProfileConfig:
    """Load a profile by name and make it active.

    Raises:
        FileNotFoundError: If profile doesn't exist
        ValueError: If profile is invalid
    """
    global _active
    profile = load_profile(profile_name)
    with _lock:
        _active = profile
    logger.info(f"Active profile: {profile.name}")
    return profile


def get_profile() -> ProfileConfig:
    """Active profile, resolved on first use."""
    global _active
    with _lock:
        if _active is None:
            _active = _initial_profile()
        return _active


def get_profile_name() -> str:
    return get_profile().name


def reset_profile() -> None:
    """Forget the active profile; the next get_profile() resolves it again."""
    global _active
    with _lock:
        _active = None
