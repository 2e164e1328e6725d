"""Central configuration for bbox-overlay."""

import os
import sys
import logging
from pathlib import Path

from ..models.rectangle import RectUnit

logger = logging.getLogger(__name__)

# Zoom range of the viewer slider
MIN_SCALE = 0.5
MAX_SCALE = 3.0
DEFAULT_SCALE = 1.5


def get_app_name() -> str:
    """Get application name."""
    return "bbox-overlay"


def get_app_version() -> str:
    """Get application version from pyproject.toml."""
    try:
        import tomli
        pyproject_path = Path(__file__).resolve().parent.parent.parent / "pyproject.toml"
        with open(pyproject_path, "rb") as f:
            pyproject = tomli.load(f)
            return pyproject.get("project", {}).get("version", "0.1.0")
    except Exception:
        # Fallback version if pyproject.toml cannot be read
        return "0.1.0"


def get_default_output_dir() -> Path:
    """Get default output directory based on run context.

    - Running from source (dev): uses project root / "out".
    - Running from a frozen build: ~/.bbox-overlay/output.

    Returns:
        Path object to default output directory (created if needed)
    """
    if getattr(sys, "frozen", False):
        output_dir = Path.home() / ".bbox-overlay" / "output"
    else:
        output_dir = Path(__file__).resolve().parent.parent.parent / "out"
    output_dir.mkdir(parents=True, exist_ok=True)
    return output_dir


def clamp_scale(scale: float) -> float:
    """Clamp a render scale to the supported zoom range."""
    return max(MIN_SCALE, min(MAX_SCALE, scale))


def get_default_scale(fallback: float = DEFAULT_SCALE) -> float:
    """Get default render scale.

    Args:
        fallback: Scale used when the variable is unset or invalid
            (usually the active profile's scale)

    Returns:
        BBOX_OVERLAY_SCALE environment variable clamped to 0.5-3.0,
        or fallback when unset or not a number
    """
    value = os.getenv("BBOX_OVERLAY_SCALE")
    if value is None:
        return fallback
    try:
        scale = float(value)
    except ValueError:
        logger.warning(f"Invalid BBOX_OVERLAY_SCALE: {value}, using {fallback}")
        return fallback
    clamped = clamp_scale(scale)
    if clamped != scale:
        logger.warning(f"BBOX_OVERLAY_SCALE {scale} out of range, using {clamped}")
    return clamped


def get_default_unit(fallback: RectUnit = RectUnit.INCH) -> RectUnit:
    """Get default unit for manually added rectangles.

    Returns:
        BBOX_OVERLAY_UNIT environment variable as RectUnit, or fallback
        when unset or unknown
    """
    value = os.getenv("BBOX_OVERLAY_UNIT")
    if value is None:
        return fallback
    try:
        return RectUnit.parse(value)
    except ValueError:
        logger.warning(f"Invalid BBOX_OVERLAY_UNIT: {value}, using '{fallback.value}'")
        return fallback
