"""Profile loader for configurable overlay rendering."""

import yaml
from pathlib import Path
from typing import Dict, Any, Optional
from dataclasses import dataclass, field

from ..models.rectangle import RectUnit
from ..models.style import OverlayStyle
from .settings import DEFAULT_SCALE, clamp_scale


@dataclass
class ProfileConfig:
    """Configuration profile for overlay rendering."""
    name: str
    description: str = ""
    scale: float = DEFAULT_SCALE
    unit: RectUnit = RectUnit.INCH
    style: OverlayStyle = field(default_factory=OverlayStyle)
    render: Dict[str, Any] = field(default_factory=dict)

    @property
    def max_workers(self) -> Optional[int]:
        """Worker threads for page projection (None = executor default)."""
        value = self.render.get("max_workers")
        return int(value) if value else None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ProfileConfig':
        """Create ProfileConfig from dictionary.

        Raises:
            ValueError: If unit is unknown or scale is not a number
        """
        return cls(
            name=data.get('name', 'default'),
            description=data.get('description', ''),
            scale=clamp_scale(float(data.get('scale', DEFAULT_SCALE))),
            unit=RectUnit.parse(data.get('unit', RectUnit.INCH)),
            style=OverlayStyle.from_dict(data.get('style') or {}),
            render=data.get('render') or {},
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            'name': self.name,
            'description': self.description,
            'scale': self.scale,
            'unit': self.unit.value,
            'style': self.style.to_dict(),
            'render': self.render,
        }


def get_profiles_dir() -> Path:
    """Get directory containing profile YAML files.

    Returns:
        Path to profiles directory
    """
    # bbox_overlay/config/profile_loader.py -> bbox_overlay/config -> bbox_overlay -> root
    project_root = Path(__file__).resolve().parent.parent.parent
    return project_root / "configs" / "profiles"


def load_profile(profile_name: str = "default") -> ProfileConfig:
    """Load a configuration profile.

    Args:
        profile_name: Name of profile to load (without .yaml extension)

    Returns:
        ProfileConfig object

    Raises:
        FileNotFoundError: If profile file doesn't exist
        ValueError: If profile file is invalid
    """
    profiles_dir = get_profiles_dir()
    profile_path = profiles_dir / f"{profile_name}.yaml"

    if not profile_path.exists():
        raise FileNotFoundError(f"Profile not found: {profile_name} (expected at {profile_path})")

    try:
        with open(profile_path, 'r', encoding='utf-8') as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML in profile {profile_name}: {e}") from e

    if not data or not isinstance(data, dict):
        raise ValueError(f"Profile file is empty: {profile_path}")

    try:
        return ProfileConfig.from_dict(data)
    except (TypeError, ValueError) as e:
        raise ValueError(f"Error loading profile {profile_name}: {e}") from e


def list_available_profiles() -> list[str]:
    """List all available profile names.

    Returns:
        List of profile names (without .yaml extension)
    """
    profiles_dir = get_profiles_dir()

    if not profiles_dir.exists():
        return ["default"]

    profiles = [profile_file.stem for profile_file in profiles_dir.glob("*.yaml")]
    return sorted(profiles) if profiles else ["default"]


def get_default_profile() -> ProfileConfig:
    """Get default profile (always available).

    Returns:
        Default ProfileConfig
    """
    try:
        return load_profile("default")
    except FileNotFoundError:
        return ProfileConfig(name="default", description="Default configuration")
