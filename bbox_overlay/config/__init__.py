"""Configuration package."""

from .settings import (
    get_app_name,
    get_app_version,
    get_default_output_dir,
    get_default_scale,
    get_default_unit,
)

__all__ = [
    'get_app_name',
    'get_app_version',
    'get_default_output_dir',
    'get_default_scale',
    'get_default_unit',
]
