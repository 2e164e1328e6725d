"""Page data model representing a single page from a PDF document."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional

from .rectangle import PageSize

if TYPE_CHECKING:
    from .document import Document


@dataclass
class Page:
    """Represents a single page from a PDF document.
    
    Attributes:
        page_number: Page number (starts at 1)
        document: Reference to parent Document
        width: Unrotated page width in points
        height: Unrotated page height in points
        rotation: Intrinsic page rotation in degrees (0, 90, 180 or 270)
        rendered_image_path: Optional path to last rendered image
    """
    
    page_number: int
    document: Document
    width: float
    height: float
    rotation: int = 0
    rendered_image_path: Optional[str] = None
    
    def __post_init__(self):
        """Validate page number and normalize rotation."""
        if self.page_number < 1:
            raise ValueError(f"Page number must be >= 1, got {self.page_number}")
        if self.rotation % 90 != 0:
            raise ValueError(f"Page rotation must be a multiple of 90, got {self.rotation}")
        self.rotation = self.rotation % 360

    @property
    def page_size(self) -> PageSize:
        """Unrotated page size used for unit conversion."""
        return PageSize(width=self.width, height=self.height)
