"""API request and response models."""

from typing import Any, List, Optional

from pydantic import BaseModel, Field

from ..models.rectangle import RectUnit


class PageSizeModel(BaseModel):
    """Unrotated page size in points."""

    width: float = Field(..., description="Page width in points")
    height: float = Field(..., description="Page height in points")


class RectangleModel(BaseModel):
    """Rectangle record as exchanged over the API."""

    id: Optional[str] = Field(None, description="Rectangle id (generated when omitted)")
    page: int = Field(1, description="1-based page number")
    x: float
    y: float
    width: float
    height: float
    unit: RectUnit = RectUnit.INCH
    label: Optional[str] = None
    color: Optional[str] = None


class ConvertRequest(BaseModel):
    """Request model for page-space conversion."""

    rectangle: RectangleModel
    page_size: PageSizeModel


class PageBoundsResponse(BaseModel):
    """Page-space bounds in points, bottom-left origin."""

    left: float
    right: float
    bottom: float
    top: float
    degenerate: bool = False


class ProjectRequest(BaseModel):
    """Request model for viewport projection."""

    rectangles: List[RectangleModel]
    page_size: PageSizeModel
    page: int = Field(1, description="Page to project; rectangles on other pages are ignored")
    scale: float = Field(1.0, gt=0, description="Pixels per point")
    rotation: int = Field(0, description="Clockwise page rotation (multiple of 90)")


class OverlayBoxResponse(BaseModel):
    """Pixel-space box, top-left origin."""

    id: str
    page: int
    left: float
    top: float
    width: float
    height: float
    label: Optional[str] = None
    color: Optional[str] = None


class PageOverlayResponse(BaseModel):
    """Overlay boxes for one page."""

    page: int
    width: float
    height: float
    boxes: List[OverlayBoxResponse] = Field(default_factory=list)
    skipped: int = 0


class IngestResponse(BaseModel):
    """Rectangles extracted from an analysis document."""

    total: int
    rectangles: List[RectangleModel] = Field(default_factory=list)


class OverlayDocumentResponse(BaseModel):
    """Response model for whole-document overlays."""

    filename: str
    scale: float
    rectangle_count: int
    pages: List[PageOverlayResponse] = Field(default_factory=list)


class ErrorResponse(BaseModel):
    """Error response model."""

    error: str = Field(..., description="Error message")
    detail: Optional[Any] = Field(None, description="Optional error details")
