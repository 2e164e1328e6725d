"""FastAPI application exposing the overlay geometry engine."""

import logging
import tempfile
from pathlib import Path
from typing import Optional

from fastapi import FastAPI, File, Form, HTTPException, Request, UploadFile

from ..config import get_app_name, get_app_version
from ..config.settings import clamp_scale
from ..errors import IngestionParseError, InvalidPageGeometry
from ..models.rectangle import PageSize, Rectangle, uuid_id_generator
from ..pipeline.ingestion import parse_analysis_json
from ..pipeline.overlay_renderer import OverlayRenderer, PageOverlay, project_page
from ..pipeline.pdf_renderer import PDFRenderError, build_render_pages
from ..pipeline.rectangle_store import RectangleStore
from ..pipeline.space_converter import to_page_space
from ..pipeline.viewport import AffineViewport
from .models import (
    ConvertRequest,
    IngestResponse,
    OverlayBoxResponse,
    OverlayDocumentResponse,
    PageBoundsResponse,
    PageOverlayResponse,
    ProjectRequest,
    RectangleModel,
)

logger = logging.getLogger(__name__)

app = FastAPI(
    title="bbox-overlay API",
    description="Convert extracted bounding boxes to page space and pixel space",
    version=get_app_version(),
)


def _to_rectangle(model: RectangleModel) -> Rectangle:
    return Rectangle(
        id=model.id or uuid_id_generator(),
        page=model.page,
        x=model.x,
        y=model.y,
        width=model.width,
        height=model.height,
        unit=model.unit,
        label=model.label,
        color=model.color,
    )


def _to_model(rect: Rectangle) -> RectangleModel:
    return RectangleModel(**rect.to_dict())


def _page_overlay_response(overlay: PageOverlay) -> PageOverlayResponse:
    return PageOverlayResponse(
        page=overlay.page_number,
        width=overlay.width,
        height=overlay.height,
        boxes=[OverlayBoxResponse(**box.to_dict()) for box in overlay.boxes],
        skipped=overlay.skipped,
    )


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "message": get_app_name(),
        "version": get_app_version(),
        "docs": "/docs",
    }


@app.post("/api/convert", response_model=PageBoundsResponse)
async def convert_endpoint(request: ConvertRequest):
    """Convert one rectangle to page-space bounds (points, bottom-left origin)."""
    rect = _to_rectangle(request.rectangle)
    page_size = PageSize(width=request.page_size.width, height=request.page_size.height)
    try:
        bounds = to_page_space(rect, page_size)
    except InvalidPageGeometry as e:
        raise HTTPException(status_code=422, detail=str(e))
    return PageBoundsResponse(
        left=bounds.left,
        right=bounds.right,
        bottom=bounds.bottom,
        top=bounds.top,
        degenerate=bounds.is_degenerate,
    )


@app.post("/api/project", response_model=PageOverlayResponse)
async def project_endpoint(request: ProjectRequest):
    """Project the rectangles of one page into pixel space.

    Rectangles on other pages are ignored; rectangles that cannot be
    projected are counted in ``skipped``.
    """
    page_size = PageSize(width=request.page_size.width, height=request.page_size.height)
    try:
        viewport = AffineViewport.for_page(page_size, scale=request.scale, rotation=request.rotation)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))

    overlay = project_page(
        request.page,
        [_to_rectangle(r) for r in request.rectangles],
        viewport,
        page_size,
        width=viewport.width,
        height=viewport.height,
    )
    return _page_overlay_response(overlay)


@app.post("/api/ingest", response_model=IngestResponse)
async def ingest_endpoint(request: Request):
    """Extract rectangles from an analysis JSON body."""
    body = await request.body()
    try:
        rects = parse_analysis_json(body)
    except IngestionParseError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return IngestResponse(total=len(rects), rectangles=[_to_model(r) for r in rects])


@app.post("/api/overlays", response_model=OverlayDocumentResponse)
async def overlays_endpoint(
    file: UploadFile = File(...),
    analysis: Optional[UploadFile] = File(None),
    scale: float = Form(1.5),
):
    """Project analysis rectangles onto every page of an uploaded PDF.

    Args:
        file: PDF file
        analysis: Optional analysis JSON file
        scale: Render scale (pixels per point)
    """
    if not file.filename or not file.filename.lower().endswith(".pdf"):
        raise HTTPException(
            status_code=400,
            detail="File must be a PDF (.pdf extension required)"
        )

    store = RectangleStore()
    if analysis is not None:
        try:
            store.add_many(parse_analysis_json(await analysis.read()))
        except IngestionParseError as e:
            raise HTTPException(status_code=400, detail=str(e))

    scale = clamp_scale(scale)
    with tempfile.TemporaryDirectory() as tmp_dir:
        tmp_path = Path(tmp_dir) / "upload.pdf"
        tmp_path.write_bytes(await file.read())
        try:
            render_pages = build_render_pages(str(tmp_path), scale)
        except PDFRenderError as e:
            raise HTTPException(status_code=400, detail=f"Could not open PDF: {e}")

    overlays = OverlayRenderer().render(render_pages, store)

    return OverlayDocumentResponse(
        filename=file.filename,
        scale=scale,
        rectangle_count=len(store),
        pages=[_page_overlay_response(o) for o in overlays],
    )
