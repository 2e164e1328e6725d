"""PyMuPDF rendering adapter: page geometry, viewport transforms and overlay images.

The geometry engine never touches fitz types; FitzViewport wraps a page's
PDF-to-pixel matrix behind the ViewportTransform interface.
"""

import io
import logging
from pathlib import Path
from typing import List, Optional

try:
    import fitz  # pymupdf
except ImportError:
    fitz = None

try:
    from PIL import Image, ImageDraw, ImageFont
except ImportError:
    Image = None
    ImageDraw = None
    ImageFont = None

from ..models.page import Page
from ..models.rectangle import PageSize
from ..models.style import OverlayStyle, parse_color
from .overlay_renderer import PageOverlay, RenderPage
from .viewport import Point, ViewportTransform

logger = logging.getLogger(__name__)

DEFAULT_SCALE = 1.5


class PDFRenderError(Exception):
    """Raised when PDF rendering fails."""
    pass


def _require_fitz() -> None:
    if fitz is None:
        raise ImportError(
            "pymupdf (fitz) is required for PDF rendering. "
            "Install with: pip install pymupdf"
        )


class FitzViewport(ViewportTransform):
    """Viewport transform of a PyMuPDF page at a given scale.

    Maps PDF page space (bottom-left origin) through the page's
    transformation matrix, its /Rotate matrix and the scale, which is the
    same mapping get_pixmap uses for the rendered image.
    """

    def __init__(self, fitz_page, scale: float = 1.0):
        _require_fitz()
        if scale <= 0:
            raise ValueError(f"Render scale must be positive, got {scale}")
        self.scale = float(scale)
        zoom = fitz.Matrix(self.scale, self.scale)
        self.matrix = fitz_page.transformation_matrix * fitz_page.rotation_matrix * zoom
        self.inverse = ~self.matrix
        rendered = fitz_page.rect * zoom
        self.width = rendered.width
        self.height = rendered.height
        self.rotation = fitz_page.rotation

    def to_viewport_point(self, x: float, y: float) -> Point:
        p = fitz.Point(x, y) * self.matrix
        return (p.x, p.y)

    def to_page_point(self, px: float, py: float) -> Point:
        p = fitz.Point(px, py) * self.inverse
        return (p.x, p.y)


def page_size_of(fitz_page) -> PageSize:
    """Unrotated page size (crop box) in points."""
    box = fitz_page.cropbox
    return PageSize(width=box.width, height=box.height)


def build_render_pages(pdf_path: str, scale: float = DEFAULT_SCALE) -> List[RenderPage]:
    """Collect page sizes and viewports for every page of a PDF.

    Args:
        pdf_path: Path to PDF file
        scale: Pixels per point

    Returns:
        RenderPage per page, page order

    Raises:
        PDFRenderError: If the PDF cannot be opened
        ImportError: If pymupdf (fitz) is not installed
    """
    _require_fitz()
    try:
        pdf_doc = fitz.open(str(pdf_path))
    except Exception as e:
        raise PDFRenderError(f"Failed to open {pdf_path}: {str(e)}") from e

    try:
        pages = []
        for index, fitz_page in enumerate(pdf_doc, start=1):
            viewport = FitzViewport(fitz_page, scale)
            pages.append(
                RenderPage(
                    page_number=index,
                    page_size=page_size_of(fitz_page),
                    viewport=viewport,
                    width=viewport.width,
                    height=viewport.height,
                )
            )
        return pages
    finally:
        pdf_doc.close()


def _render_pixmap(page: Page, scale: float):
    pdf_doc = fitz.open(page.document.filepath)
    try:
        # page_number is 1-indexed, fitz uses 0-indexed
        fitz_page = pdf_doc[page.page_number - 1]
        return fitz_page.get_pixmap(matrix=fitz.Matrix(scale, scale))
    finally:
        pdf_doc.close()


def render_page_to_image(page: Page, output_dir: str, scale: float = DEFAULT_SCALE) -> str:
    """Render a PDF page to PNG at the given scale.

    Args:
        page: Page object to render
        output_dir: Directory to save rendered image
        scale: Pixels per point (1.0 = 72 DPI)

    Returns:
        Path to saved image file

    Raises:
        PDFRenderError: If rendering fails (corrupt page, missing file)
        ImportError: If pymupdf (fitz) is not installed
    """
    _require_fitz()

    try:
        output_path = Path(output_dir)
        output_path.mkdir(parents=True, exist_ok=True)

        doc_filename = Path(page.document.filename).stem
        image_path = output_path / f"{doc_filename}_page_{page.page_number}.png"

        pix = _render_pixmap(page, scale)
        pix.save(str(image_path))

        page.rendered_image_path = str(image_path)
        return str(image_path)

    except Exception as e:
        raise PDFRenderError(
            f"Failed to render page {page.page_number} from {page.document.filename}: {str(e)}"
        ) from e


def draw_overlay(image, overlay: PageOverlay, style: Optional[OverlayStyle] = None):
    """Draw overlay boxes and labels onto a PIL image; returns a new RGBA image.

    Fill is translucent, so boxes are drawn on a separate layer and
    alpha-composited over the page.
    """
    if Image is None:
        raise ImportError("Pillow is required for overlay images. Install with: pip install Pillow")
    style = style or OverlayStyle()
    base = image.convert("RGBA")
    layer = Image.new("RGBA", base.size, (0, 0, 0, 0))
    draw = ImageDraw.Draw(layer)
    font = ImageFont.load_default(size=style.label_size)
    label_rgba = parse_color(style.label_color)

    for item in overlay.boxes:
        fill, stroke = style.colors_for(item.color)
        box = item.box
        draw.rectangle(
            (box.left, box.top, box.left + box.width, box.top + box.height),
            fill=fill,
            outline=stroke,
            width=style.stroke_width,
        )
        if item.label:
            draw.text((box.left + 4, box.top + 2), item.label, fill=label_rgba, font=font)

    return Image.alpha_composite(base, layer)


def render_overlay_image(
    page: Page,
    overlay: PageOverlay,
    output_dir: str,
    scale: float = DEFAULT_SCALE,
    style: Optional[OverlayStyle] = None,
) -> str:
    """Render a page with its overlay boxes drawn on top and save as PNG.

    ``overlay`` must have been projected at the same scale.

    Returns:
        Path to saved image file

    Raises:
        PDFRenderError: If rendering fails
        ImportError: If pymupdf (fitz) or Pillow is not installed
    """
    _require_fitz()
    if Image is None:
        raise ImportError("Pillow is required for overlay images. Install with: pip install Pillow")

    try:
        output_path = Path(output_dir)
        output_path.mkdir(parents=True, exist_ok=True)
        doc_filename = Path(page.document.filename).stem
        image_path = output_path / f"{doc_filename}_page_{page.page_number}_overlay.png"

        pix = _render_pixmap(page, scale)
        with Image.open(io.BytesIO(pix.tobytes("png"))) as img:
            annotated = draw_overlay(img, overlay, style)
        annotated.save(str(image_path))
        logger.debug("Wrote %s (%d boxes)", image_path, len(overlay.boxes))

        page.rendered_image_path = str(image_path)
        return str(image_path)

    except Exception as e:
        raise PDFRenderError(
            f"Failed to render overlay for page {page.page_number} "
            f"from {page.document.filename}: {str(e)}"
        ) from e
