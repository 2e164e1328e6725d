"""CLI interface: project analysis rectangles onto PDF pages and export overlays."""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Dict, List, Optional

from ..config import get_app_version, get_default_output_dir, get_default_scale
from ..config.profile_manager import get_profile, get_profile_name, reset_profile, set_profile
from ..config.settings import clamp_scale
from ..errors import IngestionParseError
from ..models.rectangle import Rectangle
from ..pipeline.ingestion import load_analysis_file
from ..pipeline.overlay_renderer import OverlayRenderer, PageOverlay
from ..pipeline.pdf_renderer import PDFRenderError, build_render_pages, render_overlay_image
from ..pipeline.reader import PDFReadError, read_pdf
from ..pipeline.rectangle_store import RectangleStore
from .self_check import run_check

logger = logging.getLogger(__name__)


class OverlayProcessingError(Exception):
    """Raised when overlay processing fails."""
    pass


def load_rectangle_file(path: str, store: RectangleStore) -> int:
    """Load a JSON list of rectangle records into the store.

    Records that fail to convert are skipped with a warning.

    Returns:
        Number of rectangles added

    Raises:
        IngestionParseError: If the file is not valid JSON
    """
    try:
        data = json.loads(Path(path).read_bytes())
    except ValueError as e:
        raise IngestionParseError(f"Could not parse JSON: {e}") from e

    records = data.get("rectangles", []) if isinstance(data, dict) else data
    if not isinstance(records, list):
        return 0

    added = 0
    for record in records:
        if not isinstance(record, dict):
            continue
        try:
            store.add(Rectangle.from_dict(record, id_generator=store.id_generator))
            added += 1
        except (KeyError, TypeError, ValueError, OverflowError) as e:
            logger.warning("Skipping rectangle record %r: %s", record.get("id"), e)
    return added


def process_overlays(
    pdf_path: str,
    output_dir: str,
    analysis_path: Optional[str] = None,
    rects_path: Optional[str] = None,
    scale: Optional[float] = None,
    write_png: bool = False,
    store: Optional[RectangleStore] = None,
) -> Dict:
    """Project rectangles onto every page of a PDF and write overlays.json.

    JSON inputs that cannot be parsed are reported in ``errors`` and the
    rectangles already gathered are kept.

    Args:
        pdf_path: Path to PDF file
        output_dir: Output directory
        analysis_path: Optional analysis JSON (word polygons in inches)
        rects_path: Optional JSON list of rectangle records
        scale: Render scale (BBOX_OVERLAY_SCALE, then profile, when None)
        write_png: Also write annotated PNG per page
        store: Existing store to add to (new store by default)

    Returns:
        Dict with rectangle_count, pages (list of PageOverlay), overlays_path,
        images and errors

    Raises:
        OverlayProcessingError: If the PDF cannot be read or rendered
    """
    profile = get_profile()
    scale = clamp_scale(scale if scale is not None else get_default_scale(profile.scale))
    store = store if store is not None else RectangleStore()
    errors: List[str] = []

    if analysis_path:
        try:
            store.add_many(load_analysis_file(analysis_path, id_generator=store.id_generator))
        except (IngestionParseError, OSError) as e:
            errors.append(f"{analysis_path}: {e}")
            logger.warning("Could not parse JSON %s: %s", analysis_path, e)

    if rects_path:
        try:
            load_rectangle_file(rects_path, store)
        except (IngestionParseError, OSError) as e:
            errors.append(f"{rects_path}: {e}")
            logger.warning("Could not parse JSON %s: %s", rects_path, e)

    try:
        doc = read_pdf(pdf_path)
        render_pages = build_render_pages(pdf_path, scale)
    except (PDFReadError, PDFRenderError, FileNotFoundError) as e:
        raise OverlayProcessingError(str(e)) from e

    renderer = OverlayRenderer(max_workers=profile.max_workers)
    overlays: List[PageOverlay] = renderer.render(render_pages, store)

    output_path = Path(output_dir)
    output_path.mkdir(parents=True, exist_ok=True)

    images: List[str] = []
    if write_png:
        for overlay in overlays:
            page = doc.get_page(overlay.page_number)
            if page is None:
                continue
            try:
                images.append(
                    render_overlay_image(page, overlay, str(output_path), scale, profile.style)
                )
            except PDFRenderError as e:
                errors.append(str(e))
                logger.warning("%s", e)

    overlays_path = output_path / f"{Path(doc.filename).stem}_overlays.json"
    with open(overlays_path, "w", encoding="utf-8") as f:
        json.dump(
            {
                "pdf": doc.filename,
                "scale": scale,
                "rectangles": [r.to_dict() for r in store.snapshot()],
                "pages": [o.to_dict() for o in overlays],
            },
            f,
            indent=2,
            ensure_ascii=False,
        )

    return {
        "rectangle_count": len(store),
        "pages": overlays,
        "overlays_path": str(overlays_path),
        "images": images,
        "errors": errors,
    }


def main(argv: Optional[List[str]] = None):
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="bbox-overlay - Overlay extracted bounding boxes on PDF pages"
    )

    parser.add_argument(
        "--pdf",
        required=False,
        help="PDF file to overlay (required unless --self-check)"
    )

    parser.add_argument(
        "--json",
        required=False,
        help="Analysis JSON with word polygons (analysisResult/matchingWords/words)"
    )

    parser.add_argument(
        "--rects",
        required=False,
        help="JSON list of rectangle records (id, page, x, y, width, height, unit, label, color)"
    )

    parser.add_argument(
        "--scale",
        type=float,
        default=None,
        help="Render scale, pixels per point, 0.5-3.0 (default: BBOX_OVERLAY_SCALE or profile)"
    )

    parser.add_argument(
        "--output",
        required=False,
        help="Output directory (default: ./out)"
    )

    parser.add_argument(
        "--png",
        action="store_true",
        help="Write an annotated PNG per page"
    )

    parser.add_argument(
        "--profile",
        type=str,
        default=None,
        help="Configuration profile name (default: BBOX_OVERLAY_PROFILE or default)"
    )

    parser.add_argument(
        "--self-check",
        action="store_true",
        help="Run built-in geometry and dependency checks and exit"
    )

    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable verbose output"
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {get_app_version()}"
    )

    args = parser.parse_args(argv)

    if args.self_check:
        sys.exit(0 if run_check(verbose=True) else 1)
    if not args.pdf:
        parser.error("--pdf is required")

    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    output_dir = args.output
    if not output_dir:
        output_dir = str(get_default_output_dir())
        print(f"Using default output directory: {output_dir}")

    try:
        if args.profile:
            try:
                set_profile(args.profile)
            except FileNotFoundError:
                if args.profile != "default":
                    raise
                # Built-in defaults when no profile files are shipped
                reset_profile()
        logger.info("Using profile %s", get_profile_name())
        result = process_overlays(
            args.pdf,
            output_dir,
            analysis_path=args.json,
            rects_path=args.rects,
            scale=args.scale,
            write_png=args.png,
        )
    except Exception as e:
        print(f"Error: {str(e)}", file=sys.stderr)
        sys.exit(1)

    for error in result["errors"]:
        print(f"Warning: {error}", file=sys.stderr)

    drawn = sum(len(p.boxes) for p in result["pages"])
    print(
        f"Done: {result['rectangle_count']} rectangle(s), "
        f"{drawn} drawn on {len(result['pages'])} page(s)."
    )
    print(f"Overlays: {result['overlays_path']}")
    for image in result["images"]:
        print(f"Image: {image}")

    sys.exit(0)


if __name__ == "__main__":
    main()
