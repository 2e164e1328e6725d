"""Built-in geometry checks and dependency report (``bbox-overlay --self-check``)."""

from __future__ import annotations

import json
import math
import sys
from typing import List, Tuple

from ..models.rectangle import PageSize, Rectangle, RectUnit, SequentialIdGenerator
from ..pipeline.ingestion import polygons_to_rects
from ..pipeline.space_converter import to_page_space
from ..pipeline.viewport import AffineViewport, from_viewport_box, to_viewport_box

# Letter (8.5x11in)
LETTER = PageSize(width=612, height=792)
TOLERANCE = 1e-3


def _close(got, expected) -> bool:
    return all(math.isclose(g, e, abs_tol=TOLERANCE) for g, e in zip(got, expected))


def _bounds_check(name: str, rect: Rectangle, expected: Tuple[float, float, float, float]) -> Tuple[str, bool, str]:
    bounds = to_page_space(rect, LETTER)
    got = (bounds.left, bounds.right, bounds.bottom, bounds.top)
    details = json.dumps({"got": got, "expected": expected})
    return (name, _close(got, expected), details)


def check_geometry() -> List[Tuple[str, bool, str]]:
    """Known-value conversions on a Letter page. Returns list of (name, ok, details)."""
    results: List[Tuple[str, bool, str]] = []

    # left, right, bottom, top
    results.append(_bounds_check(
        "inch -> pdf flip",
        Rectangle(id="t1", page=1, x=1, y=1, width=2, height=1, unit=RectUnit.INCH),
        (72, 216, 648, 720),
    ))
    results.append(_bounds_check(
        "ratio -> pdf flip",
        Rectangle(id="t2", page=1, x=0.5, y=0.5, width=0.25, height=0.25, unit=RectUnit.RATIO),
        (306, 459, 198, 396),
    ))
    results.append(_bounds_check(
        "pdf passthrough",
        Rectangle(id="t3", page=1, x=10, y=20, width=30, height=40, unit=RectUnit.PDF),
        (10, 40, 20, 60),
    ))

    rects = polygons_to_rects(
        [
            {"page": 1, "polygon": [1, 1, 3, 1, 3, 2, 1, 2]},
            {"page": 2, "polygon": [0, 0, 1, 0, 1, 1, 0, 1]},
        ],
        unit=RectUnit.INCH,
        id_generator=SequentialIdGenerator(prefix="t"),
    )
    first = (rects[0].x, rects[0].y, rects[0].width, rects[0].height)
    results.append((
        "polygons -> rects",
        len(rects) == 2 and _close(first, (1, 1, 2, 1)),
        json.dumps({"count": len(rects), "first": first}),
    ))

    rect = Rectangle(id="t4", page=1, x=1, y=1, width=2, height=1)
    viewport = AffineViewport.for_page(LETTER, scale=1.5, rotation=90)
    box = to_viewport_box(rect, viewport, LETTER)
    back = from_viewport_box(box, viewport, LETTER, RectUnit.INCH)
    results.append((
        "viewport round trip (rotation 90)",
        _close(back, (1, 1, 2, 1)),
        json.dumps({"box": box.to_dict(), "back": back}),
    ))

    return results


def check_dependencies() -> List[Tuple[str, bool, str]]:
    """Check rendering and GUI libraries. Returns list of (name, ok, message)."""
    results: List[Tuple[str, bool, str]] = []

    try:
        import pdfplumber  # noqa: F401
        results.append(("pdfplumber", True, "OK"))
    except ImportError as e:
        results.append(("pdfplumber", False, f"Missing: {e}"))

    try:
        import fitz  # noqa: F401  pymupdf
        results.append(("pymupdf (fitz)", True, "OK"))
    except ImportError as e:
        results.append(("pymupdf (fitz)", False, f"Missing: {e}"))

    try:
        from PIL import Image  # noqa: F401
        results.append(("Pillow (PIL)", True, "OK"))
    except ImportError as e:
        results.append(("Pillow (PIL)", False, f"Missing: {e}"))

    try:
        from PySide6 import QtCore  # noqa: F401
        results.append(("PySide6 (GUI)", True, "OK"))
    except ImportError as e:
        results.append(("PySide6 (GUI)", False, f"Missing: {e}"))

    return results


def run_check(verbose: bool = True) -> bool:
    """Run geometry and dependency checks, print report, return True if all pass."""
    results = check_geometry() + check_dependencies()
    failed = [name for name, ok, _ in results if not ok]

    if verbose:
        print("bbox-overlay self-check\n")
        for name, ok, details in results:
            status = "PASS" if ok else "FAIL"
            if ok and details == "OK":
                print(f"  {status}  {name}")
            else:
                print(f"  {status}  {name}  {details}")
        print()
        if failed:
            print(f"{len(failed)} of {len(results)} check(s) failed.")
        else:
            print("All checks passed.")

    return not failed


if __name__ == "__main__":
    success = run_check(verbose=True)
    sys.exit(0 if success else 1)
