"""Ingestion of word polygons from document-intelligence analysis JSON.

Expected (but unenforced) shape::

    {"analysisResult": [{"matchingWords": [
        {"page": 1, "words": [{"name": "Total", "page": 1,
                                "polygon": [x1, y1, x2, y2, x3, y3, x4, y4]}]}
    ]}]}

Polygons are in inches with a top-left origin. Every node may be missing or
of the wrong type; such nodes contribute no rectangles instead of failing the
document.
"""

from __future__ import annotations

import json
import logging
import math
from pathlib import Path
from typing import Any, Iterable, List, Mapping, Optional, Sequence, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from ..errors import IngestionParseError, MalformedPolygon
from ..models.rectangle import IdGenerator, Rectangle, RectUnit, uuid_id_generator

logger = logging.getLogger(__name__)

POLYGON_VALUES = 8

# Unit of the analysis JSON polygons
ANALYSIS_UNIT = RectUnit.INCH


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _finite_float(value: Any) -> Optional[float]:
    """Return value as a finite float, or None (JSON integers may exceed float range)."""
    if not _is_number(value):
        return None
    try:
        number = float(value)
    except OverflowError:
        return None
    return number if math.isfinite(number) else None


def _coerce_page(value: Any) -> Optional[int]:
    """Return a positive integer page number, or None when unusable."""
    if not _is_number(value):
        return None
    if isinstance(value, float):
        if not value.is_integer():
            return None
        value = int(value)
    return value if value >= 1 else None


def _dict_items(value: Any) -> List[dict]:
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, dict)]


class Word(BaseModel):
    """A word with optional label, page and polygon."""

    model_config = ConfigDict(extra="ignore")

    name: Optional[str] = None
    page: Optional[int] = None
    polygon: Optional[List[float]] = None

    @field_validator("name", mode="before")
    @classmethod
    def _name(cls, value: Any) -> Optional[str]:
        return value if isinstance(value, str) else None

    @field_validator("page", mode="before")
    @classmethod
    def _page(cls, value: Any) -> Optional[int]:
        return _coerce_page(value)

    @field_validator("polygon", mode="before")
    @classmethod
    def _polygon(cls, value: Any) -> Optional[List[float]]:
        if not isinstance(value, list) or len(value) < POLYGON_VALUES:
            return None
        head = [_finite_float(v) for v in value[:POLYGON_VALUES]]
        if any(v is None for v in head):
            return None
        return head


class MatchingWordGroup(BaseModel):
    """Words matched on one page."""

    model_config = ConfigDict(extra="ignore")

    page: Optional[int] = None
    words: List[Word] = Field(default_factory=list)

    @field_validator("page", mode="before")
    @classmethod
    def _page(cls, value: Any) -> Optional[int]:
        return _coerce_page(value)

    @field_validator("words", mode="before")
    @classmethod
    def _words(cls, value: Any) -> List[dict]:
        return _dict_items(value)


class AnalysisResult(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    matching_words: List[MatchingWordGroup] = Field(default_factory=list, alias="matchingWords")

    @field_validator("matching_words", mode="before")
    @classmethod
    def _groups(cls, value: Any) -> List[dict]:
        return _dict_items(value)


class AnalysisDocument(BaseModel):
    """Top-level analysis JSON document."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    analysis_result: List[AnalysisResult] = Field(default_factory=list, alias="analysisResult")

    @field_validator("analysis_result", mode="before")
    @classmethod
    def _results(cls, value: Any) -> List[dict]:
        return _dict_items(value)


def polygon_to_rect(
    polygon: Sequence[float],
    page: int = 1,
    label: Optional[str] = None,
    unit: RectUnit = ANALYSIS_UNIT,
    id_generator: Optional[IdGenerator] = None,
) -> Rectangle:
    """Convert a 4-point polygon to the axis-aligned Rectangle enclosing it.

    The polygon may be a skewed quadrilateral; only its bounding box is kept.
    This is the strict path for programmatic construction: bad input is a
    caller bug and raises.

    Args:
        polygon: [x1, y1, x2, y2, x3, y3, x4, y4] (extra values ignored)
        page: 1-based page number
        label: Optional label
        unit: Unit the polygon coordinates are in
        id_generator: Id source (random UUID by default)

    Returns:
        Rectangle with x/y at the minimum corner

    Raises:
        MalformedPolygon: If polygon is not a sequence of at least 8 finite numbers
    """
    if isinstance(polygon, (str, bytes)) or not isinstance(polygon, Sequence):
        raise MalformedPolygon(
            f"Polygon must be a sequence of {POLYGON_VALUES} numbers, got {type(polygon).__name__}"
        )
    if len(polygon) < POLYGON_VALUES:
        raise MalformedPolygon(
            f"Polygon must have 4 points ({POLYGON_VALUES} values), got {len(polygon)}"
        )
    head = [_finite_float(v) for v in polygon[:POLYGON_VALUES]]
    if any(v is None for v in head):
        bad = [i for i, v in enumerate(head) if v is None]
        raise MalformedPolygon(f"Polygon values must be finite numbers (bad index {bad})")

    xs = head[0::2]
    ys = head[1::2]
    min_x, max_x = min(xs), max(xs)
    min_y, max_y = min(ys), max(ys)
    return Rectangle(
        id=(id_generator or uuid_id_generator)(),
        page=page,
        x=float(min_x),
        y=float(min_y),
        width=float(max_x - min_x),
        height=float(max_y - min_y),
        unit=unit,
        label=label,
    )


def polygons_to_rects(
    items: Iterable[Mapping[str, Any]],
    unit: RectUnit = ANALYSIS_UNIT,
    id_generator: Optional[IdGenerator] = None,
) -> List[Rectangle]:
    """Convert items with ``page``, ``polygon`` and optional ``label`` to Rectangles.

    Raises:
        MalformedPolygon: If any item's polygon is malformed
    """
    rects = []
    for item in items:
        rects.append(
            polygon_to_rect(
                item.get("polygon"),
                page=item.get("page", 1),
                label=item.get("label"),
                unit=unit,
                id_generator=id_generator,
            )
        )
    return rects


def parse_analysis_result(document: Any, id_generator: Optional[IdGenerator] = None) -> List[Rectangle]:
    """Extract word rectangles from an analysis JSON document (lenient).

    Words without a usable polygon are skipped. Page falls back from the word
    to its group, then to the group's first word, then to page 1.

    Args:
        document: Decoded JSON (any type)
        id_generator: Id source (random UUID by default)

    Returns:
        Rectangles in inch units, in document order (possibly empty)
    """
    if not isinstance(document, dict):
        logger.debug("Analysis document is %s, not an object; no rectangles", type(document).__name__)
        return []

    try:
        parsed = AnalysisDocument.model_validate(document)
    except ValidationError as e:
        logger.warning("Analysis document could not be validated, no rectangles: %s", e)
        return []

    generate = id_generator or uuid_id_generator
    rects: List[Rectangle] = []
    skipped = 0
    for result in parsed.analysis_result:
        for group in result.matching_words:
            group_page = group.page
            if group_page is None and group.words:
                group_page = group.words[0].page
            for word in group.words:
                if word.polygon is None:
                    skipped += 1
                    continue
                rects.append(
                    polygon_to_rect(
                        word.polygon,
                        page=word.page or group_page or 1,
                        label=word.name,
                        unit=ANALYSIS_UNIT,
                        id_generator=generate,
                    )
                )

    if skipped:
        logger.debug("Skipped %d word(s) without a usable polygon", skipped)
    logger.info("Ingested %d rectangle(s) from analysis document", len(rects))
    return rects


def parse_analysis_json(
    text: Union[str, bytes],
    id_generator: Optional[IdGenerator] = None,
) -> List[Rectangle]:
    """Parse analysis JSON text into rectangles.

    Raises:
        IngestionParseError: If the text is not valid JSON
    """
    try:
        document = json.loads(text)
    except (TypeError, ValueError) as e:
        raise IngestionParseError(f"Could not parse JSON: {e}") from e
    return parse_analysis_result(document, id_generator=id_generator)


def load_analysis_file(path: Union[str, Path], id_generator: Optional[IdGenerator] = None) -> List[Rectangle]:
    """Read an analysis JSON file into rectangles.

    The raw bytes go to the JSON decoder, so an undecodable file is reported
    like any other unparsable JSON.

    Raises:
        FileNotFoundError: If path does not exist
        IngestionParseError: If the file is not valid JSON
    """
    json_path = Path(path)
    if not json_path.exists():
        raise FileNotFoundError(f"Analysis JSON not found: {path}")
    return parse_analysis_json(json_path.read_bytes(), id_generator=id_generator)
