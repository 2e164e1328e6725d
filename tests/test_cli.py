"""Unit tests for CLI interface."""

import json
from pathlib import Path
from unittest.mock import patch

import pytest

from bbox_overlay.cli.main import OverlayProcessingError, load_rectangle_file, main, process_overlays
from bbox_overlay.cli.self_check import check_geometry
from bbox_overlay.config.profile_manager import reset_profile
from bbox_overlay.errors import IngestionParseError
from bbox_overlay.models.rectangle import SequentialIdGenerator
from bbox_overlay.pipeline.rectangle_store import RectangleStore

ANALYSIS = {
    "analysisResult": [
        {"matchingWords": [
            {"page": 1, "words": [
                {"name": "Total", "page": 1, "polygon": [1, 1, 3, 1, 3, 2, 1, 2]},
                {"name": "Broken", "page": 1, "polygon": None},
            ]},
            {"page": 2, "words": [
                {"name": "Date", "polygon": [0.5, 0.5, 2, 0.5, 2, 1, 0.5, 1]},
            ]},
        ]}
    ]
}


def _make_minimal_pdf(path: Path, pages: int = 2) -> None:
    """Minimal PDF that pdfplumber and pymupdf can read."""
    import fitz
    doc = fitz.open()
    for _ in range(pages):
        doc.new_page(width=612, height=792)
    doc.save(str(path))
    doc.close()


@pytest.fixture(autouse=True)
def _default_profile(monkeypatch):
    monkeypatch.delenv("BBOX_OVERLAY_SCALE", raising=False)
    monkeypatch.delenv("BBOX_OVERLAY_PROFILE", raising=False)
    reset_profile()
    yield
    reset_profile()


@pytest.fixture
def minimal_pdf_path(tmp_path):
    """A two-page Letter PDF."""
    p = tmp_path / "minimal.pdf"
    _make_minimal_pdf(p)
    return p


@pytest.fixture
def analysis_path(tmp_path):
    p = tmp_path / "analysis.json"
    p.write_text(json.dumps(ANALYSIS), encoding="utf-8")
    return p


@pytest.fixture
def temp_output_dir(tmp_path):
    """Temporary output directory."""
    d = tmp_path / "output"
    d.mkdir()
    return d


def test_process_overlays_writes_overlays_json(minimal_pdf_path, analysis_path, temp_output_dir):
    result = process_overlays(
        str(minimal_pdf_path),
        str(temp_output_dir),
        analysis_path=str(analysis_path),
        scale=1.0,
    )

    assert result["rectangle_count"] == 2
    assert result["errors"] == []
    assert [len(p.boxes) for p in result["pages"]] == [1, 1]

    overlays_path = Path(result["overlays_path"])
    assert overlays_path.name == "minimal_overlays.json"
    data = json.loads(overlays_path.read_text(encoding="utf-8"))
    assert data["pdf"] == "minimal.pdf"
    assert data["scale"] == 1.0
    assert len(data["rectangles"]) == 2
    box = data["pages"][0]["boxes"][0]
    assert box["label"] == "Total"
    assert (box["left"], box["top"], box["width"], box["height"]) == pytest.approx((72, 72, 144, 72))


def test_process_overlays_with_png(minimal_pdf_path, analysis_path, temp_output_dir):
    result = process_overlays(
        str(minimal_pdf_path),
        str(temp_output_dir),
        analysis_path=str(analysis_path),
        scale=1.0,
        write_png=True,
    )
    assert len(result["images"]) == 2
    assert all(Path(p).exists() for p in result["images"])
    assert Path(result["images"][0]).name == "minimal_page_1_overlay.png"


def test_process_overlays_keeps_store_on_bad_json(minimal_pdf_path, temp_output_dir, tmp_path):
    bad = tmp_path / "bad.json"
    bad.write_text("{not json", encoding="utf-8")
    store = RectangleStore(id_generator=SequentialIdGenerator())
    store.create(page=1, x=1, y=1, width=1, height=1)

    result = process_overlays(
        str(minimal_pdf_path), str(temp_output_dir), analysis_path=str(bad), store=store
    )

    assert result["rectangle_count"] == 1
    assert len(result["errors"]) == 1
    assert "Could not parse JSON" in result["errors"][0]


def test_process_overlays_reports_undecodable_json(minimal_pdf_path, temp_output_dir, tmp_path):
    bad = tmp_path / "latin1.json"
    bad.write_bytes(b'{"analysisResult": "\xff\xfe"}')
    store = RectangleStore(id_generator=SequentialIdGenerator())
    store.create(page=1, x=1, y=1, width=1, height=1)

    result = process_overlays(
        str(minimal_pdf_path), str(temp_output_dir), analysis_path=str(bad), rects_path=str(bad), store=store
    )

    assert result["rectangle_count"] == 1
    assert len(result["errors"]) == 2
    assert all("Could not parse JSON" in e for e in result["errors"])


def test_process_overlays_scale_from_env(minimal_pdf_path, temp_output_dir, monkeypatch):
    monkeypatch.setenv("BBOX_OVERLAY_SCALE", "2")
    result = process_overlays(str(minimal_pdf_path), str(temp_output_dir))
    assert result["pages"][0].width == pytest.approx(1224)


def test_process_overlays_missing_pdf(tmp_path, temp_output_dir):
    with pytest.raises(OverlayProcessingError):
        process_overlays(str(tmp_path / "missing.pdf"), str(temp_output_dir))


def test_load_rectangle_file(tmp_path):
    p = tmp_path / "rects.json"
    p.write_text(json.dumps({"rectangles": [
        {"id": "a", "page": 1, "x": 72, "y": 72, "width": 10, "height": 10, "unit": "pdf"},
        {"page": 2, "x": 0.1, "y": 0.1, "width": 0.2, "height": 0.2, "unit": "ratio"},
        {"id": "bad", "x": 1},
        "not a record",
    ]}), encoding="utf-8")
    store = RectangleStore(id_generator=SequentialIdGenerator())

    assert load_rectangle_file(str(p), store) == 2
    assert [r.id for r in store] == ["a", "rect-1"]


def test_load_rectangle_file_skips_out_of_range_record(tmp_path):
    p = tmp_path / "rects.json"
    p.write_text(
        '[{"id": "huge", "x": 1' + "0" * 400 + ', "y": 1, "width": 1, "height": 1},'
        ' {"id": "ok", "x": 1, "y": 1, "width": 1, "height": 1}]',
        encoding="utf-8",
    )
    store = RectangleStore()
    assert load_rectangle_file(str(p), store) == 1
    assert [r.id for r in store] == ["ok"]


def test_load_rectangle_file_invalid_utf8(tmp_path):
    p = tmp_path / "rects.json"
    p.write_bytes(b"[\xff]")
    with pytest.raises(IngestionParseError, match="Could not parse JSON"):
        load_rectangle_file(str(p), RectangleStore())


def test_load_rectangle_file_plain_list(tmp_path):
    p = tmp_path / "rects.json"
    p.write_text(json.dumps([{"x": 1, "y": 1, "width": 1, "height": 1}]), encoding="utf-8")
    store = RectangleStore()
    assert load_rectangle_file(str(p), store) == 1


def test_main_success(minimal_pdf_path, analysis_path, temp_output_dir, capsys):
    with pytest.raises(SystemExit) as exc:
        main([
            "--pdf", str(minimal_pdf_path),
            "--json", str(analysis_path),
            "--output", str(temp_output_dir),
            "--scale", "1.0",
        ])
    assert exc.value.code == 0
    out = capsys.readouterr().out
    assert "2 rectangle(s), 2 drawn on 2 page(s)" in out
    assert (temp_output_dir / "minimal_overlays.json").exists()


def test_main_reports_bad_json_and_continues(minimal_pdf_path, temp_output_dir, tmp_path, capsys):
    bad = tmp_path / "bad.json"
    bad.write_text("[", encoding="utf-8")
    with pytest.raises(SystemExit) as exc:
        main(["--pdf", str(minimal_pdf_path), "--json", str(bad), "--output", str(temp_output_dir)])
    assert exc.value.code == 0
    assert "Warning:" in capsys.readouterr().err


def test_main_missing_pdf(tmp_path, capsys):
    with pytest.raises(SystemExit) as exc:
        main(["--pdf", str(tmp_path / "missing.pdf"), "--output", str(tmp_path)])
    assert exc.value.code == 1
    assert "Error:" in capsys.readouterr().err


def test_main_unknown_profile(minimal_pdf_path, tmp_path, capsys):
    with pytest.raises(SystemExit) as exc:
        main(["--pdf", str(minimal_pdf_path), "--output", str(tmp_path), "--profile", "nope"])
    assert exc.value.code == 1
    assert "Profile not found" in capsys.readouterr().err


@patch("bbox_overlay.cli.main.process_overlays")
def test_main_passes_arguments(mock_process, minimal_pdf_path, tmp_path):
    mock_process.return_value = {
        "rectangle_count": 0,
        "pages": [],
        "overlays_path": str(tmp_path / "x.json"),
        "images": [],
        "errors": [],
    }
    with pytest.raises(SystemExit):
        main(["--pdf", str(minimal_pdf_path), "--output", str(tmp_path), "--png", "--scale", "2"])
    mock_process.assert_called_once_with(
        str(minimal_pdf_path),
        str(tmp_path),
        analysis_path=None,
        rects_path=None,
        scale=2.0,
        write_png=True,
    )


def test_check_geometry_passes():
    results = check_geometry()
    assert [name for name, ok, _ in results if not ok] == []
    assert "inch -> pdf flip" in [name for name, _, _ in results]


@patch("bbox_overlay.cli.self_check.check_dependencies", return_value=[])
def test_main_self_check(_mock_deps, capsys):
    with pytest.raises(SystemExit) as exc:
        main(["--self-check"])
    assert exc.value.code == 0
    out = capsys.readouterr().out
    assert "PASS  ratio -> pdf flip" in out
    assert "All checks passed." in out


@patch("bbox_overlay.cli.self_check.check_dependencies", return_value=[("pymupdf (fitz)", False, "Missing: fitz")])
def test_main_self_check_reports_failure(_mock_deps, capsys):
    with pytest.raises(SystemExit) as exc:
        main(["--self-check"])
    assert exc.value.code == 1
    assert "FAIL  pymupdf (fitz)" in capsys.readouterr().out


def test_main_requires_pdf(capsys):
    with pytest.raises(SystemExit) as exc:
        main([])
    assert exc.value.code == 2
    assert "--pdf is required" in capsys.readouterr().err
