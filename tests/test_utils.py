import pytest

from ats_optimizer.errors import ExtractionError
from ats_optimizer.utils import _render_page, extract_text_with_links, load_resume


def test_link_is_inlined_after_anchor_text():
    fragments = [
        ("Asha Verma", 50.0, 780.0),
        ("\n", 0.0, 0.0),
        ("GitHub", 50.0, 760.0),
        ("\n", 0.0, 0.0),
        ("Skills: Python", 50.0, 740.0),
    ]
    links = [("https://github.com/asha", (48.0, 757.0, 90.0, 770.0))]
    text = _render_page(fragments, links)
    assert text == "Asha Verma\nGitHub [Link: https://github.com/asha]\nSkills: Python"


def test_marker_stays_on_anchor_line():
    fragments = [("Portfolio\n", 50.0, 700.0), ("Next line", 50.0, 680.0)]
    links = [("https://asha.dev", (45.0, 695.0, 120.0, 712.0))]
    assert _render_page(fragments, links) == "Portfolio [Link: https://asha.dev]\nNext line"


def test_unmapped_links_are_appended_per_page():
    fragments = [("Projects", 50.0, 600.0)]
    links = [("https://example.com/demo", (300.0, 100.0, 400.0, 120.0))]
    text = _render_page(fragments, links)
    assert text == "Projects\n\n--- Links on this page ---\n[Link: https://example.com/demo]"


def test_garbage_bytes_raise_extraction_error():
    with pytest.raises(ExtractionError):
        extract_text_with_links(b"this is not a pdf")


def test_load_resume_reads_text(tmp_path):
    path = tmp_path / "cv.txt"
    path.write_text("Asha Verma\nPython developer", encoding="utf-8")
    assert load_resume(str(path)) == "Asha Verma\nPython developer"


def test_load_resume_rejects_unknown_extension(tmp_path):
    with pytest.raises(ValueError):
        load_resume(str(tmp_path / "cv.docx"))
