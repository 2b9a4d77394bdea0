from __future__ import annotations
import io
import logging
from pathlib import Path
from typing import Any, List, Tuple
from pypdf import PdfReader
from pypdf.errors import PdfReadError
from .errors import ExtractionError

Fragment = Tuple[str, float, float]
LinkBox = Tuple[str, Tuple[float, float, float, float]]

# Text baselines sit slightly inside or below the annotation box
_RECT_SLACK = 3.0


def read_text_file(path: str) -> str:
    p = Path(path)
    return p.read_text(encoding="utf-8")


def _page_links(page: Any) -> List[LinkBox]:
    links: List[LinkBox] = []
    annots = page.get("/Annots")
    if not annots:
        return links
    for annot in annots.get_object():
        obj = annot.get_object()
        if obj.get("/Subtype") != "/Link":
            continue
        action = obj.get("/A")
        action = action.get_object() if action is not None else None
        if not action or "/URI" not in action:
            continue
        uri = str(action["/URI"]).strip()
        rect = obj.get("/Rect")
        if not uri or rect is None:
            continue
        x1, y1, x2, y2 = [float(v) for v in rect]
        links.append((uri, (min(x1, x2), min(y1, y2), max(x1, x2), max(y1, y2))))
    return links


def _page_fragments(page: Any) -> List[Fragment]:
    fragments: List[Fragment] = []

    def visitor(text: str, cm: Any, tm: Any, _font_dict: Any, _font_size: Any) -> None:
        if not text:
            return
        # Text-space origin mapped through the current transformation matrix
        x = cm[0] * tm[4] + cm[2] * tm[5] + cm[4]
        y = cm[1] * tm[4] + cm[3] * tm[5] + cm[5]
        fragments.append((text, float(x), float(y)))

    page.extract_text(visitor_text=visitor)
    return fragments


def _inside(x: float, y: float, rect: Tuple[float, float, float, float]) -> bool:
    x1, y1, x2, y2 = rect
    return (x1 - _RECT_SLACK <= x <= x2 + _RECT_SLACK
            and y1 - _RECT_SLACK <= y <= y2 + _RECT_SLACK)


def _render_page(fragments: List[Fragment], links: List[LinkBox]) -> str:
    """Join page text and inline each link after the last fragment it covers."""
    inline: dict[int, List[str]] = {}
    unplaced: List[str] = []
    for uri, rect in links:
        hits = [i for i, (text, x, y) in enumerate(fragments) if text.strip() and _inside(x, y, rect)]
        if hits:
            inline.setdefault(hits[-1], []).append(uri)
        else:
            unplaced.append(uri)

    parts: List[str] = []
    for i, (text, _x, _y) in enumerate(fragments):
        parts.append(text)
        for uri in inline.get(i, []):
            stripped = text.rstrip("\n")
            # Keep the marker on the anchor's line
            if stripped != text:
                parts[-1] = stripped
                parts.append(f" [Link: {uri}]" + text[len(stripped):])
            else:
                parts.append(f" [Link: {uri}]")
    page_text = "".join(parts).strip()
    if unplaced:
        page_text += "\n\n--- Links on this page ---\n" + "\n".join(f"[Link: {u}]" for u in unplaced)
    return page_text


def extract_text_with_links(data: bytes) -> str:
    """Extract PDF text with hyperlink targets inlined as ``[Link: <url>]``."""
    try:
        reader = PdfReader(io.BytesIO(data))
        pages = []
        for page in reader.pages:
            pages.append(_render_page(_page_fragments(page), _page_links(page)))
    except (PdfReadError, ValueError, KeyError, TypeError) as e:
        raise ExtractionError(f"Failed to parse PDF file: {e}") from e
    text = "\n\n".join(p for p in pages if p).strip()
    if not text:
        raise ExtractionError("PDF contains no extractable text. It may be scanned or encrypted.")
    logging.info(f"Extracted {len(text)} characters from {len(pages)} PDF page(s)")
    return text


def load_resume(path: str) -> str:
    path_lower = path.lower()
    if path_lower.endswith(".txt") or path_lower.endswith(".md"):
        return read_text_file(path)
    if path_lower.endswith(".pdf"):
        return extract_text_with_links(Path(path).read_bytes())
    raise ValueError("Unsupported resume format. Use .pdf, .txt or .md")
