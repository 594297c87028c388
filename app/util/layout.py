"""
Layout helpers (pure geometry) and row reconstruction.

- bucket_y(y, tol): snap a vertical coordinate to its row bucket.
- token_end(tok, char_width): rough right edge of a token (no glyph widths available).
- reconstruct_lines(pages, config): tokens -> visual rows, top-to-bottom, left-to-right.
- lines_to_text(lines): one string per row, blank line between pages.

Keeps coordinate math out of the section parsers.
"""

import math
import re
from collections import defaultdict
from typing import DefaultDict, Dict, List, Optional, Sequence

from app.models.schemas import DocumentLine, LayoutConfig, PositionedToken


def bucket_y(y: float, tol: float) -> float:
    # round half up, so jitter of +/- tol/2 lands in one bucket
    return math.floor(y / tol + 0.5) * tol


def token_end(tok: PositionedToken, char_width: float) -> float:
    return tok.x + len(tok.text) * char_width


def join_row(tokens: Sequence[PositionedToken], config: LayoutConfig) -> str:
    """
    Concatenate tokens already sorted left->right. A space goes in only where the
    gap since the previous token's estimated end exceeds the threshold; closer
    tokens are glued (that is how the PDF renders split numbers).
    """
    line = ""
    prev_end: Optional[float] = None
    for tok in tokens:
        if prev_end is not None:
            gap = tok.x - prev_end
            if gap > config.gap_threshold and not line.endswith(" "):
                line += " "
        line += tok.text
        prev_end = token_end(tok, config.char_width)
    return re.sub(r"[ \t]+", " ", line).strip()


def reconstruct_page(tokens: Sequence[PositionedToken], config: LayoutConfig, page: int = 1) -> List[DocumentLine]:
    buckets: DefaultDict[float, List[PositionedToken]] = defaultdict(list)
    for tok in tokens:
        text = (tok.text or "").strip()
        if not text:
            continue
        if text != tok.text:
            tok = tok.model_copy(update={"text": text})
        buckets[bucket_y(tok.y, config.y_tolerance)].append(tok)

    lines: List[DocumentLine] = []
    for y in sorted(buckets):
        row = sorted(buckets[y], key=lambda t: t.x)
        text = join_row(row, config)
        if text:
            lines.append(DocumentLine(page=page, y=y, tokens=row, text=text))
    return lines


def reconstruct_lines(
    pages: Sequence[Sequence[PositionedToken]], config: Optional[LayoutConfig] = None
) -> List[DocumentLine]:
    """Rows for the whole document, pages in order."""
    config = config or LayoutConfig()
    out: List[DocumentLine] = []
    for p_idx, tokens in enumerate(pages, start=1):
        out.extend(reconstruct_page(tokens, config, page=p_idx))
    return out


def lines_to_text(lines: Sequence[DocumentLine]) -> str:
    """Join rows with newlines; an empty line marks each page boundary."""
    by_page: Dict[int, List[str]] = defaultdict(list)
    for ln in lines:
        by_page[ln.page].append(ln.text)
    chunks = ["\n".join(by_page[p]) + "\n" for p in sorted(by_page)]
    return "\n".join(chunks).strip()
