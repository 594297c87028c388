"""
PDF bytes -> positioned tokens per page (parser adapter).

- Uses pdfplumber to walk pages and words.
- Emits one list of `PositionedToken` per page, in whatever order pdfplumber
  yields them. Row grouping happens later in app.util.layout.
- This is the default `extract_tokens` capability handed to InvoiceIngestor;
  anything with the same signature (bytes -> list of token lists) can replace it.
"""

import io
from typing import List

import pdfplumber

from app.models.schemas import PositionedToken
from app.util.logger import get_logger


def extract_page_tokens(data: bytes) -> List[List[PositionedToken]]:
    """
    Read a PDF from memory and return its word tokens, page by page.

    Notes/assumptions:
    - x is the word's left edge (x0), y its top edge (grows downward).
    - No layout inference here; just surface what the PDF gives us.

    Returns:
        List[List[PositionedToken]]: one inner list per page, 1-based page numbers on tokens.
    """
    logger = get_logger(__name__)
    pages: List[List[PositionedToken]] = []
    try:
        with pdfplumber.open(io.BytesIO(data)) as pdf:
            logger.info(f"Opened PDF with {len(pdf.pages)} pages")
            for p_idx, page in enumerate(pdf.pages, start=1):
                words = page.extract_words(
                    keep_blank_chars=False,
                    x_tolerance=2,   # horizontal merge tolerance
                    y_tolerance=3    # vertical grouping tolerance
                ) or []
                logger.debug(f"Page {p_idx}: extracted {len(words)} words")
                pages.append([
                    PositionedToken(text=w["text"], x=float(w["x0"]), y=float(w["top"]), page=p_idx)
                    for w in words
                ])
    except Exception as e:
        logger.error(f"Error reading PDF bytes: {e}")
        raise

    logger.info(f"Extracted {sum(len(p) for p in pages)} tokens across {len(pages)} pages")
    return pages
