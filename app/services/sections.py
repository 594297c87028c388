"""
Split the reconstructed line stream into the invoice's sections.

- "header": everything outside a recognized section (title block + totals footer).
- "week_summary", "daily_breakdown", "manual_adjustments": from their title line
  up to the next title line. A title repeated on a later page (table continued)
  appends to the same section.
- The adjustment block also closes at its totals footer ("Total Deductions" ...).

Each list keeps the title line first so the parsers can strip it themselves.
"""

from typing import Dict, List

from extraction.patterns import ADJUSTMENT_TERMINATOR_PAT, SECTION_ANCHORS

HEADER = "header"
WEEK_SUMMARY = "week_summary"
DAILY_BREAKDOWN = "daily_breakdown"
MANUAL_ADJUSTMENTS = "manual_adjustments"


def split_sections(lines: List[str]) -> Dict[str, List[str]]:
    sections: Dict[str, List[str]] = {HEADER: [], WEEK_SUMMARY: [], DAILY_BREAKDOWN: [], MANUAL_ADJUSTMENTS: []}
    current = HEADER
    for line in lines:
        anchored = next((name for name, pat in SECTION_ANCHORS.items() if pat.match(line)), None)
        if anchored:
            current = anchored
        elif current == MANUAL_ADJUSTMENTS and ADJUSTMENT_TERMINATOR_PAT.search(line):
            current = HEADER
        sections[current].append(line)
    return sections
