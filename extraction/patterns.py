"""
Centralized patterns and lookups.

- SECTION anchors: the title lines that open/close each block of the invoice.
- HEADER_PATTERNS: ordered fallback chains per header field (first match wins).
- TOUR/OPERATOR tokens: the short codes the supplier prints per route/driver.
- SERVICE_GROUPS + CATEGORY_RULES: closed label set for daily rows and the
  six quantity buckets they fold into.
- ADJUSTMENT_*: parcel-slot words that really belong to the type label, and
  the compound labels we split away from a trailing description.
- ENCODING_FIXES: byte-level junk we see in extracted text (mis-decoded £ etc).

These live here so extraction rules stay readable and we change patterns in one place.
"""

import re

# ---------- text cleanup ----------

# Mis-decoded UTF-8 that shows up in supplier PDFs ("Â£" instead of "£").
ENCODING_FIXES = {
    "\u00c2\u00a3": "\u00a3",   # "Â£" -> "£"
    "\u00c3\u201a": "",
    "\u00a0": " ",
    "\u2007": " ",
    "\u202f": " ",
    "\u2013": "-",
    "\u2212": "-",
}

CURRENCY_SYMBOLS = "£€$"

# ---------- dates ----------

MONTHS = ["jan", "feb", "mar", "apr", "may", "jun", "jul", "aug", "sep", "oct", "nov", "dec"]

TEXT_DATE = r"\d{1,2}\s+[A-Za-z]{3}\s+\d{2,4}"          # 7 Dec 2025 / 7 Dec 25
SLASH_DATE = r"\d{1,2}/\d{1,2}/\d{2,4}"                  # 14/12/2025 (day first)

TEXT_DATE_PAT = re.compile(r"^(\d{1,2})\s+([A-Za-z]{3})\s+(\d{2,4})$")
SLASH_DATE_PAT = re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{2,4})$")

# ---------- money ----------

MONEY = r"[\d,]+\.\d{2}"
SIGNED_MONEY = r"-?\s*[£]?\s*[\d,]+\.\d{2}"
MONEY_AT_END_PAT = re.compile(rf"({MONEY})\s*$")

# ---------- section anchors (matched against whole lines) ----------

WEEK_SUMMARY_ANCHOR = re.compile(r"^Week\s+Summary\b", re.IGNORECASE)
DAILY_BREAKDOWN_ANCHOR = re.compile(r"^Daily\s+Breakdown\b", re.IGNORECASE)
# The week summary also has "Manual Adjustments - £ 40.00" lines; only a bare title opens the section.
MANUAL_ADJUSTMENTS_ANCHOR = re.compile(r"^Manual\s+Adjustments\b(?!.*\d\.\d{2})", re.IGNORECASE)

SECTION_ANCHORS = {
    "week_summary": WEEK_SUMMARY_ANCHOR,
    "daily_breakdown": DAILY_BREAKDOWN_ANCHOR,
    "manual_adjustments": MANUAL_ADJUSTMENTS_ANCHOR,
}

# Lines that close the adjustment detail block (the totals footer).
ADJUSTMENT_TERMINATOR_PAT = re.compile(
    r"Total\s+Deductions|Total\s+Additional\s+Payment|Manual\s+Adjustments\s+Deduction\s+Total",
    re.IGNORECASE,
)

# Repeated column-header rows inside sections
DAILY_COLUMN_HEADER_PAT = re.compile(r"^Date\s+Tour\s+Operator\s+Service\s+Group", re.IGNORECASE)
ADJUSTMENT_COLUMN_HEADER_PAT = re.compile(r"^Date\s+Tour\s+Operator\s+Parcel", re.IGNORECASE)

# ---------- header fields (ordered fallback chains) ----------

HEADER_PATTERNS = {
    "invoice_number": [
        re.compile(r"Invoice\s+No\s*:\s*([A-Z0-9-]+)", re.IGNORECASE),
        re.compile(r"\bInvoice\s+No\s*:\s*(\d+)\b", re.IGNORECASE),
        re.compile(r"\bInvoice\s+(?:Number|#)\s*:?\s*([A-Z0-9-]*\d[A-Z0-9-]*)", re.IGNORECASE),
    ],
    "invoice_date": [
        re.compile(rf"\bDate\s*:\s*({TEXT_DATE})", re.IGNORECASE),
        re.compile(rf"\bDate\s*:\s*({SLASH_DATE})", re.IGNORECASE),
    ],
    "period": [
        re.compile(rf"Payment\s+Period\s*:\s*({TEXT_DATE})\s*-\s*({TEXT_DATE})", re.IGNORECASE),
        re.compile(rf"Payment\s+Period\s*:\s*({SLASH_DATE})\s*-\s*({SLASH_DATE})", re.IGNORECASE),
    ],
    "supplier_id": [
        re.compile(r"Supplier\s+ID\s*:\s*([A-Z0-9]+)", re.IGNORECASE),
    ],
    "provider": [
        re.compile(r"\b(YODEL|ROYAL\s+MAIL|DPD|HERMES)\b", re.IGNORECASE),
    ],
    "net_total": [
        re.compile(rf"Net\s+Total\s*[{CURRENCY_SYMBOLS}]?\s*({MONEY})", re.IGNORECASE),
        re.compile(rf"Net\s+Total[^\d]*({MONEY})", re.IGNORECASE),
    ],
    "vat": [
        re.compile(rf"VAT\s*@\s*[\d.]+%\s*[{CURRENCY_SYMBOLS}]?\s*({MONEY})", re.IGNORECASE),
        re.compile(rf"VAT\s*@\s*20(?:\.00)?%\s*[^\d]*({MONEY})", re.IGNORECASE),
        re.compile(rf"VAT[^\d]*({MONEY})", re.IGNORECASE),
    ],
    "gross_total": [
        re.compile(rf"Gross\s+Total\s*[{CURRENCY_SYMBOLS}]?\s*({MONEY})", re.IGNORECASE),
        re.compile(rf"Gross\s+Total[^\d]*({MONEY})", re.IGNORECASE),
    ],
}

DEFAULT_PROVIDER = "YODEL"

# ---------- route / driver codes ----------

OPERATOR_TOKEN_PAT = re.compile(r"\b([A-Z]{2}\d{4,6})\b")
TOUR_PREFIX_PAT = re.compile(r"\b((?:WB|WD)\d{1,2})\b", re.IGNORECASE)      # WB6
TOUR_FULL_PAT = re.compile(r"\b((?:WB|WD)\d{2,3})\b", re.IGNORECASE)        # WB68
LEADING_TOUR_PREFIX_PAT = re.compile(r"^((?:WB|WD)\d{1,2})\b", re.IGNORECASE)
SUFFIX_DIGIT_PAT = re.compile(r"^(\d)\b")

# ---------- week summary ----------

# DB6249 WB43 64 2 0 16 102.50
WEEKLY_ROW_PAT = re.compile(
    rf"\b([A-Z]{{2}}\d{{4,6}})\s+([A-Z]{{2}}\d{{2,3}})\s+(\d+)\s+(\d+)\s+(\d+)\s+(\d+)\s+({MONEY})\b"
)

ADJUSTMENT_SUMMARY_PATTERNS = {
    "pre_adj_total": [
        re.compile(rf"^Total\s+\d+\s+\d+\s+\d+\s+\d+\s+[£]?\s*({MONEY})", re.IGNORECASE),
    ],
    "manual_adj_minus": [
        re.compile(rf"^Manual\s+Adjustments\s*-\s*[£]?\s*({MONEY})", re.IGNORECASE),
    ],
    "manual_adj_plus": [
        re.compile(rf"^Manual\s+Adjustments\s*[£]\s*({MONEY})", re.IGNORECASE),
        re.compile(rf"^Manual\s+Adjustments\s*\+\s*[£]?\s*({MONEY})", re.IGNORECASE),
    ],
    "post_adj_total": [
        re.compile(rf"^Total\s*[£]\s*({MONEY})", re.IGNORECASE),
    ],
}

# ---------- daily breakdown ----------

WEEKDAY_PAT = re.compile(r"^(Sunday|Monday|Tuesday|Wednesday|Thursday|Friday|Saturday)\b", re.IGNORECASE)
WEEKDAY_PREFIX_PAT = re.compile(r"^(Sunday|Monday|Tuesday|Wednesday|Thursday|Friday|Saturday)\s+", re.IGNORECASE)
DATE_LINE_PAT = re.compile(rf"^({SLASH_DATE})\b")

RATE_MARKER = "@"
RATE_PAIR_PAT = re.compile(r"(\d+)\s*@\s*([\d.]+)")
STATED_TOTAL_PAT = re.compile(r"^\s*(\d+)\s*$")

SERVICE_GROUPS = [
    "AdHoc/Scheduled Collections",
    "AdHoc Scheduled Collections",
    "Packet",
    "Regular Delivery",
    "Locker Parcel Delivery",
    "Yodel Store Collection",
    "Yodel Store Delivery",
]

SERVICE_GROUP_PAT = re.compile(
    r"\b(" + "|".join(re.escape(s) for s in SERVICE_GROUPS) + r")\b",
    re.IGNORECASE,
)

# Quantity buckets of a daily quantity record, in column order.
CATEGORY_FIELDS = [
    "adhoc_scheduled_collections_qty",
    "packet_qty",
    "regular_delivery_qty",
    "locker_parcel_delivery_qty",
    "yodel_store_collection_qty",
    "yodel_store_delivery_qty",
]

# (predicate on lowercased label, bucket); first hit wins
CATEGORY_RULES = [
    (lambda sg: "adhoc" in sg, "adhoc_scheduled_collections_qty"),
    (lambda sg: sg == "packet", "packet_qty"),
    (lambda sg: "regular" in sg, "regular_delivery_qty"),
    (lambda sg: "locker" in sg, "locker_parcel_delivery_qty"),
    (lambda sg: "yodel store collection" in sg, "yodel_store_collection_qty"),
    (lambda sg: "yodel store delivery" in sg, "yodel_store_delivery_qty"),
]

# Quantity tokens at or above this many digits are two numbers that ran together.
CONCATENATED_QTY_DIGITS = 4
# Highest split offset tried, and the "small second part" cut-off.
MAX_SPLIT_OFFSET = 3
SMALL_QTY_LIMIT = 1000

ZERO_RATE_EPS = 0.001

# ---------- manual adjustments ----------

# Capitalized words that look like a parcel id but open a type label.
ADJUSTMENT_TYPE_MODIFIERS = ["PREMIUM", "FAILED", "OPERATING", "PAYMENT", "DEDUCTION", "OBLIGATIONS", "KPI"]

_PARCEL = r"(?:[A-Z]+\d+|\d+[A-Z]+|\d+|(?-i:" + "|".join(ADJUSTMENT_TYPE_MODIFIERS) + r")\b)"

# 01/12/2025 WB43 DB6249 JD0001234567 Lost Parcel - 40.00
ADJUSTMENT_ROW_PAT = re.compile(
    r"^(?P<date>\d{1,2}/\d{1,2}/\d{4})\s+(?P<tour>[A-Z]{2}\d{2,3})\s+(?P<operator>[A-Z]{2}\d{4,6})?"
    rf"(?:\s+(?P<parcel>{_PARCEL}))?\s*(?P<type_desc>.*?)\s+(?P<amount>{SIGNED_MONEY})$",
    re.IGNORECASE,
)

# Compound type labels -> regex that finds the label inside the type/description span.
COMPOUND_ADJUSTMENT_TYPES = {
    "Premium Operating Payment": re.compile(r"Premium\s+Operating\s+Payment\s*", re.IGNORECASE),
    "Failed KPI / Obligations Deduction": re.compile(r"Failed\s+KPI\s*/\s*Obligations\s+Deduction\s*", re.IGNORECASE),
}
