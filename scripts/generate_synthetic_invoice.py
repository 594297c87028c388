from reportlab.lib.pagesizes import A4
from reportlab.pdfgen import canvas
from reportlab.lib.units import inch
import os

out_path = os.path.join(os.path.dirname(__file__), "..", "data", "raw", "synthetic_invoice.pdf")
os.makedirs(os.path.dirname(out_path), exist_ok=True)

HEADER = [
    "YODEL DELIVERY NETWORK LTD",
    "Invoice No: 100234 Date: 21 Dec 2025",
    "Supplier ID: SUP778",
    "Payment Period: 14 Dec 2025 - 20 Dec 2025",
]

WEEK_SUMMARY = [
    "Week Summary",
    "Operator Tour Delivered Collected Sacks Packets Amount",
    "DB6249 WB68 57 0 0 17 129.50",
    "DB6261 WB80 0 1 0 22 40.25",
    "Total 57 1 0 39 169.75",
    "Manual Adjustments - £ 40.00",
    "Manual Adjustments £ 62.50",
    "Total £ 192.25",
]

DAILY = [
    "Daily Breakdown",
    "Date Tour Operator Service Group Total Qty Rate Amount",
    "Sunday WB6 DB6249 Packet 17 017 @ 1.75 29.75",
    "14/12/2025 8 Regular Delivery 57 057 @ 1.75 99.75",
    "74 129.50",
    "WB8 DB6261 AdHoc/Scheduled Collections 1 001 @ 1.75 1.75",
    "0 Packet 22 022 @ 1.75 38.50",
    "23 40.25",
    "Monday",
    "15/12/2025 WB68 DB6249 Yodel Store Collection 4 3 @ 0.00 1 @ 1.50 1.50",
    "Regular Delivery 112 2 @ 0.00 110 @ 1.75 192.50",
]

ADJUSTMENTS = [
    "Manual Adjustments",
    "Date Tour Operator Parcel Id Type Amount",
    "16/12/2025 WB68 DB6249 JD0002226001 Lost Parcel - 40.00",
    "Customer complaint upheld",
    "18/12/2025 WB80 DB6261 PREMIUM Operating Payment x1.25 50.00",
    "20/12/2025 WB80 Fuel Support 12.50",
    "Total Deductions - £ 40.00",
    "Total Additional Payment £ 62.50",
]

FOOTER = [
    "Net Total £1,204.50",
    "VAT @ 20% £240.90",
    "Gross Total £1,445.40",
]


def draw_block(c, lines, y, size=9):
    # one drawString per word, 8pt apart
    for line in lines:
        x = 0.6 * inch
        for word in line.split(" "):
            c.setFont("Helvetica", size)
            c.drawString(x, y, word)
            x += c.stringWidth(word, "Helvetica", size) + 8
        y -= 14
    return y - 10


c = canvas.Canvas(out_path, pagesize=A4)
w, h = A4

y = h - 0.8 * inch
for block in (HEADER, WEEK_SUMMARY, DAILY):
    y = draw_block(c, block, y)
c.showPage()

y = h - 0.8 * inch
for block in (ADJUSTMENTS, FOOTER):
    y = draw_block(c, block, y)
c.showPage()

c.save()
print(f"Created {out_path}")
