#!/usr/bin/env python3
"""
Generates sample-data/sales_register.xlsx, a POS sales register export in the
shape the analyzer is built for.

Run from the repo root after `pip install -e .`:
    python sample-data/generate_sales_register.py

Quirks baked in:
  Sheet "Sales Register"
    - Shop banner and report title above the real header (header on row 4)
    - Voucher header rows carrying date, voucher, customer and totals
    - Product detail rows with blank date and voucher cells
    - Walk-in customers recorded as "CASH PARTY"
    - A payment method typed into the customer cell (FONEPAY)
    - Grand Total footer row
  Sheet "Notes"
    - Free text that must be ignored (first sheet wins)
"""

from pathlib import Path

import openpyxl
from openpyxl.styles import Font

from sales_doctor.sample import SAMPLE_ROWS

OUTPUT = Path(__file__).parent / "sales_register.xlsx"

wb = openpyxl.Workbook()

ws = wb.active
ws.title = "Sales Register"
for row in SAMPLE_ROWS:
    ws.append(row)

# Bold banner and header so the file looks like the POS export
for cell in ws[1]:
    cell.font = Font(bold=True, size=14)
for cell in ws[4]:
    cell.font = Font(bold=True)

notes = wb.create_sheet("Notes")
notes.append(["Exported from the shop POS. Figures in NPR, VAT 13%."])

wb.save(OUTPUT)
print(f"Written: {OUTPUT}")
