"""
Picklist aggregation: one row per (pick location, SKU) across the selected orders,
split into personalized and standard families and aligned by base SKU.
"""
import datetime
import logging
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import List, Optional

from openpyxl import Workbook
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side

from order_processor import get_base_sku, is_personalized_sku

logger = logging.getLogger(__name__)

NO_LOCATION = "No Location"

# Location values the order system uses when a bin was never assigned
PLACEHOLDER_LOCATIONS = {"", "-", "N/A", "NA", "NONE", "TBD", NO_LOCATION.upper()}


@dataclass
class OrderQuantity:
    tranid: str
    order_number: str
    quantity: int


@dataclass
class PicklistRow:
    location: Optional[str]
    sku: str
    total_quantity: int = 0
    orders: List[OrderQuantity] = field(default_factory=list)

    @property
    def base_sku(self):
        return get_base_sku(self.sku)

    @property
    def personalized(self):
        return is_personalized_sku(self.sku)

    @property
    def location_label(self):
        return self.location if not is_placeholder_location(self.location) else NO_LOCATION


@dataclass
class PicklistBlock:
    """Everything picked for one base SKU: personalized rows on one side, standard on the other."""

    base_sku: str
    personalized: List[PicklistRow] = field(default_factory=list)
    standard: List[PicklistRow] = field(default_factory=list)

    @property
    def height_rows(self):
        return max(len(self.personalized), len(self.standard), 1)

    @property
    def sort_location(self):
        rows = self.personalized or self.standard
        return rows[0].location if rows else None


def is_placeholder_location(location):
    return location is None or location.strip().upper() in PLACEHOLDER_LOCATIONS


def location_sort_key(location):
    """Real locations sort alphabetically; missing or placeholder ones sort last."""
    if is_placeholder_location(location):
        return (1, "")
    return (0, location)


def aggregate_picklist(orders):
    """
    Build one PicklistRow per (pick location, SKU) pair.
    Quantities are summed and the per-order breakdown is kept in selection order.
    """
    rows = OrderedDict()
    for order in orders:
        for item in order.items:
            if not item.sku:
                continue
            key = (item.pick_location, item.sku)
            row = rows.get(key)
            if row is None:
                row = rows[key] = PicklistRow(location=item.pick_location, sku=item.sku)
            row.total_quantity += item.quantity

            # The same SKU can appear on several lines of one order
            for entry in row.orders:
                if entry.tranid == order.tranid:
                    entry.quantity += item.quantity
                    break
            else:
                row.orders.append(OrderQuantity(order.tranid, order.order_number, item.quantity))

    return list(rows.values())


def build_picklist_blocks(rows):
    """
    Group picklist rows by base SKU and order the groups for printing.

    Sort key: the pick location of the personalized family when it has rows,
    otherwise the standard family's (placeholders last), then the base SKU.
    """
    blocks = OrderedDict()
    for row in rows:
        block = blocks.get(row.base_sku)
        if block is None:
            block = blocks[row.base_sku] = PicklistBlock(base_sku=row.base_sku)
        if row.personalized:
            block.personalized.append(row)
        else:
            block.standard.append(row)

    for block in blocks.values():
        block.personalized.sort(key=lambda r: location_sort_key(r.location))
        block.standard.sort(key=lambda r: location_sort_key(r.location))

    return sorted(blocks.values(),
                  key=lambda b: (location_sort_key(b.sort_location), b.base_sku))


def format_order_breakdown(row, limit=6):
    """'#1001 x2, #1002 x3' with the tail collapsed once it gets long."""
    parts = [f"#{entry.order_number} x{entry.quantity}" for entry in row.orders[:limit]]
    if len(row.orders) > limit:
        parts.append(f"+{len(row.orders) - limit} more")
    return ", ".join(parts)


def create_picklist_excel(blocks, output_path):
    """
    Write the picklist to an Excel workbook.

    Same two-family layout as the PDF: personalized columns on the left,
    standard columns on the right, one line per stacked sub-row.
    - Alternating row colors per base SKU
    - Centered and bold qty values
    - "Picked by" column for employee tracking
    """
    workbook = Workbook()
    worksheet = workbook.active
    worksheet.title = "Picklist"

    widths = {'A': 14, 'B': 26, 'C': 8, 'D': 3, 'E': 14, 'F': 26, 'G': 8, 'H': 14}
    for column, width in widths.items():
        worksheet.column_dimensions[column].width = width

    title_font = Font(name="Arial", size=16, bold=True)
    header_font = Font(name="Arial", size=12, bold=True)
    content_font = Font(name="Arial", size=11)
    qty_font = Font(name="Arial", size=11, bold=True)
    light_fill = PatternFill(start_color="F2F2F2", end_color="F2F2F2", fill_type="solid")
    thin_border = Border(
        left=Side(style='thin'),
        right=Side(style='thin'),
        top=Side(style='thin'),
        bottom=Side(style='thin')
    )

    worksheet.merge_cells('A1:H1')
    worksheet['A1'] = "PICKLIST"
    worksheet['A1'].font = title_font
    worksheet['A1'].alignment = Alignment(horizontal='center')

    worksheet.merge_cells('A2:H2')
    worksheet['A2'] = datetime.datetime.now().strftime("%Y-%m-%d")
    worksheet['A2'].font = content_font
    worksheet['A2'].alignment = Alignment(horizontal='center')

    worksheet.merge_cells('A3:C3')
    worksheet['A3'] = "PERSONALIZED"
    worksheet['A3'].font = header_font
    worksheet.merge_cells('E3:G3')
    worksheet['E3'] = "STANDARD"
    worksheet['E3'].font = header_font

    headers = ["Location", "SKU", "Qty", "", "Location", "SKU", "Qty", "Picked by"]
    for col, header in enumerate(headers, 1):
        if not header:
            continue
        cell = worksheet.cell(row=4, column=col, value=header)
        cell.font = header_font
        if header in ("Qty", "Picked by"):
            cell.alignment = Alignment(horizontal='center')

    row_idx = 5
    for block_number, block in enumerate(blocks):
        for sub_row in range(block.height_rows):
            for offset, family in ((1, block.personalized), (5, block.standard)):
                if sub_row >= len(family):
                    continue
                entry = family[sub_row]
                values = [entry.location_label, entry.sku, entry.total_quantity]
                for i, value in enumerate(values):
                    cell = worksheet.cell(row=row_idx, column=offset + i, value=value)
                    cell.border = thin_border
                    cell.font = qty_font if i == 2 else content_font
                    cell.alignment = Alignment(horizontal='center' if i == 2 else 'left',
                                               vertical='center')

            picked_cell = worksheet.cell(row=row_idx, column=8, value="")
            picked_cell.border = thin_border

            if block_number % 2 == 1:
                for col in (1, 2, 3, 5, 6, 7, 8):
                    worksheet.cell(row=row_idx, column=col).fill = light_fill

            worksheet.row_dimensions[row_idx].height = 22
            row_idx += 1

    workbook.save(output_path)
    logger.info("Picklist workbook saved to %s", output_path)
