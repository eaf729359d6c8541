"""
Packing slip and picklist PDF generation.

All geometry is in inches on a US Letter page with 0.5in margins and converted
to PDF points only when drawing. Row placement is decided up front by
plan_pages(), so pagination can be checked without rendering anything.
"""
import logging
import os
import tempfile
from dataclasses import dataclass
from enum import Enum

import fitz  # PyMuPDF

import config
from order_models import DocumentGenerationError, InputError
from pdf_assets import AssetLoader, fit_size
from picklist import aggregate_picklist, build_picklist_blocks, format_order_breakdown

logger = logging.getLogger(__name__)

POINTS_PER_INCH = 72

PAGE_WIDTH = 8.5
PAGE_HEIGHT = 11.0
MARGIN = 0.5
CONTENT_WIDTH = PAGE_WIDTH - MARGIN * 2

# Rows stop here; the band below holds the footer
CONTENT_BOTTOM = PAGE_HEIGHT - MARGIN - 0.5
FOOTER_Y = PAGE_HEIGHT - 0.3

# Two-up page geometry
CUT_GUIDE_GAP = 0.3
BOTTOM_HALF_PADDING = 0.3
HALF_HEIGHT = (PAGE_HEIGHT - MARGIN * 2 - CUT_GUIDE_GAP - BOTTOM_HALF_PADDING) / 2
CUT_GUIDE_Y = MARGIN + HALF_HEIGHT + CUT_GUIDE_GAP / 2
TOP_HALF = {'top': MARGIN, 'bottom': MARGIN + HALF_HEIGHT - 0.4, 'footer': MARGIN + HALF_HEIGHT - 0.1}
BOTTOM_HALF = {'top': CUT_GUIDE_Y + CUT_GUIDE_GAP / 2 + BOTTOM_HALF_PADDING,
               'bottom': PAGE_HEIGHT - MARGIN - 0.6,
               'footer': PAGE_HEIGHT - MARGIN - 0.3}

FONT_REGULAR = "helv"
FONT_BOLD = "hebo"
BLACK = (0, 0, 0)
GRAY = (150 / 255, 150 / 255, 150 / 255)
DARK_GRAY = (0.35, 0.35, 0.35)

# Shipping methods that never get a scannable tracking barcode
TERMINAL_SHIP_METHODS = ("LTL", "Local Pickup")

# Image, Item, BARCODE, BIN, COLOR, SIZE, QTY
ITEM_COLUMN_WIDTHS = [0.5, 2.2, 2.0, 0.7, 1.0, 0.6, 0.5]
ITEM_HEADERS = ['', 'Item', 'BARCODE', 'BIN', 'COLOR', 'SIZE', 'QTY']
ITEM_ALIGNMENTS = ['left', 'left', 'center', 'center', 'center', 'center', 'right']

TABLE_HEADER_HEIGHT = 0.44
ROW_GAP = 0.02

PICKLIST_HEADER_HEIGHT = 1.1
PICKLIST_ROW_HEIGHT = 0.34
PICKLIST_BLOCK_GAP = 0.06
PICKLIST_COLUMN_GAP = 0.2
PICKLIST_COLUMN_WIDTH = (CONTENT_WIDTH - PICKLIST_COLUMN_GAP) / 2
# Location, SKU, Qty inside one family column
PICKLIST_SUBCOLUMNS = [0.9, 2.15, 0.6]

DOCUMENT_KINDS = ("slips", "picklist", "combined")

EPSILON = 1e-9


@dataclass(frozen=True)
class SlipMetrics:
    title_size: float
    label_size: float
    table_size: float
    description_size: float
    address_pitch: float
    detail_pitch: float
    artwork_box: tuple
    artwork_px: int
    row_height: float
    item_image_box: tuple
    item_image_px: int
    barcode_box: tuple
    numbered: bool


FULL_METRICS = SlipMetrics(
    title_size=20, label_size=9, table_size=8, description_size=7,
    address_pitch=0.15, detail_pitch=0.2,
    artwork_box=(1.7, 1.3), artwork_px=400,
    row_height=0.5, item_image_box=(0.4, 0.3), item_image_px=200,
    barcode_box=(1.5, 0.3), numbered=True,
)

# Used for the halves of a two-up page
COMPACT_METRICS = SlipMetrics(
    title_size=14, label_size=7, table_size=7, description_size=6,
    address_pitch=0.13, detail_pitch=0.17,
    artwork_box=(1.2, 0.9), artwork_px=300,
    row_height=0.4, item_image_box=(0.35, 0.26), item_image_px=150,
    barcode_box=(1.2, 0.24), numbered=False,
)


class LayoutState(Enum):
    NEW_PAGE = "new_page"
    DRAW_HEADER = "draw_header"
    DRAW_ROW = "draw_row"
    PAGE_FULL = "page_full"


def plan_pages(row_heights, page_top, content_bottom, header_height, trace=None):
    """
    Decide which rows go on which page.

    Every page starts with a header of header_height. A row is placed when it fits
    above content_bottom; otherwise the page is full and a new page (with its
    header repeated) begins. A row taller than an empty page is placed anyway.
    Returns a list of pages, each a list of row indices. With no rows the result
    is a single page holding only the header. If trace is a list, every visited
    state is appended to it.
    """
    pages = []
    state = LayoutState.NEW_PAGE
    index = 0
    y = page_top

    while True:
        if trace is not None:
            trace.append(state)

        if state is LayoutState.NEW_PAGE:
            pages.append([])
            y = page_top
            state = LayoutState.DRAW_HEADER

        elif state is LayoutState.DRAW_HEADER:
            y += header_height
            if index >= len(row_heights):
                break
            state = LayoutState.DRAW_ROW

        elif state is LayoutState.DRAW_ROW:
            if index >= len(row_heights):
                break
            height = row_heights[index]
            if y + height > content_bottom + EPSILON and pages[-1]:
                state = LayoutState.PAGE_FULL
                continue
            pages[-1].append(index)
            y += height
            index += 1

        elif state is LayoutState.PAGE_FULL:
            state = LayoutState.NEW_PAGE

    return pages


def split_address(address):
    return [line.strip() for line in (address or "").splitlines() if line.strip()]


def title_baseline_offset(metrics):
    return metrics.title_size / POINTS_PER_INCH


def slip_detail_rows(order):
    return [
        ('Order Number', order.order_number),
        ('Item Fulfillment', order.tranid),
        ('PO Number', order.po_number),
        ('Order Notes', order.memo),
        ('Ship Method', order.shipmethod),
        ('Date', order.datecreated),
    ]


def measure_slip_header(order, metrics):
    """
    Height of the slip header band, up to and including its separator line.
    Artwork space is reserved whenever the order has an artwork reference.
    """
    left = 0.15 + len(split_address(order.shipaddress)) * metrics.address_pitch + 0.05

    middle = 0
    if order.custom_artwork_url:
        middle = 0.22 + metrics.artwork_box[1]

    first_detail = title_baseline_offset(metrics) + 0.25
    right = first_detail + (len(slip_detail_rows(order)) - 1) * metrics.detail_pitch + 0.05

    return max(left, middle, right) + 0.1


def slip_row_pitch(metrics):
    return metrics.row_height + ROW_GAP


def plan_slip_pages(order, metrics=FULL_METRICS, page_top=MARGIN, content_bottom=CONTENT_BOTTOM):
    header = measure_slip_header(order, metrics) + TABLE_HEADER_HEIGHT
    pitch = slip_row_pitch(metrics)
    return plan_pages([pitch] * len(order.items), page_top, content_bottom, header)


def fits_half_page(order, half=None):
    """True when the order's whole slip fits one half of a two-up page."""
    half = half or BOTTOM_HALF
    pages = plan_slip_pages(order, COMPACT_METRICS, half['top'], half['bottom'])
    return len(pages) == 1


def plan_slip_sheets(orders, two_up_box_sizes=None, can_share_page=fits_half_page):
    """
    Arrange orders into physical sheets.

    Orders whose box size is in two_up_box_sizes (and that fit a half page) come
    first, paired two at a time in input order; an odd one out gets a full page.
    Every other order follows with a dedicated page, also in input order.
    Returns a list of tuples: (top, bottom) for a two-up sheet, (order,) otherwise.
    """
    if two_up_box_sizes is None:
        two_up_box_sizes = config.TWO_UP_BOX_SIZES

    candidates = []
    others = []
    for order in orders:
        if order.box_size in two_up_box_sizes and can_share_page(order):
            candidates.append(order)
        else:
            others.append(order)

    sheets = []
    for i in range(0, len(candidates), 2):
        sheets.append(tuple(candidates[i:i + 2]))
    sheets.extend((order,) for order in others)
    return sheets


def pt(inches):
    return inches * POINTS_PER_INCH


def fit_text(text, max_width, fontname=FONT_REGULAR, fontsize=8):
    """Trim text with '...' until it fits max_width inches."""
    text = str(text or "")
    limit = pt(max_width)
    if fitz.get_text_length(text, fontname=fontname, fontsize=fontsize) <= limit:
        return text
    while text and fitz.get_text_length(text + "...", fontname=fontname, fontsize=fontsize) > limit:
        text = text[:-1]
    return text + "..." if text else ""


def should_print_tracking_barcode(order):
    if not order.shipstation_order_id:
        return False
    shipmethod = order.shipmethod or ""
    return not any(method in shipmethod for method in TERMINAL_SHIP_METHODS)


class DocumentBuilder:
    """
    Builds one PDF in memory.
    Page numbers are stamped in finish(), once the total page count is known.
    """

    def __init__(self, assets=None, two_up_box_sizes=None):
        self.assets = assets or AssetLoader()
        self.two_up_box_sizes = two_up_box_sizes
        self.doc = fitz.open()
        self.numbered_pages = []

    # Drawing primitives

    def new_page(self, numbered=True):
        page = self.doc.new_page(width=pt(PAGE_WIDTH), height=pt(PAGE_HEIGHT))
        if numbered:
            self.numbered_pages.append(page.number)
        return page

    def text(self, page, x, y, text, size=8, bold=False, align='left', max_width=None, color=BLACK):
        fontname = FONT_BOLD if bold else FONT_REGULAR
        text = str(text or "")
        if max_width is not None:
            text = fit_text(text, max_width, fontname, size)
        if not text:
            return
        width = fitz.get_text_length(text, fontname=fontname, fontsize=size) / POINTS_PER_INCH
        if align == 'center':
            x -= width / 2
        elif align == 'right':
            x -= width
        page.insert_text((pt(x), pt(y)), text, fontname=fontname, fontsize=size, color=color)

    def line(self, page, x1, y1, x2, y2, width=0.01, color=BLACK, dashes=None):
        page.draw_line((pt(x1), pt(y1)), (pt(x2), pt(y2)), color=color, width=pt(width), dashes=dashes)

    def image(self, page, loaded, x, y, box_width, box_height, keep_aspect=True):
        """Place a LoadedImage centred in a box; stretched to the box when keep_aspect is False."""
        if loaded is None:
            return
        if keep_aspect:
            width, height = fit_size(loaded.width, loaded.height, box_width, box_height)
        else:
            width, height = box_width, box_height
        x0 = x + (box_width - width) / 2
        y0 = y + (box_height - height) / 2
        rect = fitz.Rect(pt(x0), pt(y0), pt(x0 + width), pt(y0 + height))
        page.insert_image(rect, stream=loaded.data, keep_proportion=False)

    def barcode(self, page, value, x, y, box, text_size=6):
        """Barcode centred on x; the raw value is printed instead when it cannot be rendered."""
        loaded = self.assets.barcode(value)
        box_width, box_height = box
        if loaded is None:
            self.text(page, x, y + box_height / 2 + 0.05, value, size=text_size + 2, align='center')
            return
        self.image(page, loaded, x - box_width / 2, y, box_width, box_height, keep_aspect=False)
        self.text(page, x, y + box_height + 0.1, value, size=text_size, align='center',
                  max_width=box_width + 0.4)

    # Packing slips

    def prefetch_slip_images(self, sheets):
        image_requests = []
        for sheet in sheets:
            metrics = COMPACT_METRICS if len(sheet) == 2 else FULL_METRICS
            for order in sheet:
                if order.custom_artwork_url:
                    image_requests.append((order.custom_artwork_url, metrics.artwork_px))
                for item in order.items:
                    if item.image_url:
                        image_requests.append((item.image_url, metrics.item_image_px))
        self.assets.prefetch_images(image_requests)

    def draw_slip_header(self, page, order, top, metrics):
        """Ship-to (left), custom artwork (middle), packing slip details (right)."""
        x = MARGIN
        col1 = CONTENT_WIDTH * 0.35
        col2 = CONTENT_WIDTH * 0.30
        col3 = CONTENT_WIDTH * 0.35

        # Left column: Ship To address
        y = top + 0.15
        self.text(page, x, y, 'SHIP TO', size=metrics.label_size + 1, bold=True)
        for address_line in split_address(order.shipaddress):
            y += metrics.address_pitch
            self.text(page, x, y, address_line, size=metrics.label_size, max_width=col1 - 0.1)

        # Middle column: Custom Artwork (only when there is a reference)
        if order.custom_artwork_url:
            center = x + col1 + col2 / 2
            self.text(page, center, top + 0.15, 'Custom Artwork', size=metrics.label_size, bold=True,
                      align='center')
            artwork = self.assets.image(order.custom_artwork_url, metrics.artwork_px)
            box_width, box_height = metrics.artwork_box
            self.image(page, artwork, center - box_width / 2, top + 0.22, box_width, box_height)

        # Right column: title and bordered detail rows
        right_edge = x + col1 + col2 + col3 - 0.1
        detail_x = x + col1 + col2
        detail_width = col3 - 0.1
        y = top + title_baseline_offset(metrics)
        self.text(page, right_edge, y, 'PACKING SLIP', size=metrics.title_size, bold=True, align='right')

        y += 0.25
        for label, value in slip_detail_rows(order):
            self.text(page, detail_x, y, label + ':', size=metrics.label_size, bold=True)
            self.text(page, detail_x + detail_width, y, value or 'N/A', size=metrics.label_size,
                      align='right', max_width=detail_width * 0.6)
            self.line(page, detail_x, y + 0.05, detail_x + detail_width, y + 0.05, width=0.005)
            y += metrics.detail_pitch

        bottom = top + measure_slip_header(order, metrics)
        self.line(page, MARGIN, bottom, MARGIN + CONTENT_WIDTH, bottom)
        return bottom

    def draw_item_table_header(self, page, y, metrics):
        """Column captions and rule; returns the top of the first row."""
        baseline = y + 0.2
        x = MARGIN
        for header, width, align in zip(ITEM_HEADERS, ITEM_COLUMN_WIDTHS, ITEM_ALIGNMENTS):
            if align == 'center':
                self.text(page, x + width / 2, baseline, header, size=metrics.table_size, bold=True,
                          align='center')
            elif align == 'right':
                self.text(page, x + width, baseline, header, size=metrics.table_size, bold=True,
                          align='right')
            else:
                self.text(page, x, baseline, header, size=metrics.table_size, bold=True)
            x += width
        self.line(page, MARGIN, baseline + 0.12, MARGIN + CONTENT_WIDTH, baseline + 0.12)
        return y + TABLE_HEADER_HEIGHT

    def draw_item_row(self, page, item, top, metrics):
        row_height = metrics.row_height
        text_y = top + row_height * 0.4
        widths = ITEM_COLUMN_WIDTHS
        x = MARGIN

        # Image column
        if item.image_url:
            loaded = self.assets.image(item.image_url, metrics.item_image_px)
            box_width, box_height = metrics.item_image_box
            self.image(page, loaded, x + 0.05, top + (row_height - box_height) / 2, box_width, box_height)
        x += widths[0]

        # Item name and description
        self.text(page, x, top + 0.15, item.sku, size=metrics.table_size, bold=True, max_width=widths[1] - 0.1)
        if item.description:
            self.text(page, x, top + 0.15 + metrics.description_size / POINTS_PER_INCH + 0.04,
                      item.description, size=metrics.description_size, max_width=widths[1] - 0.1)
        x += widths[1]

        # Barcode column
        if item.barcode:
            box_height = metrics.barcode_box[1]
            self.barcode(page, item.barcode, x + widths[2] / 2, top + (row_height - box_height - 0.1) / 2,
                         metrics.barcode_box)
        x += widths[2]

        # BIN (pick location)
        if item.pick_location:
            self.text(page, x + widths[3] / 2, text_y, item.pick_location, size=metrics.table_size,
                      align='center', max_width=widths[3] - 0.1)
        x += widths[3]

        self.text(page, x + widths[4] / 2, text_y, item.color, size=metrics.table_size, align='center',
                  max_width=widths[4] - 0.1)
        x += widths[4]

        self.text(page, x + widths[5] / 2, text_y, item.size, size=metrics.table_size, align='center')
        x += widths[5]

        self.text(page, x + widths[6], text_y, str(item.quantity), size=metrics.table_size, bold=True,
                  align='right')

        bottom = top + row_height
        self.line(page, MARGIN, bottom, MARGIN + CONTENT_WIDTH, bottom, width=0.005)
        return bottom + ROW_GAP

    def draw_slip_footer(self, page, order, footer_y, metrics):
        """Tracking barcode on the left; the page number is stamped later."""
        if should_print_tracking_barcode(order):
            box_width, box_height = metrics.barcode_box
            self.barcode(page, order.shipstation_order_id, MARGIN + box_width / 2,
                         footer_y - box_height + 0.05, metrics.barcode_box)

    def render_slip(self, order, metrics=FULL_METRICS, page=None, half=None):
        """
        Draw one order's slip following its page plan.
        With a page and half given, draws into that half of an existing page.
        """
        if half is None:
            top, bottom, footer_y = MARGIN, CONTENT_BOTTOM, FOOTER_Y
        else:
            top, bottom, footer_y = half['top'], half['bottom'], half['footer']

        plan = plan_slip_pages(order, metrics, top, bottom)
        for page_index, row_indices in enumerate(plan):
            if page is None or page_index > 0:
                page = self.new_page(numbered=metrics.numbered)
                if page_index > 0:
                    top, bottom, footer_y = MARGIN, CONTENT_BOTTOM, FOOTER_Y
            header_bottom = self.draw_slip_header(page, order, top, metrics)
            y = self.draw_item_table_header(page, header_bottom, metrics)
            for index in row_indices:
                y = self.draw_item_row(page, order.items[index], y, metrics)
            self.draw_slip_footer(page, order, footer_y, metrics)
        return len(plan)

    def draw_cut_guide(self, page):
        """Solid rule with a light dashed overlay where the sheet is cut in two."""
        self.line(page, MARGIN, CUT_GUIDE_Y, MARGIN + CONTENT_WIDTH, CUT_GUIDE_Y, width=0.01)
        self.line(page, MARGIN, CUT_GUIDE_Y, MARGIN + CONTENT_WIDTH, CUT_GUIDE_Y, width=0.005,
                  color=GRAY, dashes="[3.6 3.6] 0")

    def render_two_up(self, top_order, bottom_order):
        page = self.new_page(numbered=False)
        self.render_slip(top_order, COMPACT_METRICS, page=page, half=TOP_HALF)
        self.draw_cut_guide(page)
        self.render_slip(bottom_order, COMPACT_METRICS, page=page, half=BOTTOM_HALF)

    def render_packing_slips(self, orders):
        sheets = plan_slip_sheets(orders, self.two_up_box_sizes)
        self.prefetch_slip_images(sheets)
        for sheet in sheets:
            if len(sheet) == 2:
                self.render_two_up(*sheet)
            else:
                self.render_slip(sheet[0])
        logger.info("Rendered %d packing slip sheet(s) for %d orders", len(sheets), len(orders))

    # Picklist

    def draw_picklist_header(self, page, orders, blocks):
        x = MARGIN
        y = MARGIN + 0.25
        self.text(page, x, y, 'PICKLIST', size=18, bold=True)
        units = sum(item.quantity for order in orders for item in order.items)
        self.text(page, MARGIN + CONTENT_WIDTH, y,
                  f"{len(orders)} orders | {units} units | {len(blocks)} SKUs", size=9, align='right')

        y += 0.35
        for column_x, title in ((x, 'PERSONALIZED'), (x + PICKLIST_COLUMN_WIDTH + PICKLIST_COLUMN_GAP, 'STANDARD')):
            self.text(page, column_x, y, title, size=11, bold=True)
            sub_x = column_x
            for caption, width in zip(('LOCATION', 'SKU', 'QTY'), PICKLIST_SUBCOLUMNS):
                if caption == 'QTY':
                    self.text(page, sub_x + width, y + 0.25, caption, size=8, bold=True, align='right')
                else:
                    self.text(page, sub_x, y + 0.25, caption, size=8, bold=True)
                sub_x += width
        self.line(page, MARGIN, y + 0.35, MARGIN + CONTENT_WIDTH, y + 0.35)
        return MARGIN + PICKLIST_HEADER_HEIGHT

    def draw_picklist_entry(self, page, row, x, top):
        location_width, sku_width, qty_width = PICKLIST_SUBCOLUMNS
        self.text(page, x, top + 0.14, row.location_label, size=9, bold=True, max_width=location_width - 0.05)
        self.text(page, x + location_width, top + 0.14, row.sku, size=9, max_width=sku_width - 0.05)
        self.text(page, x + location_width + sku_width + qty_width, top + 0.14, str(row.total_quantity),
                  size=10, bold=True, align='right')
        self.text(page, x + location_width, top + 0.27, format_order_breakdown(row), size=6,
                  color=DARK_GRAY, max_width=sku_width + qty_width - 0.05)

    def draw_picklist_block(self, page, block, top):
        """Personalized and standard rows side by side; both sides take the taller side's height."""
        right_x = MARGIN + PICKLIST_COLUMN_WIDTH + PICKLIST_COLUMN_GAP
        for sub_row in range(block.height_rows):
            row_top = top + sub_row * PICKLIST_ROW_HEIGHT
            if sub_row < len(block.personalized):
                self.draw_picklist_entry(page, block.personalized[sub_row], MARGIN, row_top)
            if sub_row < len(block.standard):
                self.draw_picklist_entry(page, block.standard[sub_row], right_x, row_top)

        bottom = top + block.height_rows * PICKLIST_ROW_HEIGHT
        divider_x = MARGIN + PICKLIST_COLUMN_WIDTH + PICKLIST_COLUMN_GAP / 2
        self.line(page, divider_x, top, divider_x, bottom, width=0.005, color=GRAY)
        self.line(page, MARGIN, bottom, MARGIN + CONTENT_WIDTH, bottom, width=0.005)
        return bottom + PICKLIST_BLOCK_GAP

    def render_picklist(self, orders):
        blocks = build_picklist_blocks(aggregate_picklist(orders))
        heights = [block.height_rows * PICKLIST_ROW_HEIGHT + PICKLIST_BLOCK_GAP for block in blocks]
        plan = plan_pages(heights, MARGIN, CONTENT_BOTTOM, PICKLIST_HEADER_HEIGHT)

        for block_indices in plan:
            page = self.new_page()
            y = self.draw_picklist_header(page, orders, blocks)
            for index in block_indices:
                y = self.draw_picklist_block(page, blocks[index], y)
        logger.info("Rendered picklist: %d SKU block(s) on %d page(s)", len(blocks), len(plan))
        return blocks

    # Output

    def finish(self):
        """Stamp 'Page X of Y' on numbered pages and return the PDF bytes."""
        total = len(self.doc)
        for page_number in self.numbered_pages:
            page = self.doc[page_number]
            self.text(page, MARGIN + CONTENT_WIDTH, FOOTER_Y, f"Page {page_number + 1} of {total}", size=8,
                      align='right')
        data = self.doc.tobytes(garbage=3, deflate=True)
        self.doc.close()
        return data


def generate_document(orders, kind="slips", assets=None, two_up_box_sizes=None, status_callback=None):
    """
    Generate a packing slip, picklist or combined PDF and return its bytes.

    Combined documents hold every picklist page followed by every packing slip.
    Raises InputError for an empty selection or unknown kind, and
    DocumentGenerationError for anything else that goes wrong.
    """
    orders = list(orders or [])
    if not orders:
        raise InputError("No orders provided")
    if kind not in DOCUMENT_KINDS:
        raise InputError(f"Unknown document kind '{kind}', expected one of {', '.join(DOCUMENT_KINDS)}")

    if status_callback:
        status_callback(f"Generating {kind} document for {len(orders)} orders")

    builder = DocumentBuilder(assets, two_up_box_sizes)
    try:
        if kind in ("picklist", "combined"):
            builder.render_picklist(orders)
        if kind in ("slips", "combined"):
            builder.render_packing_slips(orders)
        page_count = len(builder.doc)
        data = builder.finish()
    except Exception as exc:
        if not builder.doc.is_closed:
            builder.doc.close()
        raise DocumentGenerationError(f"Failed to generate {kind} document: {exc}") from exc

    message = f"{kind.capitalize()} document ready: {page_count} page(s)"
    logger.info(message)
    if status_callback:
        status_callback(message)
    return data


def write_document(orders, output_path, kind="slips", **kwargs):
    """
    Generate a document and write it to output_path.
    The file only appears once it is complete.
    """
    data = generate_document(orders, kind, **kwargs)

    directory = os.path.dirname(os.path.abspath(output_path))
    os.makedirs(directory, exist_ok=True)
    fd, temp_path = tempfile.mkstemp(suffix=".pdf", dir=directory)
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data)
        os.replace(temp_path, output_path)
    except OSError as exc:
        if os.path.exists(temp_path):
            os.remove(temp_path)
        raise DocumentGenerationError(f"Could not write {output_path}: {exc}") from exc
    return output_path
