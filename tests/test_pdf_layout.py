"""
PDF Layout Tests
================

Verifies:
- The pagination state machine places rows and repeats headers on overflow.
- Singles share two-up pages split by a cut guide; everything else gets full pages.
- Picklist blocks stay whole and column titles repeat on every page.
- Slips, picklist and combined documents render in the right order.
- Broken images and barcodes never abort generation.
- Invalid requests fail before any output is written.
"""
import io
import os
import sys
import tempfile
import unittest
from unittest.mock import MagicMock, patch

import fitz
import requests
from PIL import Image

PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

from order_models import AssetError, DocumentGenerationError, InputError, OrderItem, ProcessedOrder
from pdf_assets import AssetLoader
from pdf_layout import (
    BOTTOM_HALF_PADDING,
    CUT_GUIDE_GAP,
    CUT_GUIDE_Y,
    DocumentBuilder,
    LayoutState,
    fits_half_page,
    generate_document,
    plan_pages,
    plan_slip_pages,
    plan_slip_sheets,
    pt,
    should_print_tracking_barcode,
    write_document,
)

ADDRESS = "Jane Doe\n1 Main St\nAsheville NC 28801"


def _items(count, **kwargs):
    return tuple(
        OrderItem(sku=f"DPT16-{i:03d}", sku_prefix="DPT16", size="16oz", quantity=1, **kwargs)
        for i in range(count)
    )


def _order(tranid, item_count=1, box_size="singles", **kwargs):
    fields = dict(
        tranid=tranid,
        order_number=f"SO-{tranid}",
        datecreated="03/14/2024 9:15 am",
        shipaddress=ADDRESS,
        personalized=False,
        items=_items(item_count),
        cup_sizes=frozenset({"16oz"}),
        box_size=box_size,
    )
    fields.update(kwargs)
    return ProcessedOrder(**fields)


def _pages_text(data):
    doc = fitz.open(stream=data, filetype="pdf")
    try:
        return [page.get_text() for page in doc]
    finally:
        doc.close()


def _image_counts(data):
    doc = fitz.open(stream=data, filetype="pdf")
    try:
        return [len(page.get_images()) for page in doc]
    finally:
        doc.close()


def _pages_words(data):
    doc = fitz.open(stream=data, filetype="pdf")
    try:
        return [{word[4] for word in page.get_text("words")} for page in doc]
    finally:
        doc.close()


class TestPlanPages(unittest.TestCase):

    def test_rows_overflow_to_next_page(self):
        trace = []
        pages = plan_pages([1, 1, 1], page_top=0, content_bottom=2.5, header_height=0.5, trace=trace)
        self.assertEqual(pages, [[0, 1], [2]])
        self.assertEqual(trace.count(LayoutState.PAGE_FULL), 1)
        self.assertEqual(trace.count(LayoutState.DRAW_HEADER), 2)

    def test_no_rows_gives_header_only_page(self):
        self.assertEqual(plan_pages([], 0, 10, 1), [[]])

    def test_oversized_row_still_placed(self):
        self.assertEqual(plan_pages([5, 1], 0, 2, 0.5), [[0], [1]])

    def test_exact_fit(self):
        self.assertEqual(plan_pages([1, 1], 0, 2.5, 0.5), [[0, 1]])


class TestSlipSheets(unittest.TestCase):

    def test_singles_paired_first_then_others(self):
        pack = _order("X", 4, box_size="4pack")
        a, b, c = _order("A"), _order("B"), _order("C")
        sheets = plan_slip_sheets([pack, a, b, c], ("singles",))
        self.assertEqual(sheets, [(a, b), (c,), (pack,)])

    def test_long_single_gets_full_page(self):
        long_single = _order("L", 30)
        self.assertFalse(fits_half_page(long_single))
        sheets = plan_slip_sheets([_order("A"), long_single], ("singles",))
        self.assertEqual([len(s) for s in sheets], [1, 1])

    def test_two_up_disabled(self):
        sheets = plan_slip_sheets([_order("A"), _order("B")], ())
        self.assertEqual([len(s) for s in sheets], [1, 1])


class TestTrackingBarcode(unittest.TestCase):

    def test_rules(self):
        self.assertTrue(should_print_tracking_barcode(_order("A", shipstation_order_id="123",
                                                              shipmethod="UPS Ground")))
        self.assertTrue(should_print_tracking_barcode(_order("A", shipstation_order_id="123")))
        self.assertFalse(should_print_tracking_barcode(_order("A", shipstation_order_id="123",
                                                               shipmethod="Freight LTL")))
        self.assertFalse(should_print_tracking_barcode(_order("A", shipstation_order_id="123",
                                                               shipmethod="Local Pickup")))
        self.assertFalse(should_print_tracking_barcode(_order("A", shipmethod="UPS Ground")))


class TestGenerateDocument(unittest.TestCase):

    def test_overflow_repeats_header(self):
        capacity = len(plan_slip_pages(_order("P", 60, box_size="4pack"))[0])
        order = _order("F200", capacity + 1, box_size="4pack")

        pages = _pages_text(generate_document([order], "slips"))
        self.assertEqual(len(pages), 2)
        for text in pages:
            self.assertIn("PACKING SLIP", text)
            self.assertIn("BARCODE", text)
            self.assertIn("F200", text)
        self.assertIn("Page 1 of 2", pages[0])
        self.assertIn("Page 2 of 2", pages[1])
        self.assertIn(f"DPT16-{capacity:03d}", pages[1])
        self.assertNotIn(f"DPT16-{capacity:03d}", pages[0])

    def test_singles_two_up(self):
        orders = [_order("SA-1"), _order("SB-2"), _order("SC-3")]
        pages = _pages_text(generate_document(orders, "slips", two_up_box_sizes=("singles",)))

        self.assertEqual(len(pages), 2)
        self.assertIn("SA-1", pages[0])
        self.assertIn("SB-2", pages[0])
        self.assertLess(pages[0].index("SA-1"), pages[0].index("SB-2"))
        self.assertNotIn("Page 1 of", pages[0])
        self.assertIn("SC-3", pages[1])
        self.assertIn("Page 2 of 2", pages[1])

    def test_two_up_cut_guide_and_trim_padding(self):
        orders = [_order("SA-1"), _order("SB-2")]
        data = generate_document(orders, "slips", two_up_box_sizes=("singles",))
        doc = fitz.open(stream=data, filetype="pdf")
        try:
            self.assertEqual(len(doc), 1)
            page = doc[0]
            guide_lines = [
                drawing for drawing in page.get_drawings()
                if any(entry[0] == "l" and abs(entry[1].y - pt(CUT_GUIDE_Y)) < 0.5
                       and abs(entry[2].y - pt(CUT_GUIDE_Y)) < 0.5
                       for entry in drawing["items"])
            ]
            dash_patterns = [(drawing.get("dashes") or "").replace(" ", "") for drawing in guide_lines]
            self.assertTrue(any(pattern in ("", "[]0") for pattern in dash_patterns))
            self.assertTrue(any(pattern not in ("", "[]0") for pattern in dash_patterns))

            ship_to = sorted(page.search_for("SHIP TO"), key=lambda rect: rect.y0)
            self.assertEqual(len(ship_to), 2)
            self.assertLess(ship_to[0].y1, pt(CUT_GUIDE_Y))
            self.assertGreaterEqual(ship_to[1].y0,
                                    pt(CUT_GUIDE_Y + CUT_GUIDE_GAP / 2 + BOTTOM_HALF_PADDING))
        finally:
            doc.close()

    def test_combined_puts_picklist_first(self):
        orders = [_order("F1", 2, box_size="2pack"), _order("F2", 1)]
        pages = _pages_text(generate_document(orders, "combined", two_up_box_sizes=()))
        self.assertIn("PICKLIST", pages[0])
        self.assertNotIn("PACKING SLIP", pages[0])
        self.assertEqual(len(pages), 3)
        self.assertIn("PACKING SLIP", pages[1])
        self.assertIn("PACKING SLIP", pages[2])

    def test_picklist_only(self):
        orders = [_order("F1", 2, items=(
            OrderItem("CUP-PERS", None, None, 2, pick_location="A1"),
            OrderItem("CUP", None, None, 3, pick_location="B2"),
        ))]
        pages = _pages_text(generate_document(orders, "picklist"))
        self.assertEqual(len(pages), 1)
        self.assertIn("PERSONALIZED", pages[0])
        self.assertIn("CUP-PERS", pages[0])
        self.assertIn("#SO-F1 x2", pages[0])

    def test_picklist_overflow_keeps_blocks_whole(self):
        items = []
        for i in range(40):
            items.append(OrderItem(f"MUG{i:02d}-PERS", None, None, 1, pick_location=f"A{i:02d}"))
            items.append(OrderItem(f"MUG{i:02d}", None, None, 1, pick_location=f"B{i:02d}"))
        data = generate_document([_order("F1", items=tuple(items))], "picklist")

        pages = _pages_words(data)
        self.assertGreaterEqual(len(pages), 2)
        for words in pages:
            self.assertIn("PERSONALIZED", words)
            self.assertIn("STANDARD", words)
        for i in range(40):
            personalized_pages = [n for n, words in enumerate(pages) if f"MUG{i:02d}-PERS" in words]
            standard_pages = [n for n, words in enumerate(pages) if f"MUG{i:02d}" in words]
            self.assertEqual(len(personalized_pages), 1)
            self.assertEqual(personalized_pages, standard_pages)

    def test_empty_selection(self):
        with self.assertRaises(InputError):
            generate_document([], "slips")

    def test_unknown_kind(self):
        with self.assertRaises(InputError):
            generate_document([_order("A")], "labels")

    def test_failure_is_wrapped(self):
        with patch.object(DocumentBuilder, "render_packing_slips", side_effect=RuntimeError("boom")):
            with self.assertRaises(DocumentGenerationError) as ctx:
                generate_document([_order("A")], "slips")
        self.assertIsInstance(ctx.exception.__cause__, RuntimeError)

    def test_status_callback(self):
        messages = []
        generate_document([_order("A")], "slips", status_callback=messages.append)
        self.assertEqual(len(messages), 2)
        self.assertIn("1 page(s)", messages[-1])


class TestAssetFailures(unittest.TestCase):

    def test_barcode_falls_back_to_text(self):
        order = _order("A", items=(OrderItem("DPT16", "DPT16", "16oz", 1, barcode="BC-42"),))
        with patch("pdf_assets.render_barcode", side_effect=AssetError("cannot render")):
            data = generate_document([order], "slips", assets=AssetLoader())
        self.assertIn("BC-42", _pages_text(data)[0])
        self.assertEqual(_image_counts(data), [0])

    def test_barcode_rendered_as_image(self):
        order = _order("A", items=(OrderItem("DPT16", "DPT16", "16oz", 1, barcode="BC-42"),))
        data = generate_document([order], "slips", assets=AssetLoader())
        self.assertEqual(_image_counts(data), [1])

    @patch("pdf_assets.requests.get")
    def test_missing_image_leaves_slot_blank(self, mock_get):
        mock_get.side_effect = requests.ConnectionError("offline")
        order = _order("A", items=(OrderItem("DPT16", "DPT16", "16oz", 1,
                                             image_url="https://cdn.example.com/x.png"),),
                       custom_artwork_url="https://cdn.example.com/art.png")
        pages = _pages_text(generate_document([order], "slips"))
        self.assertEqual(len(pages), 1)
        self.assertIn("Custom Artwork", pages[0])

    @patch("pdf_assets.requests.get")
    def test_oversized_artwork_leaves_slot_blank(self, mock_get):
        buffer = io.BytesIO()
        Image.new("RGB", (100, 100)).save(buffer, format="PNG")
        response = MagicMock()
        response.content = buffer.getvalue()
        mock_get.return_value = response

        order = _order("A", custom_artwork_url="https://cdn.example.com/huge.png")
        with patch("PIL.Image.MAX_IMAGE_PIXELS", 1000):
            data = generate_document([order], "slips", assets=AssetLoader())
        self.assertEqual(_image_counts(data), [0])
        self.assertIn("Custom Artwork", _pages_text(data)[0])



class TestWriteDocument(unittest.TestCase):

    def test_writes_pdf(self):
        with tempfile.TemporaryDirectory() as temp_dir:
            path = os.path.join(temp_dir, "out", "slips.pdf")
            write_document([_order("A")], path)
            self.assertTrue(os.path.exists(path))
            with open(path, "rb") as f:
                self.assertTrue(f.read(5).startswith(b"%PDF"))
            self.assertEqual(os.listdir(os.path.dirname(path)), ["slips.pdf"])

    def test_no_file_on_invalid_request(self):
        with tempfile.TemporaryDirectory() as temp_dir:
            path = os.path.join(temp_dir, "slips.pdf")
            with self.assertRaises(InputError):
                write_document([], path)
            self.assertEqual(os.listdir(temp_dir), [])


if __name__ == "__main__":
    unittest.main()
