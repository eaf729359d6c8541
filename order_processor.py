import datetime
import json
import logging
import re
from collections import OrderedDict
from urllib.parse import urlparse

from dateutil import parser as date_parser

from order_models import BoxSizeConfig, ConfigMismatch, OrderConfigError, OrderItem, ProcessedOrder
from shipping_zones import assign_shipping_zone

logger = logging.getLogger(__name__)

# SKU patterns
SKU_PREFIX_PATTERN = re.compile(r"^[A-Z]{3}(\d{2})$")
PERSONALIZATION_SUFFIX_PATTERN = re.compile(r"-PERS$")

PERSONALIZATION_SUFFIX = "-PERS"

# Two-digit prefix suffix -> cup size code
CUP_SIZES = {10: "10oz", 16: "16oz", 26: "26oz"}

SINGLES = "singles"

# Filter value selecting orders whose box size could not be classified
UNCLASSIFIED = "unclassified"

# "First populated field wins" chains, in precedence order
ORDER_NUMBER_FIELDS = ("createdFrom.otherrefnum_1", "createdFrom.tranid")
ORDER_DATE_FIELDS = ("createdFrom.custbody_pir_shop_order_date", "datecreated")
MEMO_FIELDS = ("createdFrom.memo", "createdFrom.custbodypir_sales_order_warehouse_note")
IMAGE_URL_FIELDS = ("custcol_custom_image_url", "custcol1", "custcol1_1")


def record_values(record):
    """
    Return the flat field mapping of a raw line record.
    Search results arrive as {"recordType", "id", "values": {...}}; bare mappings pass through.
    """
    values = record.get("values")
    if isinstance(values, dict):
        return values
    return record


def field_text(values, name):
    """
    Read one field as trimmed text, or None when it is empty.
    List-valued select fields ([{"value", "text"}]) yield the first entry's text.
    """
    value = values.get(name)
    if isinstance(value, list):
        value = value[0].get("text") if value and isinstance(value[0], dict) else None
    if value is None or isinstance(value, bool):
        return None
    text = str(value).strip()
    return text or None


def field_value(values, name):
    """Like field_text but reads the 'value' of a select field."""
    value = values.get(name)
    if isinstance(value, list):
        return value[0].get("value") if value and isinstance(value[0], dict) else None
    return value


def first_populated(values, fields):
    """Evaluate a fallback chain: the first field with text wins."""
    for name in fields:
        text = field_text(values, name)
        if text:
            return text
    return None


def is_url(text):
    """True for a well-formed http(s) URL with a host."""
    if not text:
        return False
    parsed = urlparse(text.strip())
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


def extract_sku_prefix(sku):
    """
    Classification prefix: first 5 characters, uppercased,
    kept only when they read as three letters and two digits (e.g. DPT16).
    """
    prefix = (sku or "")[:5].upper()
    if SKU_PREFIX_PATTERN.match(prefix):
        return prefix
    return None


def extract_cup_size(sku_prefix):
    """DPT10 -> 10oz, DPT16 -> 16oz, DPT26 -> 26oz; anything else -> None."""
    if not sku_prefix:
        return None
    match = SKU_PREFIX_PATTERN.match(sku_prefix)
    if not match:
        return None
    return CUP_SIZES.get(int(match.group(1)))


def parse_quantity(value):
    try:
        quantity = int(str(value).strip())
    except (TypeError, ValueError):
        return 1
    return quantity if quantity >= 1 else 1


def get_base_sku(sku):
    """Strip the personalization suffix (ABC-PERS -> ABC)."""
    return PERSONALIZATION_SUFFIX_PATTERN.sub("", sku or "")


def is_personalized_sku(sku):
    return bool(sku) and sku.endswith(PERSONALIZATION_SUFFIX)


def normalize_item(record):
    """
    Convert one raw line record into an OrderItem.

    formulatext is dual-purpose: an image URL, or otherwise the item description.
    When it is not a URL the image falls back through IMAGE_URL_FIELDS.
    """
    values = record_values(record)

    sku = field_text(values, "item") or ""
    sku_prefix = extract_sku_prefix(sku)

    formulatext = field_text(values, "formulatext") or ""
    if is_url(formulatext):
        image_url = formulatext
        description = ""
    else:
        image_url = first_populated(values, IMAGE_URL_FIELDS)
        description = formulatext

    # An explicit description column beats the derived one
    description = field_text(values, "formulatext_1") or description

    pick_location = field_text(values, "item.custitem_pir_pick_location")
    if pick_location:
        logger.debug("Pick location %s found for item %s", pick_location, sku)

    return OrderItem(
        sku=sku,
        sku_prefix=sku_prefix,
        size=extract_cup_size(sku_prefix),
        quantity=parse_quantity(values.get("quantity")),
        color=field_text(values, "item.custitem_item_color"),
        image_url=image_url,
        barcode=field_text(values, "custcol_customization_barcode"),
        description=description,
        pick_location=pick_location,
    )


def is_kit(record):
    return field_value(record_values(record), "item.type") == "Kit"


def filter_kit_components(records):
    """
    Drop inventory rows that duplicate a kit in the same order.

    The order system sends each kit followed by the inventory items it was exploded
    into; those rows share the kit's base SKU and would double-count quantity.
    Kit rows are always kept, so running this on its own output changes nothing.
    """
    kit_base_skus = set()
    for record in records:
        if is_kit(record):
            kit_base_skus.add(get_base_sku(field_text(record_values(record), "item") or ""))

    filtered = []
    for record in records:
        if is_kit(record):
            filtered.append(record)
            continue
        base_sku = get_base_sku(field_text(record_values(record), "item") or "")
        if base_sku not in kit_base_skus:
            filtered.append(record)
    return filtered


def is_personalized_flag(value):
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() in ("t", "true", "yes", "1")
    return False


def load_order_config(path):
    """
    Load the box-size catalog.
    Returns an OrderedDict of key -> BoxSizeConfig in file order; that order decides ties.
    """
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f, object_pairs_hook=OrderedDict)
    except OSError as exc:
        raise OrderConfigError(f"Cannot read box-size catalog {path}: {exc}") from exc
    except ValueError as exc:
        raise OrderConfigError(f"Box-size catalog {path} is not valid JSON: {exc}") from exc

    return parse_order_config(data)


def parse_order_config(data):
    pack_sizes = data.get("packSizes") if isinstance(data, dict) else None
    if not isinstance(pack_sizes, dict):
        raise OrderConfigError("Box-size catalog must contain a 'packSizes' object")

    catalog = OrderedDict()
    for key, entry in pack_sizes.items():
        try:
            combinations = tuple(tuple(str(prefix).upper() for prefix in combo)
                                 for combo in entry["combinations"])
            catalog[key] = BoxSizeConfig(
                name=str(entry.get("name") or key),
                max_items=int(entry["maxItems"]),
                combinations=combinations,
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise OrderConfigError(f"Invalid box size '{key}': {exc}") from exc
    return catalog


def classify_box_size(items, order_config):
    """
    Classify an order by the multiset of its classification prefixes.

    Every unit counts separately and items without a prefix are ignored.
    No prefixed units -> None, exactly one -> 'singles', otherwise the first
    catalog entry holding an identical sorted combination.
    Raises ConfigMismatch when no catalog entry holds the combination.
    """
    cup_prefixes = []
    for item in items:
        if item.sku_prefix:
            cup_prefixes.extend([item.sku_prefix] * item.quantity)

    if not cup_prefixes:
        return None

    if len(cup_prefixes) == 1:
        return SINGLES

    cup_prefixes.sort()

    for box_size_key, box_config in order_config.items():
        for combination in box_config.combinations:
            if cup_prefixes == sorted(combination):
                return box_size_key

    raise ConfigMismatch(f"No box size matches {cup_prefixes}")


def match_box_size(items, order_config):
    """Box size key for the order, or None when it cannot be classified."""
    try:
        return classify_box_size(items, order_config)
    except ConfigMismatch as exc:
        logger.debug("Order left unclassified: %s", exc)
        return None


def build_order(tranid, group, order_config):
    """Build one ProcessedOrder from all raw rows sharing a fulfillment id."""
    filtered = filter_kit_components(group)
    items = tuple(normalize_item(record) for record in filtered)

    # Header fields repeat on every line; read them from the first kept line
    first = record_values(filtered[0] if filtered else group[0])

    cup_sizes = frozenset(item.size for item in items if item.size)
    personalized = any(is_personalized_flag(record_values(record).get("custbody_pir_pers_order"))
                       for record in group)
    shipaddress = first.get("shipaddress") or ""

    return ProcessedOrder(
        tranid=tranid,
        order_number=first_populated(first, ORDER_NUMBER_FIELDS) or tranid,
        datecreated=first_populated(first, ORDER_DATE_FIELDS) or "",
        shipaddress=shipaddress,
        personalized=personalized,
        items=items,
        cup_sizes=cup_sizes,
        box_size=match_box_size(items, order_config),
        shipmethod=field_text(first, "shipmethod"),
        po_number=field_text(first, "createdFrom.otherrefnum"),
        memo=first_populated(first, MEMO_FIELDS),
        shipstation_order_id=field_text(first, "custbody_pir_shipstation_ordid"),
        custom_artwork_url=field_text(first, "createdFrom.custbody_pir_mockup_url_sales_order"),
        shipping_zone=assign_shipping_zone(shipaddress),
    )


def process_orders(records, order_config, status_callback=None):
    """
    Group raw line records by fulfillment id (tranid) and build one ProcessedOrder per group.
    Groups keep the order in which their first line was seen.
    """
    order_map = OrderedDict()
    skipped = 0
    for record in records:
        tranid = field_text(record_values(record), "tranid")
        if not tranid:
            skipped += 1
            continue
        order_map.setdefault(tranid, []).append(record)

    if skipped:
        logger.warning("Skipped %d line(s) without a fulfillment id", skipped)

    orders = [build_order(tranid, group, order_config) for tranid, group in order_map.items()]

    unclassified = sum(1 for order in orders if order.box_size is None)
    message = f"Processed {len(orders)} orders from {len(records)} lines ({unclassified} without a box size)"
    logger.info(message)
    if status_callback:
        status_callback(message)

    return orders


def parse_order_date(date_text):
    """
    Parse 'MM/DD/YYYY hh:mm am' or a bare 'MM/DD/YYYY'.
    Returns a date, or None when the text cannot be read.
    """
    if not date_text:
        return None
    try:
        return date_parser.parse(date_text.strip(), dayfirst=False).date()
    except (ValueError, OverflowError):
        return None


def _as_date(value):
    if isinstance(value, datetime.datetime):
        return value.date()
    return value


def filter_orders(orders, personalized=None, cup_sizes=(), box_size=None, date_from=None,
                  date_to=None, printed_only=None, printed_orders=(), zone=None):
    """
    Filter orders the way the operator screen does.

    personalized / printed_only: None shows all, True/False select one side.
    cup_sizes: the order must contain exactly these sizes.
    box_size: a catalog key, or UNCLASSIFIED for orders without one.
    date_from / date_to: inclusive, compared on the date part only.
    zone: a zone id, or 'unknown' for orders without a zone.
    """
    selected_sizes = set(cup_sizes)
    printed = set(printed_orders)
    date_from = _as_date(date_from)
    date_to = _as_date(date_to)
    result = []

    for order in orders:
        if personalized is not None and order.personalized != personalized:
            continue

        if selected_sizes and set(order.cup_sizes) != selected_sizes:
            continue

        if box_size is not None:
            if box_size == UNCLASSIFIED:
                if order.box_size is not None:
                    continue
            elif order.box_size != box_size:
                continue

        if date_from or date_to:
            order_date = parse_order_date(order.datecreated)
            if order_date is None:
                continue
            if date_from and order_date < date_from:
                continue
            if date_to and order_date > date_to:
                continue

        if printed_only is not None and (order.tranid in printed) != printed_only:
            continue

        if zone is not None:
            order_zone = order.shipping_zone.zone_id if order.shipping_zone else "unknown"
            if order_zone != zone:
                continue

        result.append(order)

    return result


def sort_orders_by_zone(orders):
    """Furthest zones first (lowest priority number); orders without a zone go last."""
    def zone_key(order):
        if order.shipping_zone is None:
            return float("inf")
        return order.shipping_zone.priority

    return sorted(orders, key=zone_key)
