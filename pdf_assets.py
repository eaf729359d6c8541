"""
Images and barcodes for the PDF layout.

Every loader raises AssetError on failure; AssetLoader turns those into None
so a broken asset leaves its slot blank instead of aborting the document.
"""
import base64
import binascii
import io
import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass

import barcode
import requests
from barcode.errors import BarcodeError
from barcode.writer import ImageWriter
from PIL import Image, UnidentifiedImageError

import config
from order_models import AssetError

logger = logging.getLogger(__name__)

# Hosts that resize on the fly through query parameters
RESIZING_HOSTS = ("imgix.net",)


@dataclass(frozen=True)
class LoadedImage:
    data: bytes  # PNG
    width: int
    height: int


def optimize_image_url(url, max_width=300, max_height=300):
    """Ask resizing hosts for a smaller, compressed rendition."""
    if url.startswith("data:"):
        return url
    if any(host in url for host in RESIZING_HOSTS):
        separator = "&" if "?" in url else "?"
        return f"{url}{separator}w={max_width}&h={max_height}&auto=compress,format"
    return url


def read_data_url(url):
    try:
        header, payload = url.split(",", 1)
    except ValueError as exc:
        raise AssetError("Malformed data URL") from exc
    if ";base64" not in header:
        raise AssetError("Only base64 data URLs are supported")
    try:
        return base64.b64decode(payload)
    except (binascii.Error, ValueError) as exc:
        raise AssetError(f"Bad base64 payload: {exc}") from exc


def fetch_image_bytes(url, max_width=300, max_height=300, timeout=None):
    if url.startswith("data:"):
        return read_data_url(url)

    request_url = optimize_image_url(url, max_width, max_height)
    try:
        response = requests.get(request_url, timeout=timeout or config.IMAGE_TIMEOUT)
        response.raise_for_status()
    except requests.RequestException as exc:
        raise AssetError(f"Failed to fetch image {url}: {exc}") from exc
    return response.content


def decode_image(data, max_width=None, max_height=None):
    """
    Decode any Pillow-readable image into PNG bytes.
    Large images are shrunk to the requested pixel box first.
    """
    try:
        image = Image.open(io.BytesIO(data))
        image.load()
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError) as exc:
        raise AssetError(f"Cannot decode image: {exc}") from exc

    if image.mode not in ("RGB", "RGBA", "L"):
        image = image.convert("RGBA")
    if max_width and max_height:
        image.thumbnail((max_width, max_height))

    buffer = io.BytesIO()
    image.save(buffer, format="PNG")
    return LoadedImage(buffer.getvalue(), image.width, image.height)


def load_image(url, max_width=300, max_height=300):
    data = fetch_image_bytes(url, max_width, max_height)
    return decode_image(data, max_width, max_height)


def render_barcode(value, dpi=None):
    """
    Render a Code 128 barcode as a PNG at print resolution.
    The value is drawn by the layout, not baked into the image.
    """
    if not value:
        raise AssetError("Empty barcode value")

    code128 = barcode.get_barcode_class('code128')
    buffer = io.BytesIO()
    try:
        code128(value, writer=ImageWriter()).write(buffer, {
            'module_width': 0.25,
            'module_height': 8.0,
            'quiet_zone': 2,
            'write_text': False,
            'dpi': dpi or config.BARCODE_DPI,
        })
    except (BarcodeError, KeyError, ValueError, OSError) as exc:
        raise AssetError(f"Cannot render barcode {value!r}: {exc}") from exc

    return decode_image(buffer.getvalue())


def fit_size(width, height, box_width, box_height):
    """Largest (w, h) with the image's aspect ratio that fits inside the box."""
    if width <= 0 or height <= 0:
        return 0, 0
    scale = min(box_width / width, box_height / height)
    return width * scale, height * scale


class AssetLoader:
    """
    Per-document cache of decoded images and barcodes.

    prefetch_images() downloads with bounded parallelism; results are stored by
    key and placed later in row order, so completion order never matters.
    """

    def __init__(self, max_workers=None, dpi=None):
        self.max_workers = max_workers or config.IMAGE_FETCH_WORKERS
        self.dpi = dpi or config.BARCODE_DPI
        self._images = {}
        self._barcodes = {}

    def _load_or_none(self, request):
        url, max_px = request
        try:
            return load_image(url, max_px, max_px)
        except AssetError as exc:
            logger.warning("Image unavailable, leaving slot blank: %s", exc)
            return None

    def prefetch_images(self, image_requests):
        """image_requests: iterable of (url, max_px) pairs."""
        pending = []
        for request in image_requests:
            if request[0] and request not in self._images and request not in pending:
                pending.append(request)
        if not pending:
            return

        workers = max(1, min(self.max_workers, len(pending)))
        with ThreadPoolExecutor(max_workers=workers) as executor:
            for request, image in zip(pending, executor.map(self._load_or_none, pending)):
                self._images[request] = image

    def image(self, url, max_px=300):
        if not url:
            return None
        request = (url, max_px)
        if request not in self._images:
            self._images[request] = self._load_or_none(request)
        return self._images[request]

    def barcode(self, value):
        if not value:
            return None
        if value not in self._barcodes:
            try:
                self._barcodes[value] = render_barcode(value, self.dpi)
            except AssetError as exc:
                logger.warning("Barcode falls back to text: %s", exc)
                self._barcodes[value] = None
        return self._barcodes[value]
