"""
Configuration for the packing slip generator.
Every value can be overridden through environment variables.
"""
import logging
import os
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parent


def _env(name, default=None):
    value = os.getenv(name)
    return value if value not in (None, "") else default


# Box-size catalog (packSizes -> name / maxItems / combinations)
ORDER_CONFIG_PATH = Path(_env("ORDER_CONFIG_PATH", str(PROJECT_ROOT / "order-config.json")))

# SQLite file holding the printed-status marks
PRINTED_DB_PATH = Path(_env("PRINTED_DB_PATH", str(PROJECT_ROOT / "data" / "printed_orders.db")))

# Remote image fetching
IMAGE_TIMEOUT = float(_env("IMAGE_TIMEOUT", "15"))
IMAGE_FETCH_WORKERS = int(_env("IMAGE_FETCH_WORKERS", "4"))

# Barcodes are rasterised for the printer, not for the screen
BARCODE_DPI = int(_env("BARCODE_DPI", "300"))

# Box sizes that are packed two per page with a cut guide
TWO_UP_BOX_SIZES = tuple(
    part.strip() for part in _env("TWO_UP_BOX_SIZES", "singles").split(",") if part.strip()
)

LOG_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"


def configure_logging(verbose=False):
    logging.basicConfig(level=logging.DEBUG if verbose else logging.INFO, format=LOG_FORMAT)
