"""Typed structures and error types shared by the order pipeline and the PDF layout."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import FrozenSet, Optional, Tuple


@dataclass(frozen=True)
class OrderItem:
    sku: str
    sku_prefix: Optional[str]
    size: Optional[str]
    quantity: int
    color: Optional[str] = None
    image_url: Optional[str] = None
    barcode: Optional[str] = None
    description: Optional[str] = None
    pick_location: Optional[str] = None


@dataclass(frozen=True)
class ShippingZone:
    zone_id: str
    name: str
    priority: int
    distance: Optional[float] = None


@dataclass(frozen=True)
class ProcessedOrder:
    tranid: str
    order_number: str
    datecreated: str
    shipaddress: str
    personalized: bool
    items: Tuple[OrderItem, ...]
    cup_sizes: FrozenSet[str]
    box_size: Optional[str] = None
    shipmethod: Optional[str] = None
    po_number: Optional[str] = None
    memo: Optional[str] = None
    shipstation_order_id: Optional[str] = None
    custom_artwork_url: Optional[str] = None
    shipping_zone: Optional[ShippingZone] = None

    @property
    def zone_label(self) -> str:
        """Display name of the shipping zone, 'Unknown' when none was assigned."""
        if self.shipping_zone is None:
            return "Unknown"
        return self.shipping_zone.name


@dataclass(frozen=True)
class BoxSizeConfig:
    """One named pack category from the box-size catalog."""

    name: str
    max_items: int
    combinations: Tuple[Tuple[str, ...], ...] = field(default_factory=tuple)


class PackingSlipError(Exception):
    """Base class for every error raised by this package."""


class InputError(PackingSlipError):
    """A document request was made without a usable order selection."""


class AssetError(PackingSlipError):
    """An image or barcode could not be fetched, decoded or rendered."""


class ConfigMismatch(PackingSlipError):
    """An order's items do not correspond to any box-size combination."""


class OrderConfigError(PackingSlipError):
    """The box-size catalog file is missing or malformed."""


class DocumentGenerationError(PackingSlipError):
    """Document generation failed; no output was produced."""
