import logging
import math

logger = logging.getLogger(__name__)

ACCESSORY_PALLET_LENGTH_FT = 4.0
DEFAULT_ACCESSORY_UNITS_PER_PALLET = 40

PACKABLE_CATEGORIES = {"ROLL", "BOARD", "ACCESSORY"}


class InvalidPackingRate(ValueError):
    """Raised when a catalog row carries a zero, negative or fractional per-pallet rate."""

    def __init__(self, sku, category, rate):
        super().__init__(
            f"Invalid packing rate {rate!r} for {sku} ({category}); "
            "per-pallet counts must be whole numbers of at least 1."
        )
        self.sku = sku
        self.category = category
        self.rate = rate

    def as_payload(self):
        return {
            "code": "invalid_packing_rate",
            "sku": self.sku,
            "category": self.category,
            "rate": self.rate,
            "message": str(self),
        }


def _packing_rate(attributes):
    category = attributes.get("category")
    if category == "ROLL":
        return attributes.get("rolls_per_pallet")
    rate = attributes.get("units_per_pallet")
    if category == "ACCESSORY" and rate is None:
        return DEFAULT_ACCESSORY_UNITS_PER_PALLET
    return rate


def _pallet_length(attributes):
    if attributes.get("category") == "ACCESSORY":
        return ACCESSORY_PALLET_LENGTH_FT
    return attributes.get("pallet_length_ft")


def missing_geometry_reason(attributes):
    if not attributes:
        return "No catalog data found."
    category = attributes.get("category")
    if category not in PACKABLE_CATEGORIES:
        return "Unknown packing category."
    if _packing_rate(attributes) is None:
        if category == "ROLL":
            return "Missing rolls per pallet."
        return "Missing units per pallet."
    length = _pallet_length(attributes)
    if length is None or not math.isfinite(length) or length <= 0:
        return "Missing pallet length."
    return None


def pallets_for_item(sku, quantity, attributes):
    rate = _packing_rate(attributes)
    if rate is None or not math.isfinite(rate) or rate < 1 or float(rate) != int(rate):
        raise InvalidPackingRate(sku, attributes.get("category"), rate)
    return int(math.ceil(quantity / int(rate)))


def aggregate_pallets(pairs):
    """Group packable items into pallet counts keyed by (category, pallet length).

    `pairs` is an iterable of (item, attributes). Excluded items are dropped,
    items without usable geometry are returned as unpackable, and items with
    a bad packing rate are reported in `errors` without stopping the rest.
    """
    groups = {}
    errors = []
    unpackable = []
    excluded = []

    for item, attributes in pairs:
        sku = item["sku"]
        quantity = item["quantity"]
        if attributes and attributes.get("category") == "EXCLUDED":
            excluded.append({"sku": sku, "quantity": quantity})
            continue

        reason = missing_geometry_reason(attributes)
        if reason:
            unpackable.append(
                {
                    "sku": sku,
                    "quantity": quantity,
                    "reason": reason,
                    "attributes": attributes,
                }
            )
            continue

        try:
            pallets = pallets_for_item(sku, quantity, attributes)
        except InvalidPackingRate as exc:
            logger.warning("Skipping %s from footage: %s", sku, exc)
            errors.append(exc.as_payload())
            continue

        key = (attributes["category"], float(_pallet_length(attributes)))
        groups[key] = groups.get(key, 0) + pallets

    return {
        "groups": groups,
        "errors": errors,
        "unpackable": unpackable,
        "excluded": excluded,
    }
