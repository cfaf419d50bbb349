import math

import db

CATEGORY_ALIASES = {
    "ROLL": "ROLL",
    "ROLLS": "ROLL",
    "ROLLGOOD": "ROLL",
    "ROLL GOOD": "ROLL",
    "TPO": "ROLL",
    "BOARD": "BOARD",
    "BOARDS": "BOARD",
    "BOARDGOOD": "BOARD",
    "BOARD GOOD": "BOARD",
    "ISO": "BOARD",
    "ACCESSORY": "ACCESSORY",
    "ACCESSORIES": "ACCESSORY",
    "EXCLUDED": "EXCLUDED",
    "EXCLUDE": "EXCLUDED",
}

NUMERIC_FIELDS = [
    "weight_lbs",
    "length_in",
    "width_in",
    "height_in",
    "rolls_per_pallet",
    "units_per_pallet",
    "pallet_length_ft",
]


def normalize_sku(value):
    return str(value or "").strip().upper()


def normalize_category(value):
    text = " ".join(str(value or "").replace("_", " ").split()).upper()
    if not text:
        return None
    return CATEGORY_ALIASES.get(text)


def _optional_float(value):
    if value is None:
        return None
    if isinstance(value, str) and not value.strip():
        return None
    try:
        parsed = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(parsed):
        return None
    return parsed


def normalize_item_attributes(raw):
    """Return a clean attribute dict for one catalog row, or None for no row.

    Numeric fields that are blank, unparseable or non-finite become None. Zero and
    negative values are kept as-is so the aggregator can report them.
    """
    if not raw:
        return None
    attributes = {
        "sku": normalize_sku(raw.get("sku")),
        "description": str(raw.get("description") or "").strip(),
        "category": normalize_category(raw.get("category")),
    }
    for field in NUMERIC_FIELDS:
        attributes[field] = _optional_float(raw.get(field))
    return attributes


def mapping_lookup(mapping):
    specs = {normalize_sku(sku): dict(spec) for sku, spec in (mapping or {}).items()}

    def lookup(sku):
        return normalize_item_attributes(specs.get(normalize_sku(sku)))

    return lookup


def db_lookup():
    def lookup(sku):
        return normalize_item_attributes(db.get_sku_spec(normalize_sku(sku)))

    return lookup


def list_catalog_options():
    return [
        {
            "value": spec["sku"],
            "label": f"{spec['sku']} - {spec.get('description') or ''}".rstrip(" -"),
        }
        for spec in db.list_sku_specs()
    ]
