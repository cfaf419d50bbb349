import math

from services.truck_classes import TRUCK_CLASSES, format_entries, truck_capacity

FOOTAGE_EPSILON = 1e-6
FULL_CAPACITY_FT = truck_capacity("FULL")
HALF_CAPACITY_FT = truck_capacity("HALF")
LTL_LIMIT_FT = truck_capacity("LTL")


class InvalidInput(ValueError):
    """Raised for negative, non-finite or non-numeric planning input."""


def coerce_linear_feet(value):
    if isinstance(value, bool):
        raise InvalidInput(f"Linear feet must be a number, got {value!r}.")
    try:
        feet = float(value)
    except (TypeError, ValueError):
        raise InvalidInput(f"Linear feet must be a number, got {value!r}.") from None
    if not math.isfinite(feet):
        raise InvalidInput(f"Linear feet must be finite, got {value!r}.")
    if feet < 0:
        raise InvalidInput(f"Linear feet cannot be negative, got {value!r}.")
    return feet


def classify_remainder(remainder_ft):
    if remainder_ft <= FOOTAGE_EPSILON:
        return None
    if remainder_ft < LTL_LIMIT_FT:
        return "LTL"
    if remainder_ft <= HALF_CAPACITY_FT:
        return "HALF"
    return "FULL"


def _split_full_trucks(total_ft):
    full_trucks = int(math.floor(total_ft / FULL_CAPACITY_FT))
    remainder = total_ft - full_trucks * FULL_CAPACITY_FT
    # Residue like 95.9999999 leaves a remainder a hair under a full truck.
    if FULL_CAPACITY_FT - remainder <= FOOTAGE_EPSILON:
        full_trucks += 1
        remainder = 0.0
    return full_trucks, max(remainder, 0.0)


def _result(truck_type, entries, total_ft):
    return {
        "truck_type": truck_type,
        "entries": entries,
        "trucks_needed": sum(entry["count"] for entry in entries),
        "linear_feet": total_ft,
        "summary": format_entries(entries),
    }


def decompose(total_linear_feet):
    """Map total linear feet to truck classes and counts.

    Whole Full trucks are taken first and the remainder goes on one overflow
    truck. An overflow above Half capacity is one more Full truck, so the
    result stays single-class in that case. Zero feet is the "no shipment"
    result, not an error.
    """
    total_ft = coerce_linear_feet(total_linear_feet)
    if total_ft <= FOOTAGE_EPSILON:
        return _result("NONE", [], total_ft)

    full_trucks, remainder = _split_full_trucks(total_ft)
    overflow_class = classify_remainder(remainder)
    if overflow_class == "FULL":
        full_trucks += 1
        overflow_class = None

    if full_trucks > 0 and overflow_class:
        entries = [
            {"truck_class": "FULL", "count": full_trucks},
            {"truck_class": overflow_class, "count": 1},
        ]
        return _result("MIXED", entries, total_ft)
    if full_trucks > 0:
        return _result("FULL", [{"truck_class": "FULL", "count": full_trucks}], total_ft)
    return _result(overflow_class, [{"truck_class": overflow_class, "count": 1}], total_ft)


def decomposition_type(entries):
    classes = [entry["truck_class"] for entry in entries or []]
    if not classes:
        return "NONE"
    if len(set(classes)) > 1:
        return "MIXED"
    return classes[0]


def merge_entries(entries, truck_class, count):
    """Return a copy of `entries` with `count` more trucks of `truck_class`."""
    if truck_class not in TRUCK_CLASSES:
        raise InvalidInput(f"Unknown truck class {truck_class!r}.")
    merged = [dict(entry) for entry in entries or []]
    for entry in merged:
        if entry["truck_class"] == truck_class:
            entry["count"] += count
            return merged
    merged.append({"truck_class": truck_class, "count": count})
    return merged
