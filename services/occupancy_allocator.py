from services.truck_classes import TRUCK_CLASSES, truck_capacity, truck_label
from services.truck_decomposer import InvalidInput, coerce_linear_feet

DEFAULT_UTILIZATION_GRADE_THRESHOLDS = {
    "A": 85,
    "B": 70,
    "C": 55,
    "D": 40,
}
GRADE_LADDER = ("A", "B", "C", "D")


class EmptyDecomposition(RuntimeError):
    """Raised when occupancy is requested for positive footage with no trucks."""


def normalize_grade_thresholds(raw_value):
    """Coerce a threshold mapping into a strictly descending A-D ladder.

    Missing grades keep their defaults. Each grade is capped one point below
    the grade above it; an unparseable value resets the whole ladder.
    """
    if not isinstance(raw_value, dict):
        return dict(DEFAULT_UTILIZATION_GRADE_THRESHOLDS)
    ladder = {}
    ceiling = 100
    for grade in GRADE_LADDER:
        try:
            value = int(raw_value.get(grade, DEFAULT_UTILIZATION_GRADE_THRESHOLDS[grade]))
        except (TypeError, ValueError):
            return dict(DEFAULT_UTILIZATION_GRADE_THRESHOLDS)
        ladder[grade] = max(0, min(value, ceiling))
        ceiling = max(ladder[grade] - 1, 0)
    return ladder


def grade_utilization(utilization_pct, thresholds=None):
    thresholds = thresholds or DEFAULT_UTILIZATION_GRADE_THRESHOLDS
    for grade in GRADE_LADDER:
        if utilization_pct >= thresholds[grade]:
            return grade
    return "F"


def _entries_from(decomposition):
    if isinstance(decomposition, dict):
        entries = decomposition.get("entries") or []
    else:
        entries = list(decomposition or [])
    for entry in entries:
        truck_class = entry.get("truck_class")
        count = entry.get("count")
        if truck_class not in TRUCK_CLASSES:
            raise InvalidInput(f"Unknown truck class {truck_class!r}.")
        if isinstance(count, bool) or not isinstance(count, int) or count < 1:
            raise InvalidInput(f"Truck count must be a whole number of at least 1, got {count!r}.")
    return entries


def _occupancy_entry(truck_class, count, per_truck_feet, thresholds):
    capacity = truck_capacity(truck_class)
    occupancy = min(1.0, per_truck_feet / capacity) if capacity > 0 else 0.0
    utilization_pct = round(occupancy * 100, 1)
    return {
        "truck_class": truck_class,
        "label": truck_label(truck_class),
        "count": count,
        "capacity_ft": capacity,
        "per_truck_feet": per_truck_feet,
        "occupancy_fraction": occupancy,
        "utilization_pct": utilization_pct,
        "utilization_grade": grade_utilization(utilization_pct, thresholds),
    }


def allocate_occupancy(decomposition, total_linear_feet, grade_thresholds=None):
    """Spread total footage over the trucks of a decomposition for display.

    A single class shares the footage evenly across its trucks. With several
    classes each class takes footage in proportion to its share of total
    theoretical capacity (count x capacity). Occupancy is clamped to 1.
    """
    total_ft = coerce_linear_feet(total_linear_feet)
    entries = _entries_from(decomposition)
    if not entries:
        if total_ft > 0:
            raise EmptyDecomposition(
                f"No trucks to allocate {total_ft:.2f} linear feet across; "
                "decompose the footage before allocating occupancy."
            )
        return []

    if len(entries) == 1:
        entry = entries[0]
        per_truck_feet = total_ft / entry["count"]
        return [_occupancy_entry(entry["truck_class"], entry["count"], per_truck_feet, grade_thresholds)]

    total_capacity = sum(entry["count"] * truck_capacity(entry["truck_class"]) for entry in entries)
    allocation = []
    for entry in entries:
        class_capacity = entry["count"] * truck_capacity(entry["truck_class"])
        share = class_capacity / total_capacity if total_capacity > 0 else 0.0
        per_truck_feet = (total_ft * share) / entry["count"]
        allocation.append(
            _occupancy_entry(entry["truck_class"], entry["count"], per_truck_feet, grade_thresholds)
        )
    return allocation
