import math

from services import pallet_aggregator

PALLETS_PER_FLOOR_SLOT = 4
CATEGORY_ORDER = {"ROLL": 0, "BOARD": 1, "ACCESSORY": 2}


def floor_slots(pallet_count):
    if pallet_count <= 0:
        return 0
    return int(math.ceil(pallet_count / PALLETS_PER_FLOOR_SLOT))


def group_linear_feet(pallet_count, pallet_length_ft):
    # Two abreast, two high: same-length pallets share a slot, lengths never mix.
    return floor_slots(pallet_count) * float(pallet_length_ft)


def estimate_footage(groups):
    rows = []
    total = 0.0
    for (category, length), pallet_count in sorted(
        (groups or {}).items(),
        key=lambda entry: (CATEGORY_ORDER.get(entry[0][0], 99), entry[0][1]),
    ):
        feet = group_linear_feet(pallet_count, length)
        total += feet
        rows.append(
            {
                "category": category,
                "pallet_length_ft": length,
                "pallet_count": pallet_count,
                "floor_slots": floor_slots(pallet_count),
                "linear_feet": feet,
            }
        )
    return {
        "total_linear_feet": total,
        "display_linear_feet": round(total, 2),
        "groups": rows,
    }


def _shipment_weight(pairs):
    total = 0.0
    for item, attributes in pairs:
        weight = (attributes or {}).get("weight_lbs")
        if weight is None or (attributes or {}).get("category") == "EXCLUDED":
            continue
        total += item["quantity"] * weight
    return total


def compute_footage(items, lookup):
    pairs = [(item, lookup(item["sku"])) for item in items or []]
    aggregated = pallet_aggregator.aggregate_pallets(pairs)
    footage = estimate_footage(aggregated["groups"])
    footage.update(
        {
            "errors": aggregated["errors"],
            "unpackable": aggregated["unpackable"],
            "excluded": aggregated["excluded"],
            "total_weight_lbs": round(_shipment_weight(pairs), 2),
        }
    )
    return footage


def describe_group(row):
    category_label = {
        "ROLL": "roll goods",
        "BOARD": "board goods",
        "ACCESSORY": "accessories",
    }.get(row["category"], row["category"].lower())
    length = row["pallet_length_ft"]
    length_text = f"{int(length)}" if float(length).is_integer() else f"{length:g}"
    return (
        f"{row['pallet_count']} pallet(s) of {length_text} ft {category_label} -> "
        f"{row['floor_slots']} floor slot(s), {row['linear_feet']:.2f} linear ft"
    )

