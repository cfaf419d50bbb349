import logging

from services import footage_estimator, occupancy_allocator, recommendation_parser, truck_decomposer
from services.catalog import normalize_sku
from services.truck_classes import format_entries, truck_label
from services.truck_decomposer import InvalidInput

logger = logging.getLogger(__name__)

MAX_TRUCK_WEIGHT_LBS = 42000.0


def normalize_items(items):
    normalized = []
    for index, item in enumerate(items or []):
        if not isinstance(item, dict):
            raise InvalidInput(f"Item #{index + 1} must be an object with sku and quantity.")
        sku = normalize_sku(item.get("sku"))
        if not sku:
            raise InvalidInput(f"Item #{index + 1} is missing a SKU.")
        quantity = item.get("quantity")
        if isinstance(quantity, bool):
            quantity = None
        try:
            parsed = int(str(quantity).strip())
        except (TypeError, ValueError):
            parsed = None
        if parsed is None or parsed <= 0:
            raise InvalidInput(f"Quantity for {sku} must be a positive whole number.")
        normalized.append({"sku": sku, "quantity": parsed})
    return normalized


def build_packing_notes(footage, decomposition):
    lines = []
    for row in footage["groups"]:
        lines.append(f"- {footage_estimator.describe_group(row)}")
    for excluded in footage["excluded"]:
        lines.append(f"- {excluded['sku']} is excluded from truck footage.")
    for error in footage["errors"]:
        lines.append(f"- {error['sku']} skipped: {error['message']}")
    lines.append(f"Total required linear feet: {footage['display_linear_feet']:.2f}")
    lines.append(f"Final recommendation is: {decomposition['summary']}.")
    return "\n".join(lines)


def _merge_estimate(decomposition, estimate):
    entries = truck_decomposer.merge_entries(
        decomposition["entries"],
        estimate["truck_class"],
        estimate["count"],
    )
    merged = dict(decomposition)
    merged.update(
        {
            "truck_type": truck_decomposer.decomposition_type(entries),
            "entries": entries,
            "trucks_needed": sum(entry["count"] for entry in entries),
            "summary": format_entries(entries),
        }
    )
    return merged


def _weight_warnings(total_weight_lbs, trucks_needed):
    if trucks_needed <= 0 or total_weight_lbs <= 0:
        return []
    limit = MAX_TRUCK_WEIGHT_LBS * trucks_needed
    if total_weight_lbs <= limit:
        return []
    return [
        {
            "code": "weight_over_limit",
            "severity": "warning",
            "message": (
                f"Shipment weight {total_weight_lbs:,.0f} lbs exceeds "
                f"{limit:,.0f} lbs for {trucks_needed} truck(s)."
            ),
        }
    ]


def _commentary_context(items, footage, decomposition):
    return {
        "items": items,
        "linear_feet": footage["display_linear_feet"],
        "groups": footage["groups"],
        "truck_type": decomposition["truck_type"],
        "trucks_needed": decomposition["trucks_needed"],
        "summary": decomposition["summary"],
    }


def plan_shipment(items, lookup, generator=None, grade_thresholds=None):
    """Compute the full shipping plan for a list of items.

    `lookup` maps a SKU to its catalog attributes (or None). `generator` is
    the optional external collaborator; without it, items lacking packing
    geometry are listed as unestimated and the plan covers the rest.
    """
    items = normalize_items(items)
    footage = footage_estimator.compute_footage(items, lookup)
    decomposition = truck_decomposer.decompose(footage["total_linear_feet"])
    packing_notes = build_packing_notes(footage, decomposition)
    linear_feet = footage["total_linear_feet"]

    unpackable = footage["unpackable"]
    unestimated = []
    estimate = None
    if unpackable:
        if generator is not None:
            estimate = generator.estimate_trucks(unpackable)
        if estimate:
            decomposition = _merge_estimate(decomposition, estimate)
            if estimate.get("linear_feet"):
                linear_feet += estimate["linear_feet"]
                decomposition["linear_feet"] = linear_feet
            packing_notes = (
                "--- Detailed Packing Plan ---\n"
                f"{packing_notes}\n\n"
                "--- Additional Items Estimation ---\n"
                f"{estimate['reasoning'] or 'Estimated by the external generator.'}\n"
                f"Combined recommendation is: {decomposition['summary']}."
            )
        else:
            unestimated = [
                {"sku": entry["sku"], "quantity": entry["quantity"], "reason": entry["reason"]}
                for entry in unpackable
            ]
            logger.warning(
                "No estimate for %s item(s) without packing data: %s",
                len(unestimated),
                ", ".join(entry["sku"] for entry in unestimated),
            )

    occupancy = occupancy_allocator.allocate_occupancy(
        decomposition,
        linear_feet,
        grade_thresholds=grade_thresholds,
    )

    narrative = None
    if generator is not None and decomposition["entries"]:
        narrative = generator.packing_commentary(_commentary_context(items, footage, decomposition))

    return {
        "items": items,
        "truck_type": decomposition["truck_type"],
        "truck_type_label": truck_type_label(decomposition["truck_type"]),
        "trucks_needed": decomposition["trucks_needed"],
        "entries": decomposition["entries"],
        "summary": decomposition["summary"],
        "linear_feet": round(linear_feet, 2),
        "packed_linear_feet": footage["display_linear_feet"],
        "groups": footage["groups"],
        "occupancy": occupancy,
        "packing_notes": packing_notes,
        "narrative": narrative,
        "total_weight_lbs": footage["total_weight_lbs"],
        "errors": footage["errors"],
        "excluded_items": footage["excluded"],
        "unestimated_items": unestimated,
        "estimate": estimate,
        "warnings": _weight_warnings(footage["total_weight_lbs"], decomposition["trucks_needed"]),
    }


def truck_type_label(truck_type):
    if truck_type == "MIXED":
        return "Mixed"
    if truck_type == "NONE":
        return "No Truck"
    return truck_label(truck_type)


def recover_plan_from_text(text, total_linear_feet, grade_thresholds=None):
    """Rebuild entries and occupancy from saved or generated recommendation text."""
    total_ft = truck_decomposer.coerce_linear_feet(total_linear_feet)
    entries = recommendation_parser.parse_recommendation(text)
    truck_type = truck_decomposer.decomposition_type(entries)
    occupancy = []
    if entries:
        occupancy = occupancy_allocator.allocate_occupancy(
            entries,
            total_ft,
            grade_thresholds=grade_thresholds,
        )
    return {
        "truck_type": truck_type,
        "truck_type_label": truck_type_label(truck_type),
        "entries": entries,
        "trucks_needed": sum(entry["count"] for entry in entries),
        "summary": format_entries(entries),
        "recommendation_summary": recommendation_parser.extract_recommendation_summary(text),
        "linear_feet": round(total_ft, 2),
        "occupancy": occupancy,
    }
