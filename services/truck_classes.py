TRUCK_CLASSES = {
    "LTL": {"capacity": 14.0, "label": "LTL", "rank": 0},
    "HALF": {"capacity": 24.0, "label": "Half Truck", "rank": 1},
    "FULL": {"capacity": 48.0, "label": "Full Truck", "rank": 2},
}

# Largest first; keyword scans and display report classes in this order.
TRUCK_CLASS_PRIORITY = ["FULL", "HALF", "LTL"]

LABEL_ALIASES = {
    "LTL": "LTL",
    "LESS THAN TRUCKLOAD": "LTL",
    "HALF": "HALF",
    "HALF TRUCK": "HALF",
    "FULL": "FULL",
    "FULL TRUCK": "FULL",
}


def normalize_truck_class(value):
    text = " ".join(str(value or "").replace("-", " ").split()).upper()
    if not text:
        return None
    if text in TRUCK_CLASSES:
        return text
    return LABEL_ALIASES.get(text)


def truck_capacity(truck_class):
    return TRUCK_CLASSES[truck_class]["capacity"]


def truck_label(truck_class):
    config = TRUCK_CLASSES.get(truck_class)
    if not config:
        return str(truck_class or "")
    return config["label"]


def format_entry(truck_class, count):
    if truck_class == "LTL":
        return f"{count} LTL"
    return f"{count} {truck_label(truck_class)}(s)"


def format_entries(entries):
    parts = [format_entry(entry["truck_class"], entry["count"]) for entry in entries or []]
    if not parts:
        return "No trucks required"
    return " and ".join(parts)
