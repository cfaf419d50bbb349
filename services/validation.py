import re

SKU_PATTERN = re.compile(r"^[A-Z0-9][A-Z0-9._/\- ]*$")


def _label(field_name):
    return field_name.replace("_", " ").title()


def validate_sku(value, field_name, errors):
    text = str(value or "").strip().upper()
    if not text:
        errors[field_name] = "SKU is required."
        return
    if not SKU_PATTERN.match(text):
        errors[field_name] = "SKU may only contain letters, digits, spaces and . _ / -"


def validate_positive_int(value, field_name, errors):
    if value is None or value == "":
        errors[field_name] = f"{_label(field_name)} is required."
        return
    if not str(value).strip().isdigit() or int(str(value).strip()) <= 0:
        errors[field_name] = f"{_label(field_name)} must be a positive number."
