from pathlib import Path

import pandas as pd

from services.catalog import normalize_sku

REQUIRED_COLUMNS = ["sku", "quantity"]

COLUMN_ALIASES = {
    "item": "sku",
    "itemnum": "sku",
    "item #": "sku",
    "key": "sku",
    "qty": "quantity",
    "ordqty": "quantity",
    "units": "quantity",
}


class ShipmentUploadError(ValueError):
    def __init__(self, message, rejected_rows=None):
        super().__init__(message)
        self.rejected_rows = rejected_rows or []


def _normalize_columns(columns):
    column_map = {}
    for column in columns:
        key = str(column or "").strip().lower()
        column_map[column] = COLUMN_ALIASES.get(key, key)
    return column_map


def _read_frame(file_stream, filename):
    suffix = Path(filename or "").suffix.lower()
    if suffix in {".xlsx", ".xlsm"}:
        return pd.read_excel(file_stream, sheet_name=0, dtype=str).fillna("")
    return pd.read_csv(file_stream, dtype=str, keep_default_na=False)


def _parse_quantity(value):
    text = str(value or "").strip().replace(",", "")
    if not text:
        return None
    try:
        parsed = float(text)
    except ValueError:
        return None
    if parsed <= 0 or not parsed.is_integer():
        return None
    return int(parsed)


def parse_shipment_file(file_stream, filename=""):
    """Read `sku,quantity` rows from an uploaded CSV or Excel sheet.

    Rows with a blank SKU are ignored; rows with a bad quantity are returned
    in `rejected_rows`. Repeated SKUs stay as separate lines in file order.
    """
    df = _read_frame(file_stream, filename)
    df = df.rename(columns=_normalize_columns(df.columns))
    missing = [column for column in REQUIRED_COLUMNS if column not in df.columns]
    if missing:
        raise ShipmentUploadError(f"Missing required columns: {missing}")

    items = []
    rejected_rows = []
    for row_number, row in enumerate(df.to_dict(orient="records"), start=2):
        sku = normalize_sku(row.get("sku"))
        if not sku:
            continue
        quantity = _parse_quantity(row.get("quantity"))
        if quantity is None:
            rejected_rows.append(
                {
                    "row": row_number,
                    "sku": sku,
                    "quantity": str(row.get("quantity") or ""),
                    "reason": "Quantity must be a positive whole number.",
                }
            )
            continue
        items.append({"sku": sku, "quantity": quantity})

    if not items:
        raise ShipmentUploadError("No usable item rows found in the upload.", rejected_rows)

    return {
        "items": items,
        "rejected_rows": rejected_rows,
        "total_rows": len(df),
    }
