import argparse
import sys
from pathlib import Path

import pandas as pd

ROOT = Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

import db
from services.catalog import normalize_category, normalize_sku

COLUMN_MAP = {
    "SKU": "sku",
    "Description": "description",
    "Category": "category",
    "Weight": "weight_lbs",
    "Length": "length_in",
    "Width": "width_in",
    "Height": "height_in",
    "RollsPerPallet": "rolls_per_pallet",
    "QtyPerPallet": "units_per_pallet",
    "BoardsPerPallet": "units_per_pallet",
    "PalletLength": "pallet_length_ft",
    "Notes": "notes",
}

NUMERIC_FIELDS = {
    "weight_lbs",
    "length_in",
    "width_in",
    "height_in",
    "rolls_per_pallet",
    "units_per_pallet",
    "pallet_length_ft",
}


def _read_catalog(path):
    if Path(path).suffix.lower() in {".xlsx", ".xlsm"}:
        return pd.read_excel(path, sheet_name=0)
    return pd.read_csv(path)


def _clean(value, numeric=False):
    if value is None or pd.isna(value):
        return None
    if numeric:
        try:
            return float(value)
        except (TypeError, ValueError):
            return None
    text = str(value).strip()
    return text or None


def import_catalog(path):
    df = _read_catalog(path)
    imported = 0
    skipped = []
    for _, row in df.iterrows():
        spec = {}
        for column, field in COLUMN_MAP.items():
            if column not in df.columns:
                continue
            value = _clean(row.get(column), numeric=field in NUMERIC_FIELDS)
            if value is not None or field not in spec:
                spec[field] = value
        sku = normalize_sku(spec.get("sku"))
        if not sku:
            continue
        if spec.get("category") and not normalize_category(spec["category"]):
            skipped.append(sku)
            continue
        spec["sku"] = sku
        db.upsert_sku_spec(spec)
        imported += 1
    return {"imported": imported, "skipped": skipped}


def main():
    parser = argparse.ArgumentParser(description="Load a SKU catalog spreadsheet into the planner database.")
    parser.add_argument("path", help="CSV or XLSX catalog file")
    args = parser.parse_args()

    db.init_db()
    result = import_catalog(args.path)
    print(f"Imported {result['imported']} SKU(s).")
    if result["skipped"]:
        print(f"Skipped {len(result['skipped'])} SKU(s) with unknown categories: {', '.join(result['skipped'])}")


if __name__ == "__main__":
    main()
