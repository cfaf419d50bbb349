import csv
import os
import sqlite3
from datetime import datetime
from pathlib import Path

ROOT = Path(__file__).resolve().parent
DEFAULT_DB_PATH = str(ROOT / "data" / "db" / "app.db")
DB_PATH = Path(os.environ.get("APP_DB_PATH", DEFAULT_DB_PATH))
SEED_DIR = Path(os.environ.get("APP_SEED_DIR", str(ROOT / "data" / "seed")))

SKU_SPEC_COLUMNS = [
    "sku",
    "description",
    "category",
    "weight_lbs",
    "length_in",
    "width_in",
    "height_in",
    "rolls_per_pallet",
    "units_per_pallet",
    "pallet_length_ft",
    "notes",
    "created_at",
]


def get_connection():
    timeout_sec_raw = os.environ.get("SQLITE_BUSY_TIMEOUT_SEC", "30")
    try:
        timeout_sec = max(float(timeout_sec_raw), 1.0)
    except (TypeError, ValueError):
        timeout_sec = 30.0
    timeout_ms = int(timeout_sec * 1000)

    db_path = Path(DB_PATH)
    db_path.parent.mkdir(parents=True, exist_ok=True)
    connection = sqlite3.connect(db_path, timeout=timeout_sec)
    connection.row_factory = sqlite3.Row
    connection.execute("PRAGMA journal_mode=WAL")
    connection.execute("PRAGMA synchronous=NORMAL")
    connection.execute(f"PRAGMA busy_timeout={timeout_ms}")
    return connection


def _coerce_seed_value(value):
    if value is None:
        return None
    text = str(value)
    if text == "":
        return None
    return value


def _seed_table_from_csv(connection, table_name, filename, columns):
    path = SEED_DIR / filename
    if not path.exists():
        return False
    existing = connection.execute(
        f"SELECT COUNT(*) FROM {table_name}"
    ).fetchone()
    if existing and existing[0]:
        return False

    created_at = datetime.utcnow().isoformat(timespec="seconds")
    with path.open("r", newline="", encoding="utf-8") as handle:
        reader = csv.DictReader(handle)
        rows = []
        for row in reader:
            values = []
            for col in columns:
                value = _coerce_seed_value(row.get(col))
                if value is None and col in {"created_at", "updated_at"}:
                    value = created_at
                values.append(value)
            rows.append(values)

    if not rows:
        return False

    placeholders = ", ".join("?" for _ in columns)
    column_list = ", ".join(columns)
    connection.executemany(
        f"INSERT INTO {table_name} ({column_list}) VALUES ({placeholders})",
        rows,
    )
    return True


def _seed_reference_data(connection):
    seeds = [
        ("sku_specifications", "sku_specifications.csv", SKU_SPEC_COLUMNS),
        ("planning_settings", "planning_settings.csv", ["key", "value_text", "updated_at"]),
    ]

    for table_name, filename, columns in seeds:
        try:
            _seed_table_from_csv(connection, table_name, filename, columns)
        except sqlite3.Error:
            continue


def init_db():
    with get_connection() as connection:
        connection.execute(
            """
            CREATE TABLE IF NOT EXISTS sku_specifications (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                sku TEXT NOT NULL UNIQUE,
                description TEXT,
                category TEXT,
                weight_lbs REAL,
                length_in REAL,
                width_in REAL,
                height_in REAL,
                rolls_per_pallet REAL,
                units_per_pallet REAL,
                pallet_length_ft REAL,
                notes TEXT,
                created_at TEXT NOT NULL
            )
            """
        )
        connection.execute(
            """
            CREATE TABLE IF NOT EXISTS planning_settings (
                key TEXT PRIMARY KEY,
                value_text TEXT,
                updated_at TEXT
            )
            """
        )
        _seed_reference_data(connection)
        connection.commit()


def list_sku_specs():
    with get_connection() as connection:
        rows = connection.execute(
            """
            SELECT id, sku, description, category, weight_lbs, length_in, width_in, height_in,
                   rolls_per_pallet, units_per_pallet, pallet_length_ft, notes, created_at
            FROM sku_specifications
            ORDER BY sku ASC
            """
        ).fetchall()
        return [dict(row) for row in rows]


def get_sku_spec(sku):
    sku = (sku or "").strip().upper()
    if not sku:
        return None
    with get_connection() as connection:
        row = connection.execute(
            """
            SELECT id, sku, description, category, weight_lbs, length_in, width_in, height_in,
                   rolls_per_pallet, units_per_pallet, pallet_length_ft, notes, created_at
            FROM sku_specifications
            WHERE UPPER(sku) = ?
            """,
            (sku,),
        ).fetchone()
        return dict(row) if row else None


def upsert_sku_spec(spec):
    created_at = datetime.utcnow().isoformat(timespec="seconds")
    sku = (spec.get("sku") or "").strip().upper()
    if not sku:
        raise ValueError("SKU is required.")
    with get_connection() as connection:
        connection.execute(
            """
            INSERT INTO sku_specifications (
                sku, description, category, weight_lbs, length_in, width_in, height_in,
                rolls_per_pallet, units_per_pallet, pallet_length_ft, notes, created_at
            )
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT(sku) DO UPDATE SET
                description = excluded.description,
                category = excluded.category,
                weight_lbs = excluded.weight_lbs,
                length_in = excluded.length_in,
                width_in = excluded.width_in,
                height_in = excluded.height_in,
                rolls_per_pallet = excluded.rolls_per_pallet,
                units_per_pallet = excluded.units_per_pallet,
                pallet_length_ft = excluded.pallet_length_ft,
                notes = excluded.notes
            """,
            (
                sku,
                spec.get("description"),
                spec.get("category"),
                spec.get("weight_lbs"),
                spec.get("length_in"),
                spec.get("width_in"),
                spec.get("height_in"),
                spec.get("rolls_per_pallet"),
                spec.get("units_per_pallet"),
                spec.get("pallet_length_ft"),
                spec.get("notes"),
                created_at,
            ),
        )
        connection.commit()


def delete_sku_spec(sku):
    with get_connection() as connection:
        connection.execute(
            "DELETE FROM sku_specifications WHERE UPPER(sku) = ?",
            ((sku or "").strip().upper(),),
        )
        connection.commit()


def get_planning_setting(key):
    key = (key or "").strip()
    if not key:
        return None
    with get_connection() as connection:
        row = connection.execute(
            "SELECT key, value_text, updated_at FROM planning_settings WHERE key = ?",
            (key,),
        ).fetchone()
        return dict(row) if row else None


def upsert_planning_setting(key, value_text):
    key = (key or "").strip()
    if not key:
        raise ValueError("Setting key is required.")
    value_text = None if value_text is None else str(value_text)
    with get_connection() as connection:
        connection.execute(
            """
            INSERT INTO planning_settings (key, value_text, updated_at)
            VALUES (?, ?, datetime('now'))
            ON CONFLICT(key) DO UPDATE SET
                value_text = excluded.value_text,
                updated_at = excluded.updated_at
            """,
            (key, value_text),
        )
        connection.commit()
