import logging
import os
from datetime import date

from flask import (
    Flask,
    Response,
    jsonify,
    redirect,
    render_template,
    request,
    session,
    url_for,
)

import db
from services import (
    catalog,
    plan_export,
    recommendation_parser,
    settings,
    shipment_importer,
    shipment_planner,
    truck_decomposer,
    validation,
)
from services.generator_service import get_generator_service
from services.shipment_importer import ShipmentUploadError
from services.truck_decomposer import InvalidInput

logger = logging.getLogger(__name__)

SESSION_ITEMS_KEY = "shipment_items"
MAX_SESSION_ITEMS = 200
EMPTY_SHIPMENT_MESSAGE = "Please add at least one item to calculate."
JSON_OBJECT_MESSAGE = "Expected a JSON object."


def _is_local_dev_mode():
    env_hint = (os.environ.get("APP_ENV") or os.environ.get("FLASK_ENV") or "").strip().lower()
    if env_hint in {"dev", "development", "local", "test"}:
        return True
    return os.environ.get("FLASK_DEBUG", "").strip() == "1"


def _env_bool(name, default=False):
    raw = os.environ.get(name)
    if raw is None:
        return bool(default)
    normalized = str(raw).strip().lower()
    if normalized in {"1", "true", "yes", "on", "y"}:
        return True
    if normalized in {"0", "false", "no", "off", "n"}:
        return False
    return bool(default)


app = Flask(__name__)
_configured_secret = (os.environ.get("FLASK_SECRET_KEY") or "").strip()
if not _configured_secret and not _is_local_dev_mode():
    raise RuntimeError(
        "FLASK_SECRET_KEY must be set for non-development environments."
    )
if not _configured_secret:
    _configured_secret = "dev-session-key"
    logger.warning("Using development session secret key.")
app.secret_key = _configured_secret
app.config.update(
    SESSION_COOKIE_HTTPONLY=True,
    SESSION_COOKIE_SAMESITE="Lax",
    SESSION_COOKIE_SECURE=_env_bool(
        "SESSION_COOKIE_SECURE",
        default=not _is_local_dev_mode(),
    ),
)

db.init_db()


@app.template_filter("feet")
def feet_filter(value):
    try:
        return f"{float(value):,.2f} ft"
    except (TypeError, ValueError):
        return "0.00 ft"


@app.template_filter("pct")
def pct_filter(value):
    try:
        return f"{float(value) * 100:.0f}%"
    except (TypeError, ValueError):
        return "0%"


def _session_items():
    return list(session.get(SESSION_ITEMS_KEY) or [])


def _save_session_items(items):
    session[SESSION_ITEMS_KEY] = items[:MAX_SESSION_ITEMS]
    session.modified = True


def _json_object():
    payload = request.get_json(silent=True)
    return payload if isinstance(payload, dict) else None


def _active_generator():
    generator = get_generator_service()
    return generator if generator.available else None


def _build_plan(items):
    return shipment_planner.plan_shipment(
        items,
        catalog.db_lookup(),
        generator=_active_generator(),
        grade_thresholds=settings.get_utilization_grade_thresholds(),
    )


def _render_calculator(plan=None, errors=None, form_data=None, status=200):
    context = {
        "items": _session_items(),
        "sku_options": catalog.list_catalog_options(),
        "plan": plan,
        "errors": errors or {},
        "form_data": form_data or {"sku": "", "quantity": "1"},
    }
    return render_template("calculator.html", **context), status


@app.route("/")
def calculator():
    return _render_calculator()


@app.route("/items", methods=["POST"])
def add_item():
    sku = (request.form.get("sku") or "").strip().upper()
    quantity = (request.form.get("quantity") or "").strip()

    errors = {}
    validation.validate_sku(sku, "sku", errors)
    validation.validate_positive_int(quantity, "quantity", errors)
    if errors:
        return _render_calculator(errors=errors, form_data={"sku": sku, "quantity": quantity}, status=400)

    items = _session_items()
    items.append({"sku": sku, "quantity": int(quantity)})
    _save_session_items(items)
    return redirect(url_for("calculator"))


@app.route("/items/<int:index>/delete", methods=["POST"])
def remove_item(index):
    items = _session_items()
    if 0 <= index < len(items):
        items.pop(index)
        _save_session_items(items)
    return redirect(url_for("calculator"))


@app.route("/items/clear", methods=["POST"])
def clear_items():
    _save_session_items([])
    return redirect(url_for("calculator"))


@app.route("/items/upload", methods=["POST"])
def upload_items():
    file = request.files.get("file")
    if not file or not getattr(file, "filename", ""):
        return jsonify({"error": "Please choose a CSV or Excel file to upload."}), 400
    try:
        summary = shipment_importer.parse_shipment_file(file.stream, file.filename)
    except ShipmentUploadError as exc:
        return jsonify({"error": str(exc), "rejected_rows": exc.rejected_rows}), 400
    except Exception as exc:
        logger.exception("Failed to read shipment upload %s", file.filename)
        return jsonify({"error": f"Upload failed: {exc}"}), 400

    items = _session_items() + summary["items"]
    _save_session_items(items)
    return jsonify(
        {
            "filename": file.filename,
            "added": len(summary["items"]),
            "total_rows": summary["total_rows"],
            "rejected_rows": summary["rejected_rows"],
            "item_count": len(_session_items()),
        }
    )


@app.route("/calculate", methods=["POST"])
def calculate():
    items = _session_items()
    if not items:
        return _render_calculator(errors={"items": EMPTY_SHIPMENT_MESSAGE}, status=400)
    try:
        plan = _build_plan(items)
    except InvalidInput as exc:
        return _render_calculator(errors={"items": str(exc)}, status=400)
    return _render_calculator(plan=plan)


@app.route("/plan/export.xlsx")
def export_plan():
    items = _session_items()
    if not items:
        return redirect(url_for("calculator"))
    plan = _build_plan(items)
    filename = f"truck_plan_{date.today().isoformat()}.xlsx"
    return Response(
        plan_export.plan_workbook_bytes(plan),
        mimetype="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )


@app.route("/api/skus")
def api_skus():
    return jsonify({"skus": catalog.list_catalog_options()})


@app.route("/api/plan", methods=["POST"])
def api_plan():
    payload = _json_object()
    if payload is None:
        return jsonify({"error": JSON_OBJECT_MESSAGE}), 400
    items = payload.get("items")
    if not isinstance(items, list) or not items:
        return jsonify({"error": "No items to calculate."}), 400
    try:
        plan = _build_plan(items)
    except InvalidInput as exc:
        return jsonify({"error": str(exc)}), 400
    return jsonify(plan)


@app.route("/api/decompose", methods=["POST"])
def api_decompose():
    payload = _json_object()
    if payload is None:
        return jsonify({"error": JSON_OBJECT_MESSAGE}), 400
    try:
        decomposition = truck_decomposer.decompose(payload.get("linear_feet"))
    except InvalidInput as exc:
        return jsonify({"error": str(exc)}), 400
    return jsonify(decomposition)


@app.route("/api/recommendation/parse", methods=["POST"])
def api_parse_recommendation():
    payload = _json_object()
    if payload is None:
        return jsonify({"error": JSON_OBJECT_MESSAGE}), 400
    text = payload.get("text")
    linear_feet = payload.get("linear_feet")
    if linear_feet is None:
        return jsonify({"entries": recommendation_parser.parse_recommendation(text)})
    try:
        recovered = shipment_planner.recover_plan_from_text(
            text,
            linear_feet,
            grade_thresholds=settings.get_utilization_grade_thresholds(),
        )
    except InvalidInput as exc:
        return jsonify({"error": str(exc)}), 400
    return jsonify(recovered)


@app.route("/api/settings/utilization-grades", methods=["GET", "POST"])
def api_utilization_grades():
    if request.method == "POST":
        payload = _json_object()
        if payload is None:
            return jsonify({"error": "Expected a JSON object with A, B, C and D thresholds."}), 400
        return jsonify({"thresholds": settings.save_utilization_grade_thresholds(payload)})
    return jsonify({"thresholds": settings.get_utilization_grade_thresholds()})


if __name__ == "__main__":
    app.run(debug=_is_local_dev_mode())
