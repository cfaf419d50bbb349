import json
import logging
import time

import db
from services.occupancy_allocator import DEFAULT_UTILIZATION_GRADE_THRESHOLDS, normalize_grade_thresholds

logger = logging.getLogger(__name__)

GRADE_THRESHOLDS_SETTING_KEY = "utilization_grade_thresholds"
CACHE_TTL_SECONDS = 30.0

# Loaded thresholds and the monotonic time they were read.
_grade_cache = {"thresholds": None, "loaded_at": 0.0}


def _read_stored_thresholds():
    setting = db.get_planning_setting(GRADE_THRESHOLDS_SETTING_KEY) or {}
    raw_text = (setting.get("value_text") or "").strip()
    if not raw_text:
        return dict(DEFAULT_UTILIZATION_GRADE_THRESHOLDS)
    try:
        return normalize_grade_thresholds(json.loads(raw_text))
    except json.JSONDecodeError:
        logger.warning("Ignoring malformed %s setting; using default grades.", GRADE_THRESHOLDS_SETTING_KEY)
        return dict(DEFAULT_UTILIZATION_GRADE_THRESHOLDS)


def invalidate_utilization_grade_thresholds_cache():
    _grade_cache["thresholds"] = None


def get_utilization_grade_thresholds(force_refresh=False):
    cached = _grade_cache["thresholds"]
    age = time.monotonic() - _grade_cache["loaded_at"]
    if force_refresh or cached is None or age >= CACHE_TTL_SECONDS:
        cached = _read_stored_thresholds()
        _grade_cache.update(thresholds=cached, loaded_at=time.monotonic())
    return dict(cached)


def save_utilization_grade_thresholds(raw_value):
    thresholds = normalize_grade_thresholds(raw_value)
    db.upsert_planning_setting(GRADE_THRESHOLDS_SETTING_KEY, json.dumps(thresholds))
    _grade_cache.update(thresholds=dict(thresholds), loaded_at=time.monotonic())
    return thresholds
