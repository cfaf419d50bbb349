import logging
import os

from services.generator_providers.http_generator_provider import (
    GeneratorProviderError,
    HttpGeneratorProvider,
)
from services.truck_classes import normalize_truck_class

logger = logging.getLogger(__name__)

_GENERATOR_SERVICE = None


def get_generator_service():
    global _GENERATOR_SERVICE
    if _GENERATOR_SERVICE is None:
        _GENERATOR_SERVICE = GeneratorService()
    return _GENERATOR_SERVICE


def reset_generator_service():
    global _GENERATOR_SERVICE
    _GENERATOR_SERVICE = None


def _as_bool(value, default=False):
    if value is None:
        return bool(default)
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in {"1", "true", "yes", "on", "y"}:
        return True
    if text in {"0", "false", "no", "off", "n"}:
        return False
    return bool(default)


def _as_int(value, default):
    try:
        return int(value)
    except (TypeError, ValueError):
        return int(default)


def _env(name, default=None):
    value = os.environ.get(name)
    text = str(value).strip() if value is not None else ""
    return text or default


def _positive_number(value):
    try:
        parsed = float(value)
    except (TypeError, ValueError):
        return None
    if parsed != parsed or parsed < 0 or parsed == float("inf"):
        return None
    return parsed


class GeneratorService:
    """Optional external narrative/estimation collaborator.

    Every call returns None when the generator is disabled, unconfigured or
    failing; callers treat None as "no answer" and keep the deterministic plan.
    """

    def __init__(self, provider=None):
        self.enabled = _as_bool(_env("GENERATOR_ENABLED"), default=False)
        self.timeout_ms = _as_int(_env("GENERATOR_TIMEOUT_MS"), 15000)
        self.retries = _as_int(_env("GENERATOR_RETRIES"), 1)
        self.provider = provider
        if self.provider is None and self.enabled:
            base_url = _env("GENERATOR_API_URL") or ""
            if base_url:
                self.provider = HttpGeneratorProvider(
                    base_url=base_url,
                    api_key=_env("GENERATOR_API_KEY"),
                    timeout_ms=self.timeout_ms,
                    retries=self.retries,
                )
            else:
                logger.warning("GENERATOR_ENABLED is true but GENERATOR_API_URL is missing.")
        self.stats = {
            "requests": 0,
            "success": 0,
            "errors": 0,
        }

    @property
    def available(self):
        return self.provider is not None

    def packing_commentary(self, plan_context):
        if not self.available:
            return None
        self.stats["requests"] += 1
        try:
            commentary = self.provider.packing_commentary(plan_context)
        except GeneratorProviderError as exc:
            self.stats["errors"] += 1
            logger.warning("Packing commentary unavailable: %s", exc)
            return None
        self.stats["success"] += 1
        return commentary.strip() or None

    def estimate_trucks(self, items):
        if not self.available or not items:
            return None
        self.stats["requests"] += 1
        try:
            raw = self.provider.estimate_trucks(items)
        except GeneratorProviderError as exc:
            self.stats["errors"] += 1
            logger.warning("Truck estimate unavailable for %s item(s): %s", len(items), exc)
            return None

        truck_class = normalize_truck_class(raw.get("truck_type"))
        count = _as_int(raw.get("number_of_trucks"), 0)
        if not truck_class or count < 1:
            self.stats["errors"] += 1
            logger.warning(
                "Discarding malformed truck estimate: truck_type=%r number_of_trucks=%r",
                raw.get("truck_type"),
                raw.get("number_of_trucks"),
            )
            return None
        self.stats["success"] += 1
        return {
            "truck_class": truck_class,
            "count": count,
            "linear_feet": _positive_number(raw.get("linear_feet")),
            "reasoning": str(raw.get("reasoning") or "").strip(),
        }
