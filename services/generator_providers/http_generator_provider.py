import json
import urllib.error
import urllib.request


class GeneratorProviderError(RuntimeError):
    """Raised for generator transport or response issues."""


class HttpGeneratorProvider:
    COMMENTARY_PATH = "/v1/packing-commentary"
    ESTIMATE_PATH = "/v1/truck-estimate"

    def __init__(self, base_url, api_key=None, timeout_ms=15000, retries=1):
        self.base_url = (base_url or "").strip().rstrip("/")
        self.api_key = (api_key or "").strip()
        self.timeout_seconds = max(float(timeout_ms or 15000) / 1000.0, 0.5)
        self.retries = max(int(retries or 0), 0)

    def packing_commentary(self, plan_context):
        data = self._post_json(self.COMMENTARY_PATH, plan_context)
        commentary = data.get("commentary")
        if commentary is None:
            commentary = data.get("packing_notes")
        if not isinstance(commentary, str):
            raise GeneratorProviderError("Generator returned no commentary text.")
        return commentary

    def estimate_trucks(self, items):
        payload = {"items": [self._estimate_item_payload(item) for item in items or []]}
        data = self._post_json(self.ESTIMATE_PATH, payload)
        recommendation = data.get("truck_recommendation") or data
        if not isinstance(recommendation, dict):
            raise GeneratorProviderError("Generator returned a malformed truck estimate.")
        return {
            "truck_type": recommendation.get("truck_type"),
            "number_of_trucks": recommendation.get("number_of_trucks"),
            "linear_feet": recommendation.get("linear_feet"),
            "reasoning": recommendation.get("reasoning") or "",
        }

    def _estimate_item_payload(self, item):
        attributes = item.get("attributes") or {}
        payload = {"sku": item.get("sku"), "quantity": item.get("quantity")}
        for field in ("description", "weight_lbs", "length_in", "width_in", "height_in"):
            value = attributes.get(field)
            if value not in (None, ""):
                payload[field] = value
        return payload

    def _post_json(self, path, payload):
        if not self.base_url:
            raise GeneratorProviderError("Missing generator base URL.")

        url = f"{self.base_url}{path}"
        body = json.dumps(payload).encode("utf-8")
        headers = {
            "Content-Type": "application/json",
            "Accept": "application/json",
        }
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"

        last_error = None
        for attempt in range(self.retries + 1):
            request = urllib.request.Request(
                url=url,
                data=body,
                headers=headers,
                method="POST",
            )
            try:
                with urllib.request.urlopen(request, timeout=self.timeout_seconds) as response:
                    raw = response.read().decode("utf-8")
                    parsed = json.loads(raw) if raw else {}
                    if not isinstance(parsed, dict):
                        raise GeneratorProviderError(f"Generator returned a non-object body for {path}.")
                    return parsed
            except urllib.error.HTTPError as exc:
                raw = exc.read().decode("utf-8", errors="replace")
                message = raw.strip() or str(exc)
                last_error = GeneratorProviderError(
                    f"Generator HTTP {exc.code} for {path}: {message}"
                )
                if exc.code in {429, 500, 502, 503, 504} and attempt < self.retries:
                    continue
                break
            except (urllib.error.URLError, TimeoutError, ValueError) as exc:
                last_error = GeneratorProviderError(
                    f"Generator request failed for {path}: {exc}"
                )
                if attempt < self.retries:
                    continue
                break

        raise last_error or GeneratorProviderError(f"Generator request failed for {path}.")
