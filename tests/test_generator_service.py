import io
import json
import unittest
import urllib.error
from unittest.mock import patch

from services import generator_service
from services.generator_providers.http_generator_provider import (
    GeneratorProviderError,
    HttpGeneratorProvider,
)


class _FakeResponse:
    def __init__(self, payload):
        self._body = json.dumps(payload).encode("utf-8")

    def read(self):
        return self._body

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        return False


def _http_error(code, body="busy"):
    return urllib.error.HTTPError(
        url="https://generator.test/v1/truck-estimate",
        code=code,
        msg="error",
        hdrs=None,
        fp=io.BytesIO(body.encode("utf-8")),
    )


class StubProvider:
    def __init__(self, estimate=None, commentary="", error=None):
        self.estimate = estimate
        self.commentary = commentary
        self.error = error

    def estimate_trucks(self, items):
        if self.error:
            raise self.error
        return self.estimate

    def packing_commentary(self, context):
        if self.error:
            raise self.error
        return self.commentary


class HttpGeneratorProviderTests(unittest.TestCase):
    def test_estimate_posts_items_with_bearer_token(self):
        provider = HttpGeneratorProvider("https://generator.test/", api_key="secret", retries=0)
        captured = {}

        def fake_urlopen(request, timeout=None):
            captured["url"] = request.full_url
            captured["auth"] = request.get_header("Authorization")
            captured["body"] = json.loads(request.data.decode("utf-8"))
            return _FakeResponse(
                {
                    "truck_recommendation": {
                        "truck_type": "LTL",
                        "number_of_trucks": 1,
                        "linear_feet": 6,
                        "reasoning": "Small load.",
                    }
                }
            )

        with patch("urllib.request.urlopen", side_effect=fake_urlopen):
            result = provider.estimate_trucks(
                [{"sku": "CURB", "quantity": 2, "attributes": {"weight_lbs": 35.0, "length_in": None}}]
            )

        self.assertEqual(captured["url"], "https://generator.test/v1/truck-estimate")
        self.assertEqual(captured["auth"], "Bearer secret")
        self.assertEqual(captured["body"], {"items": [{"sku": "CURB", "quantity": 2, "weight_lbs": 35.0}]})
        self.assertEqual(result["truck_type"], "LTL")
        self.assertEqual(result["number_of_trucks"], 1)
        self.assertEqual(result["reasoning"], "Small load.")

    def test_retries_on_server_busy_then_succeeds(self):
        provider = HttpGeneratorProvider("https://generator.test", retries=1)
        responses = [_http_error(503), _FakeResponse({"commentary": "Rolls first."})]

        with patch("urllib.request.urlopen", side_effect=responses) as mocked:
            self.assertEqual(provider.packing_commentary({"summary": "1 LTL"}), "Rolls first.")
        self.assertEqual(mocked.call_count, 2)

    def test_client_error_is_not_retried(self):
        provider = HttpGeneratorProvider("https://generator.test", retries=3)

        with patch("urllib.request.urlopen", side_effect=[_http_error(400, "bad request")]) as mocked:
            with self.assertRaises(GeneratorProviderError) as ctx:
                provider.packing_commentary({})
        self.assertEqual(mocked.call_count, 1)
        self.assertIn("HTTP 400", str(ctx.exception))

    def test_network_failure_raises_after_retries(self):
        provider = HttpGeneratorProvider("https://generator.test", retries=1)
        error = urllib.error.URLError("connection refused")

        with patch("urllib.request.urlopen", side_effect=[error, error]) as mocked:
            with self.assertRaises(GeneratorProviderError):
                provider.estimate_trucks([{"sku": "CURB", "quantity": 1}])
        self.assertEqual(mocked.call_count, 2)

    def test_missing_commentary_text_is_an_error(self):
        provider = HttpGeneratorProvider("https://generator.test", retries=0)
        with patch("urllib.request.urlopen", return_value=_FakeResponse({"other": 1})):
            with self.assertRaises(GeneratorProviderError):
                provider.packing_commentary({})

    def test_missing_base_url_is_an_error(self):
        with self.assertRaises(GeneratorProviderError):
            HttpGeneratorProvider("").packing_commentary({})


class GeneratorServiceTests(unittest.TestCase):
    def test_disabled_service_answers_none(self):
        with patch.dict("os.environ", {"GENERATOR_ENABLED": "false"}, clear=False):
            service = generator_service.GeneratorService()
        self.assertFalse(service.available)
        self.assertIsNone(service.estimate_trucks([{"sku": "CURB", "quantity": 1}]))
        self.assertIsNone(service.packing_commentary({}))
        self.assertEqual(service.stats["requests"], 0)

    def test_enabled_without_url_warns_and_stays_unavailable(self):
        env = {"GENERATOR_ENABLED": "true", "GENERATOR_API_URL": ""}
        with patch.dict("os.environ", env, clear=False):
            with self.assertLogs("services.generator_service", level="WARNING"):
                service = generator_service.GeneratorService()
        self.assertFalse(service.available)

    def test_enabled_with_url_builds_http_provider(self):
        env = {
            "GENERATOR_ENABLED": "yes",
            "GENERATOR_API_URL": "https://generator.test",
            "GENERATOR_API_KEY": "key",
            "GENERATOR_TIMEOUT_MS": "2000",
            "GENERATOR_RETRIES": "2",
        }
        with patch.dict("os.environ", env, clear=False):
            service = generator_service.GeneratorService()
        self.assertIsInstance(service.provider, HttpGeneratorProvider)
        self.assertEqual(service.provider.timeout_seconds, 2.0)
        self.assertEqual(service.provider.retries, 2)

    def test_estimate_is_normalized(self):
        provider = StubProvider(
            estimate={
                "truck_type": "Half Truck",
                "number_of_trucks": "1",
                "linear_feet": "18.5",
                "reasoning": " Curbs stand upright. ",
            }
        )
        service = generator_service.GeneratorService(provider=provider)
        estimate = service.estimate_trucks([{"sku": "CURB", "quantity": 1}])
        self.assertEqual(
            estimate,
            {"truck_class": "HALF", "count": 1, "linear_feet": 18.5, "reasoning": "Curbs stand upright."},
        )
        self.assertEqual(service.stats["success"], 1)

    def test_malformed_estimate_is_discarded(self):
        for raw in [
            {"truck_type": "Barge", "number_of_trucks": 1},
            {"truck_type": "LTL", "number_of_trucks": 0},
            {"truck_type": "LTL", "number_of_trucks": "many"},
        ]:
            with self.subTest(raw=raw):
                service = generator_service.GeneratorService(provider=StubProvider(estimate=raw))
                with self.assertLogs("services.generator_service", level="WARNING"):
                    self.assertIsNone(service.estimate_trucks([{"sku": "CURB", "quantity": 1}]))
                self.assertEqual(service.stats["errors"], 1)

    def test_provider_errors_fall_back_to_none(self):
        provider = StubProvider(error=GeneratorProviderError("timeout"))
        service = generator_service.GeneratorService(provider=provider)
        with self.assertLogs("services.generator_service", level="WARNING"):
            self.assertIsNone(service.estimate_trucks([{"sku": "CURB", "quantity": 1}]))
        with self.assertLogs("services.generator_service", level="WARNING"):
            self.assertIsNone(service.packing_commentary({}))
        self.assertEqual(service.stats["errors"], 2)

    def test_blank_commentary_is_none(self):
        service = generator_service.GeneratorService(provider=StubProvider(commentary="   "))
        self.assertIsNone(service.packing_commentary({}))

    def test_singleton_can_be_reset(self):
        generator_service.reset_generator_service()
        first = generator_service.get_generator_service()
        self.assertIs(first, generator_service.get_generator_service())
        generator_service.reset_generator_service()
        self.assertIsNot(first, generator_service.get_generator_service())
        generator_service.reset_generator_service()


if __name__ == "__main__":
    unittest.main()
