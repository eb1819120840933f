import asyncio
import unittest
import sys
from pathlib import Path
from unittest.mock import AsyncMock, patch

import httpx

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from contract_health.core.errors import BackgroundCheckError
from contract_health.services.background_check import (
    QUERY_TEMPLATES,
    TavilyBackgroundChecker,
    build_queries,
)


def _response(url: str, status_code: int = 200, payload=None) -> httpx.Response:
    return httpx.Response(
        status_code,
        json=payload if payload is not None else {"results": [{"title": "Acme Ltd.", "url": "https://acme.example"}]},
        request=httpx.Request("POST", url),
    )


class BackgroundCheckTests(unittest.TestCase):
    def setUp(self):
        self.checker = TavilyBackgroundChecker(
            api_key="tvly-test",
            base_url="https://search.example/",
            max_results=3,
            timeout_s=5,
        )

    def test_build_queries_falls_back_to_company(self):
        queries = build_queries("Acme Ltd.")
        self.assertEqual(set(queries), set(QUERY_TEMPLATES))
        self.assertTrue(queries["responsible_person"].startswith("Acme Ltd. Acme Ltd."))

        with_person = build_queries("Acme Ltd.", "Jane Chen")
        self.assertIn("Jane Chen", with_person["responsible_person_legal"])

    def test_runs_every_query_and_keys_results(self):
        async def fake_post(url, json=None, headers=None):
            return _response(url, payload={"query": json["query"], "results": []})

        with patch.object(httpx.AsyncClient, "post", new=AsyncMock(side_effect=fake_post)) as mocked:
            results = asyncio.run(self.checker.run("Acme Ltd.", "Jane Chen"))

        self.assertEqual(set(results), set(QUERY_TEMPLATES))
        self.assertEqual(mocked.await_count, len(QUERY_TEMPLATES))
        first_call = mocked.await_args_list[0]
        self.assertEqual(first_call.args[0], "https://search.example/search")
        self.assertEqual(first_call.kwargs["json"]["max_results"], 3)
        self.assertEqual(first_call.kwargs["headers"]["Authorization"], "Bearer tvly-test")
        self.assertIn("Jane Chen", results["responsible_person"]["query"])

    def test_single_failed_query_fails_the_whole_check(self):
        async def fake_post(url, json=None, headers=None):
            if "litigation" in json["query"]:
                return _response(url, status_code=500, payload={"error": "boom"})
            return _response(url)

        with patch.object(httpx.AsyncClient, "post", new=AsyncMock(side_effect=fake_post)):
            with self.assertRaises(BackgroundCheckError) as ctx:
                asyncio.run(self.checker.run("Acme Ltd."))

        self.assertEqual(ctx.exception.query, "legal")
        self.assertEqual(ctx.exception.details(), {"query": "legal"})
        self.assertEqual(ctx.exception.status_code, 503)

    def test_failure_is_raised_only_after_every_query_settles(self):
        finished: list[str] = []

        async def fake_post(url, json=None, headers=None):
            if "customs" in json["query"]:
                return _response(url, status_code=500, payload={"error": "boom"})
            await asyncio.sleep(0.05)
            finished.append(json["query"])
            return _response(url)

        with patch.object(httpx.AsyncClient, "post", new=AsyncMock(side_effect=fake_post)):
            with self.assertRaises(BackgroundCheckError) as ctx:
                asyncio.run(self.checker.run("Acme Ltd."))

        self.assertEqual(ctx.exception.query, "customs")
        self.assertEqual(len(finished), len(QUERY_TEMPLATES) - 1)

    def test_transport_error_is_wrapped(self):
        async def fake_post(url, json=None, headers=None):
            raise httpx.ConnectError("connection refused", request=httpx.Request("POST", url))

        with patch.object(httpx.AsyncClient, "post", new=AsyncMock(side_effect=fake_post)):
            with self.assertRaises(BackgroundCheckError):
                asyncio.run(self.checker.run("Acme Ltd."))

    def test_missing_api_key(self):
        checker = TavilyBackgroundChecker(api_key="", base_url="https://search.example")
        with patch.object(httpx.AsyncClient, "post", new=AsyncMock()) as mocked:
            with self.assertRaises(BackgroundCheckError):
                asyncio.run(checker.run("Acme Ltd."))
        mocked.assert_not_awaited()


if __name__ == "__main__":
    unittest.main()
