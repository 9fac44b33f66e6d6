"""
HTTP Adapter Tests
==================
Routing, status codes, bodies and the CORS header contract of the posts
API, driven with azure.functions.HttpRequest objects.

Usage:
    python -m pytest tests/test_http_posts.py -v
"""
import sys
import os
import json
import tempfile
import unittest
from pathlib import Path
from unittest import mock

import azure.functions as func

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from src.function_blueprints import http_posts
from src.http.post_adapter import COLLECTION_METHODS, ITEM_METHODS, PostHttpAdapter
from src.services.post_service import PostService
from src.shared.config import DEFAULT_ALLOW_HEADERS, Settings, get_settings
from src.shared.file_store import FileRecordStore
from src.shared.record_store import InMemoryRecordStore
from src.specs.common.errors import ConfigurationError


def _request(method, url="http://localhost/api/posts", body=None, post_id=None, headers=None):
    if isinstance(body, (dict, list)):
        body = json.dumps(body).encode("utf-8")
    return func.HttpRequest(
        method=method,
        url=url if post_id is None else f"{url}/{post_id}",
        headers=headers or {},
        params={},
        route_params={"postId": post_id} if post_id is not None else {},
        body=body or b"",
    )


def _json(resp):
    return json.loads(resp.get_body().decode("utf-8"))


class BrokenStore(InMemoryRecordStore):
    def scan(self):
        raise TimeoutError("socket timed out")

    def get(self, key):
        raise TimeoutError("socket timed out")


class AdapterTestCase(unittest.TestCase):

    def setUp(self):
        self.store = InMemoryRecordStore()
        self.service = PostService(self.store)
        self.adapter = PostHttpAdapter(lambda: self.service, Settings())

    def collection(self, method, body=None, headers=None):
        return self.adapter.handle_collection(_request(method, body=body, headers=headers))

    def item(self, method, post_id, body=None):
        return self.adapter.handle_item(_request(method, body=body, post_id=post_id))

    def assertCors(self, resp, allow_methods):
        self.assertEqual(resp.headers["Access-Control-Allow-Origin"], "*")
        self.assertEqual(resp.headers["Access-Control-Allow-Headers"], DEFAULT_ALLOW_HEADERS)
        self.assertEqual(resp.headers["Access-Control-Allow-Methods"], allow_methods)


# ─────────────────────────────────────────────
#  Collection: /posts
# ─────────────────────────────────────────────

class TestCollection(AdapterTestCase):

    def test_list_empty(self):
        resp = self.collection("GET")
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(_json(resp), [])
        self.assertEqual(resp.mimetype, "application/json")
        self.assertCors(resp, COLLECTION_METHODS)

    def test_create_returns_201_with_generated_id(self):
        resp = self.collection("POST", {"title": "A", "content": "B"})
        self.assertEqual(resp.status_code, 201)
        body = _json(resp)
        self.assertTrue(body["postId"])
        self.assertEqual(body["title"], "A")
        self.assertEqual(body["imageUrl"], "")
        self.assertIn("createdAt", body)
        self.assertCors(resp, COLLECTION_METHODS)

    def test_list_after_create(self):
        self.collection("POST", {"title": "A", "content": "B"})
        self.collection("POST", {"title": "C", "content": "D"})
        resp = self.collection("GET")
        self.assertEqual(sorted(p["title"] for p in _json(resp)), ["A", "C"])

    def test_create_validation_error(self):
        resp = self.collection("POST", {"title": "", "content": "B"})
        self.assertEqual(resp.status_code, 400)
        self.assertIn("title", _json(resp)["error"])
        self.assertCors(resp, COLLECTION_METHODS)

    def test_create_invalid_json(self):
        resp = self.collection("POST", b"{not json")
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(_json(resp), {"error": "Invalid JSON body"})
        self.assertCors(resp, COLLECTION_METHODS)

    def test_create_empty_body(self):
        resp = self.collection("POST")
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(_json(resp), {"error": "Request body is required"})

    def test_create_array_body(self):
        resp = self.collection("POST", [{"title": "A", "content": "B"}])
        self.assertEqual(resp.status_code, 400)

    def test_preflight(self):
        resp = self.collection("OPTIONS")
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.get_body(), b"")
        self.assertCors(resp, COLLECTION_METHODS)

    def test_method_not_allowed(self):
        resp = self.collection("DELETE")
        self.assertEqual(resp.status_code, 405)
        self.assertCors(resp, COLLECTION_METHODS)


# ─────────────────────────────────────────────
#  Item: /posts/{postId}
# ─────────────────────────────────────────────

class TestItem(AdapterTestCase):

    def _create(self, **fields):
        body = {"title": "A", "content": "B", **fields}
        return _json(self.collection("POST", body))

    def test_get(self):
        created = self._create()
        resp = self.item("GET", created["postId"])
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(_json(resp), created)
        self.assertCors(resp, ITEM_METHODS)

    def test_get_missing(self):
        resp = self.item("GET", "ghost")
        self.assertEqual(resp.status_code, 404)
        self.assertIn("ghost", _json(resp)["error"])
        self.assertCors(resp, ITEM_METHODS)

    def test_update_returns_message(self):
        created = self._create()
        resp = self.item("PUT", created["postId"], {"title": "A2", "content": "B2"})
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(_json(resp), {"message": "Post updated successfully"})
        self.assertCors(resp, ITEM_METHODS)

    def test_update_missing_is_404_and_creates_nothing(self):
        resp = self.item("PUT", "ghost", {"title": "A", "content": "B"})
        self.assertEqual(resp.status_code, 404)
        self.assertEqual(self.store.scan(), [])
        self.assertCors(resp, ITEM_METHODS)

    def test_update_validation_error(self):
        created = self._create()
        resp = self.item("PUT", created["postId"], {"title": "A2"})
        self.assertEqual(resp.status_code, 400)
        self.assertCors(resp, ITEM_METHODS)

    def test_delete(self):
        created = self._create()
        resp = self.item("DELETE", created["postId"])
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(_json(resp), {"message": "Post deleted successfully"})
        self.assertCors(resp, ITEM_METHODS)

    def test_delete_missing(self):
        resp = self.item("DELETE", "ghost")
        self.assertEqual(resp.status_code, 404)
        self.assertCors(resp, ITEM_METHODS)

    def test_preflight(self):
        resp = self.item("OPTIONS", "anything")
        self.assertEqual(resp.status_code, 200)
        self.assertCors(resp, ITEM_METHODS)

    def test_method_not_allowed(self):
        resp = self.item("POST", "anything", {"title": "A", "content": "B"})
        self.assertEqual(resp.status_code, 405)
        self.assertCors(resp, ITEM_METHODS)

    def test_full_lifecycle(self):
        resp = self.collection("POST", {"title": "A", "content": "B"})
        self.assertEqual(resp.status_code, 201)
        post_id = _json(resp)["postId"]
        self.assertTrue(post_id)

        resp = self.item("GET", post_id)
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(_json(resp)["title"], "A")
        self.assertEqual(_json(resp)["content"], "B")

        resp = self.item("PUT", post_id, {"title": "A2", "content": "B2"})
        self.assertEqual(resp.status_code, 200)

        resp = self.item("GET", post_id)
        self.assertEqual(_json(resp)["title"], "A2")

        resp = self.item("DELETE", post_id)
        self.assertEqual(resp.status_code, 200)

        resp = self.item("GET", post_id)
        self.assertEqual(resp.status_code, 404)
        self.assertCors(resp, ITEM_METHODS)


# ─────────────────────────────────────────────
#  Server-side failures
# ─────────────────────────────────────────────

class TestFailures(unittest.TestCase):

    def test_storage_fault_is_generic_500_with_cors(self):
        adapter = PostHttpAdapter(lambda: PostService(BrokenStore()), Settings())
        for resp, methods in (
            (adapter.handle_collection(_request("GET")), COLLECTION_METHODS),
            (adapter.handle_item(_request("GET", post_id="x")), ITEM_METHODS),
        ):
            self.assertEqual(resp.status_code, 500)
            self.assertEqual(_json(resp), {"error": "Internal server error"})
            self.assertNotIn("socket", resp.get_body().decode("utf-8"))
            self.assertEqual(resp.headers["Access-Control-Allow-Origin"], "*")
            self.assertEqual(resp.headers["Access-Control-Allow-Methods"], methods)

    def test_unexpected_exception_is_500_with_cors(self):
        class ExplodingService(PostService):
            def list_posts(self):
                raise RuntimeError("bug")

        adapter = PostHttpAdapter(lambda: ExplodingService(InMemoryRecordStore()), Settings())
        resp = adapter.handle_collection(_request("GET"))
        self.assertEqual(resp.status_code, 500)
        self.assertEqual(_json(resp), {"error": "Internal server error"})
        self.assertEqual(resp.headers["Access-Control-Allow-Origin"], "*")

    def test_configuration_error_is_500_with_cors(self):
        def provider():
            raise ConfigurationError("Missing Cosmos DB connection string or database name")

        adapter = PostHttpAdapter(provider, Settings())
        resp = adapter.handle_item(_request("GET", post_id="x"))
        self.assertEqual(resp.status_code, 500)
        self.assertEqual(resp.headers["Access-Control-Allow-Origin"], "*")

    def test_preflight_does_not_touch_service(self):
        def provider():
            raise AssertionError("service should not be built for OPTIONS")

        adapter = PostHttpAdapter(provider, Settings())
        self.assertEqual(adapter.handle_collection(_request("OPTIONS")).status_code, 200)


# ─────────────────────────────────────────────
#  Request correlation
# ─────────────────────────────────────────────

class TestRequestCorrelation(AdapterTestCase):

    def test_request_id_header_reaches_service_events(self):
        with self.assertLogs("blogposts", level="INFO") as logs:
            resp = self.collection("POST", {"title": "A", "content": "B"}, headers={"x-request-id": "req-42"})
        self.assertEqual(resp.status_code, 201)
        events = {r.getMessage(): r.custom_dimensions for r in logs.records}
        self.assertEqual(events["posts:request"]["requestId"], "req-42")
        self.assertEqual(events["posts:create:ok"]["requestId"], "req-42")

    def test_generated_request_id_when_header_missing(self):
        with self.assertLogs("blogposts", level="INFO") as logs:
            self.collection("GET")
        events = {r.getMessage(): r.custom_dimensions for r in logs.records}
        self.assertTrue(events["posts:request"]["requestId"])
        self.assertEqual(events["posts:list:ok"]["requestId"], events["posts:request"]["requestId"])

    def test_rejection_logs_error_code(self):
        with self.assertLogs("blogposts", level="INFO") as logs:
            self.item("GET", "ghost")
        rejected = next(r for r in logs.records if r.getMessage() == "posts:rejected")
        self.assertEqual(rejected.custom_dimensions["error"]["code"], "RESOURCE_NOT_FOUND")


# ─────────────────────────────────────────────
#  Storage and configuration faults end to end
# ─────────────────────────────────────────────

class TestCorruptFileStore(unittest.TestCase):

    def test_corrupt_json_is_storage_fault_500_with_cors(self):
        with tempfile.TemporaryDirectory() as tmp:
            (Path(tmp) / "posts.json").write_text("{not json")
            adapter = PostHttpAdapter(lambda: PostService(FileRecordStore(Path(tmp))), Settings())
            with self.assertLogs("blogposts", level="INFO") as logs:
                resp = adapter.handle_collection(_request("GET"))
        self.assertEqual(resp.status_code, 500)
        self.assertEqual(_json(resp), {"error": "Internal server error"})
        self.assertEqual(resp.headers["Access-Control-Allow-Origin"], "*")
        self.assertEqual(resp.headers["Access-Control-Allow-Methods"], COLLECTION_METHODS)
        failed = next(r for r in logs.records if r.getMessage() == "posts:failed")
        self.assertEqual(failed.custom_dimensions["error"]["code"], "STORAGE_FAULT")


class TestInvalidEnvironment(unittest.TestCase):

    def setUp(self):
        for cached in (get_settings, http_posts.get_post_service, http_posts.get_post_adapter):
            cached.cache_clear()
            self.addCleanup(cached.cache_clear)

    def test_unknown_backend_still_answers_with_cors(self):
        with mock.patch.dict(os.environ, {"RECORD_STORE_BACKEND": "cosmosdb"}, clear=True):
            adapter = http_posts.get_post_adapter()
            with self.assertLogs("blogposts", level="INFO") as logs:
                resp = adapter.handle_item(_request("GET", post_id="p1"))
        self.assertEqual(resp.status_code, 500)
        self.assertEqual(_json(resp), {"error": "Internal server error"})
        self.assertEqual(resp.headers["Access-Control-Allow-Origin"], "*")
        self.assertEqual(resp.headers["Access-Control-Allow-Methods"], ITEM_METHODS)
        failed = next(r for r in logs.records if r.getMessage() == "posts:failed")
        self.assertEqual(failed.custom_dimensions["error"]["code"], "CONFIGURATION_ERROR")


class TestCorsSettings(unittest.TestCase):

    def test_configured_origin_and_headers(self):
        settings = Settings(cors_allow_origin="https://blog.example.com", cors_allow_headers="Content-Type")
        adapter = PostHttpAdapter(lambda: PostService(InMemoryRecordStore()), settings)
        resp = adapter.handle_item(_request("GET", post_id="missing"))
        self.assertEqual(resp.status_code, 404)
        self.assertEqual(resp.headers["Access-Control-Allow-Origin"], "https://blog.example.com")
        self.assertEqual(resp.headers["Access-Control-Allow-Headers"], "Content-Type")


if __name__ == "__main__":
    unittest.main(verbosity=2)
