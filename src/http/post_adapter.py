"""
HTTP adapter for the posts API.

Translates Azure Functions requests into ``PostService`` calls and renders
every outcome, success or failure, with the same CORS header set.
"""
import json
import uuid
from typing import Any, Callable, Dict, Optional

import azure.functions as func

from src.services.post_service import PostService
from src.shared.config import Settings
from src.shared.logging_utils import info as log_info, error as log_error, request_context
from src.specs.common.errors import BlogPostError, MethodNotAllowed, UnknownFault, ValidationError
from src.specs.http.posts import ErrorResponse, MessageResponse

COLLECTION_METHODS = "GET,POST,OPTIONS"
ITEM_METHODS = "GET,PUT,DELETE,OPTIONS"

GENERIC_ERROR_MESSAGE = "Internal server error"


def cors_headers(settings: Settings, allow_methods: str) -> Dict[str, str]:
    return {
        "Access-Control-Allow-Origin": settings.cors_allow_origin,
        "Access-Control-Allow-Headers": settings.cors_allow_headers,
        "Access-Control-Allow-Methods": allow_methods,
    }


def read_json_body(req: func.HttpRequest) -> Any:
    if not req.get_body():
        raise ValidationError("Request body is required")
    try:
        return req.get_json()
    except ValueError as exc:
        raise ValidationError("Invalid JSON body") from exc


class PostHttpAdapter:
    """Routes /posts and /posts/{postId} requests to the post service."""

    def __init__(self, service_provider: Callable[[], PostService], settings: Settings):
        self._service_provider = service_provider
        self._settings = settings

    def _respond(self, allow_methods: str, status_code: int, body: Optional[str] = None) -> func.HttpResponse:
        headers = cors_headers(self._settings, allow_methods)
        if body is None:
            return func.HttpResponse(status_code=status_code, headers=headers)
        return func.HttpResponse(
            body=body,
            status_code=status_code,
            headers=headers,
            mimetype="application/json",
        )

    def _error(self, request_id: str, allow_methods: str, exc: Exception) -> func.HttpResponse:
        if not isinstance(exc, BlogPostError):
            log_error(request_id, "posts:unhandled", errorType=type(exc).__name__, error=str(exc))
            exc = UnknownFault(GENERIC_ERROR_MESSAGE)
        if exc.http_status >= 500:
            log_error(request_id, "posts:failed", error=exc.to_dict())
            message = GENERIC_ERROR_MESSAGE
        else:
            log_info(request_id, "posts:rejected", error=exc.to_dict())
            message = str(exc)
        return self._respond(allow_methods, exc.http_status, ErrorResponse(error=message).model_dump_json())

    def _handle(
        self,
        req: func.HttpRequest,
        allow_methods: str,
        route: Callable[[str, PostService], func.HttpResponse],
    ) -> func.HttpResponse:
        request_id = req.headers.get("x-request-id") or uuid.uuid4().hex
        method = (req.method or "").upper()
        with request_context(request_id):
            log_info(request_id, "posts:request", method=method, url=req.url)
            if method == "OPTIONS":
                return self._respond(allow_methods, 200)
            try:
                return route(method, self._service_provider())
            except Exception as exc:
                return self._error(request_id, allow_methods, exc)

    def handle_collection(self, req: func.HttpRequest) -> func.HttpResponse:
        def route(method: str, service: PostService) -> func.HttpResponse:
            if method == "GET":
                posts = service.list_posts()
                body = json.dumps([post.model_dump() for post in posts])
                return self._respond(COLLECTION_METHODS, 200, body)
            if method == "POST":
                post = service.create_post(read_json_body(req))
                return self._respond(COLLECTION_METHODS, 201, post.model_dump_json())
            raise MethodNotAllowed(method)

        return self._handle(req, COLLECTION_METHODS, route)

    def handle_item(self, req: func.HttpRequest) -> func.HttpResponse:
        post_id = req.route_params.get("postId")

        def route(method: str, service: PostService) -> func.HttpResponse:
            if method == "GET":
                post = service.get_post(post_id)
                return self._respond(ITEM_METHODS, 200, post.model_dump_json())
            if method == "PUT":
                service.update_post(post_id, read_json_body(req))
                resp = MessageResponse(message="Post updated successfully")
                return self._respond(ITEM_METHODS, 200, resp.model_dump_json())
            if method == "DELETE":
                service.delete_post(post_id)
                resp = MessageResponse(message="Post deleted successfully")
                return self._respond(ITEM_METHODS, 200, resp.model_dump_json())
            raise MethodNotAllowed(method)

        return self._handle(req, ITEM_METHODS, route)
