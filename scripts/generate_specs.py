#!/usr/bin/env python3
"""
Generate JSON Schemas, YAML variants, and OpenAPI from Pydantic models.

Outputs under src/specs/:
 - schemas/*.json (and *.yaml)
 - openapi.yaml and openapi.json
"""
from __future__ import annotations

import json
import sys
from pathlib import Path

import yaml


ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
SPECS = SRC / "specs"
SCHEMAS_DIR = SPECS / "schemas"

sys.path.insert(0, str(ROOT))

from src.http.post_adapter import COLLECTION_METHODS, ITEM_METHODS  # noqa: E402
from src.shared.config import DEFAULT_ALLOW_HEADERS  # noqa: E402
from src.specs.models import (  # noqa: E402
    SCHEMA_MODELS,
    ErrorResponse,
    MessageResponse,
    Post,
    PostInput,
)


def write_json_yaml(obj: dict, json_path: Path) -> None:
    json_path.parent.mkdir(parents=True, exist_ok=True)
    with json_path.open("w", encoding="utf-8") as f:
        json.dump(obj, f, indent=2, ensure_ascii=False)
    yaml_path = json_path.with_suffix(".yaml")
    with yaml_path.open("w", encoding="utf-8") as f:
        yaml.safe_dump(obj, f, sort_keys=False)


def generate_model_schemas() -> None:
    for filename, model in SCHEMA_MODELS.items():
        schema = model.model_json_schema()
        write_json_yaml(schema, SCHEMAS_DIR / filename)


def _cors_headers(allow_methods: str) -> dict:
    return {
        "Access-Control-Allow-Origin": {"schema": {"type": "string", "example": "*"}},
        "Access-Control-Allow-Headers": {"schema": {"type": "string", "example": DEFAULT_ALLOW_HEADERS}},
        "Access-Control-Allow-Methods": {"schema": {"type": "string", "example": allow_methods}},
    }


def _json_response(description: str, schema: dict, allow_methods: str) -> dict:
    return {
        "description": description,
        "headers": _cors_headers(allow_methods),
        "content": {"application/json": {"schema": schema}},
    }


def _error_responses(allow_methods: str, *codes: str) -> dict:
    descriptions = {
        "400": "Missing or empty required field, or malformed body",
        "404": "Post not found",
        "500": "Storage or unexpected failure",
    }
    ref = {"$ref": "#/components/schemas/ErrorResponse"}
    return {code: _json_response(descriptions[code], ref, allow_methods) for code in codes}


def _preflight(allow_methods: str) -> dict:
    return {
        "summary": "CORS preflight",
        "responses": {"200": {"description": "Preflight accepted", "headers": _cors_headers(allow_methods)}},
    }


def build_openapi() -> dict:
    # Inline the model schemas as OpenAPI components
    components = {
        "schemas": {
            "PostInput": PostInput.model_json_schema(),
            "Post": Post.model_json_schema(),
            "MessageResponse": MessageResponse.model_json_schema(),
            "ErrorResponse": ErrorResponse.model_json_schema(),
        }
    }
    post_ref = {"$ref": "#/components/schemas/Post"}
    message_ref = {"$ref": "#/components/schemas/MessageResponse"}
    input_body = {
        "required": True,
        "content": {"application/json": {"schema": {"$ref": "#/components/schemas/PostInput"}}},
    }
    post_id_param = {"in": "path", "name": "postId", "schema": {"type": "string"}, "required": True}

    spec = {
        "openapi": "3.0.3",
        "info": {
            "title": "Blog Posts Functions API",
            "version": "0.1.0",
            "description": "CRUD endpoints for blog posts exposed by the Azure Functions app.",
        },
        "servers": [
            {"url": "http://localhost:7071/api", "description": "Local Functions host"}
        ],
        "paths": {
            "/posts": {
                "get": {
                    "summary": "List all posts",
                    "operationId": "listPosts",
                    "responses": {
                        "200": _json_response("All posts, unordered", {"type": "array", "items": post_ref}, COLLECTION_METHODS),
                        **_error_responses(COLLECTION_METHODS, "500"),
                    },
                },
                "post": {
                    "summary": "Create a post",
                    "operationId": "createPost",
                    "requestBody": input_body,
                    "responses": {
                        "201": _json_response("Post created", post_ref, COLLECTION_METHODS),
                        **_error_responses(COLLECTION_METHODS, "400", "500"),
                    },
                },
                "options": _preflight(COLLECTION_METHODS),
            },
            "/posts/{postId}": {
                "parameters": [post_id_param],
                "get": {
                    "summary": "Get a post",
                    "operationId": "getPost",
                    "responses": {
                        "200": _json_response("The post", post_ref, ITEM_METHODS),
                        **_error_responses(ITEM_METHODS, "404", "500"),
                    },
                },
                "put": {
                    "summary": "Update a post",
                    "operationId": "updatePost",
                    "requestBody": input_body,
                    "responses": {
                        "200": _json_response("Post updated", message_ref, ITEM_METHODS),
                        **_error_responses(ITEM_METHODS, "400", "404", "500"),
                    },
                },
                "delete": {
                    "summary": "Delete a post",
                    "operationId": "deletePost",
                    "responses": {
                        "200": _json_response("Post deleted", message_ref, ITEM_METHODS),
                        **_error_responses(ITEM_METHODS, "404", "500"),
                    },
                },
                "options": _preflight(ITEM_METHODS),
            },
        },
        "components": components,
    }
    return spec


def generate_openapi() -> None:
    spec = build_openapi()
    write_json_yaml(spec, SPECS / "openapi.json")


def main() -> None:
    generate_model_schemas()
    generate_openapi()
    print("Specs generated under src/specs/")


if __name__ == "__main__":
    main()
