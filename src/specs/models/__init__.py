from __future__ import annotations

from typing import Dict, Type

from pydantic import BaseModel

from src.specs.db.post import PostDoc
from src.specs.http.posts import ErrorResponse, MessageResponse, Post, PostInput


# Registry mapping output schema filenames to models for generation
SCHEMA_MODELS: Dict[str, Type[BaseModel]] = {
    "post.input.schema.json": PostInput,
    "post.schema.json": Post,
    "message.response.schema.json": MessageResponse,
    "error.response.schema.json": ErrorResponse,
    "post.document.schema.json": PostDoc,
}

__all__ = [
    "PostInput",
    "Post",
    "MessageResponse",
    "ErrorResponse",
    "PostDoc",
    "SCHEMA_MODELS",
]
