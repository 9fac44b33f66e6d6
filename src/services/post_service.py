"""Post service: validation and record-store orchestration for blog posts."""

from typing import Any, Callable, Dict, List, Optional, TypeVar

from pydantic import ValidationError as PydanticValidationError

from src.shared.logging_utils import info as log_info, error as log_error
from src.shared.record_store import RecordStore
from src.specs.common.datetime_utils import utc_now
from src.specs.common.errors import BlogPostError, NotFound, RecordNotFoundError, StorageFault, ValidationError
from src.specs.common.ids import new_post_id
from src.specs.http.posts import Post, PostInput

T = TypeVar("T")

RESOURCE = "Post"


def parse_post_input(data: Any) -> PostInput:
    """Validate a create/update body, raising ValidationError on bad input."""
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    try:
        return PostInput(**data)
    except PydanticValidationError as exc:
        problems = [
            f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}"
            for err in exc.errors()
        ]
        raise ValidationError(
            f"Invalid post: {'; '.join(problems)}",
            details={"fields": [str(err["loc"][0]) for err in exc.errors() if err["loc"]]},
        ) from exc


def _require_id(post_id: Optional[str]) -> str:
    if not post_id or not post_id.strip():
        raise ValidationError("postId is required")
    return post_id


class PostService:
    """CRUD operations over posts, backed by an injected record store.

    Holds no per-request state; the store handle is owned by the process.
    """

    def __init__(self, store: RecordStore):
        self._store = store

    def _call_store(self, action: str, operation: Callable[[], T], post_id: Optional[str] = None) -> T:
        try:
            return operation()
        except (BlogPostError, RecordNotFoundError):
            raise
        except Exception as exc:
            log_error(None, "posts:store_failed", action=action, postId=post_id, error=str(exc))
            raise StorageFault(f"Record store {action} failed", details={"postId": post_id}) from exc

    def create_post(self, data: Any) -> Post:
        payload = parse_post_input(data)
        post = Post(
            postId=new_post_id(),
            title=payload.title,
            content=payload.content,
            imageUrl=payload.imageUrl or "",
            createdAt=payload.createdAt or utc_now(),
        )
        stored = self._call_store("put", lambda: self._store.put(post.model_dump()), post.postId)
        log_info(None, "posts:create:ok", postId=post.postId)
        return Post(**stored)

    def list_posts(self) -> List[Post]:
        records = self._call_store("scan", self._store.scan)
        log_info(None, "posts:list:ok", count=len(records))
        return [Post(**record) for record in records]

    def get_post(self, post_id: Optional[str]) -> Post:
        post_id = _require_id(post_id)
        record = self._call_store("get", lambda: self._store.get(post_id), post_id)
        if record is None:
            raise NotFound(RESOURCE, post_id)
        return Post(**record)

    def update_post(self, post_id: Optional[str], data: Any) -> Post:
        post_id = _require_id(post_id)
        payload = parse_post_input(data)

        # Existence check first so an update never creates a record
        if self._call_store("get", lambda: self._store.get(post_id), post_id) is None:
            raise NotFound(RESOURCE, post_id)

        fields: Dict[str, Any] = {"title": payload.title, "content": payload.content}
        if payload.imageUrl is not None:
            fields["imageUrl"] = payload.imageUrl
        if payload.createdAt is not None:
            fields["createdAt"] = payload.createdAt

        try:
            updated = self._call_store("update", lambda: self._store.update(post_id, fields), post_id)
        except RecordNotFoundError as exc:
            # Deleted between the existence check and the write
            raise NotFound(RESOURCE, post_id) from exc
        log_info(None, "posts:update:ok", postId=post_id, fields=sorted(fields))
        return Post(**updated)

    def delete_post(self, post_id: Optional[str]) -> Post:
        post_id = _require_id(post_id)
        prior = self._call_store("delete", lambda: self._store.delete(post_id), post_id)
        if prior is None:
            raise NotFound(RESOURCE, post_id)
        log_info(None, "posts:delete:ok", postId=post_id)
        return Post(**prior)
