from functools import lru_cache

import azure.functions as func

from src.http.post_adapter import COLLECTION_METHODS, ITEM_METHODS, PostHttpAdapter
from src.services.post_service import PostService
from src.shared.config import get_settings, get_settings_or_defaults
from src.shared.record_store import build_record_store


bp = func.Blueprint()


@lru_cache(maxsize=1)
def get_post_service() -> PostService:
    """Get or create the process-wide post service and its record store"""
    return PostService(build_record_store(get_settings()))


@lru_cache(maxsize=1)
def get_post_adapter() -> PostHttpAdapter:
    # CORS rendering must survive a bad environment; the service reports it per request
    return PostHttpAdapter(get_post_service, get_settings_or_defaults())


@bp.function_name(name="posts_collection")
@bp.route(route="posts", methods=COLLECTION_METHODS.split(","), auth_level=func.AuthLevel.ANONYMOUS)
def posts_collection(req: func.HttpRequest) -> func.HttpResponse:
    return get_post_adapter().handle_collection(req)


@bp.function_name(name="posts_item")
@bp.route(route="posts/{postId}", methods=ITEM_METHODS.split(","), auth_level=func.AuthLevel.ANONYMOUS)
def posts_item(req: func.HttpRequest) -> func.HttpResponse:
    return get_post_adapter().handle_item(req)
