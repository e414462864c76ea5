"""FastAPI dependencies for the shared store"""
from fastapi import Request

from shared.cache.store import CacheStore


def get_cache_store(request: Request) -> CacheStore:
    """Store opened by the application lifespan"""
    return request.app.state.cache_store
