from . import keys
from .redis_client import get_redis_pool, close_redis_pool

__all__ = ["keys", "get_redis_pool", "close_redis_pool"]
