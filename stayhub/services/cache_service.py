"""Redis-backed JSON cache for read-heavy property endpoints.

Every operation degrades to a no-op when caching is disabled or Redis is
unreachable; the database stays the source of truth.
"""
import hashlib
import json

from flask import current_app
from redis.exceptions import RedisError

from stayhub import redis_client

PROPERTY_LIST_PREFIX = 'cache:properties:list:'


def property_key(property_id):
    return f'cache:properties:{property_id}'


def property_list_key(params):
    """Stable cache key for a listing query string"""
    normalized = json.dumps(sorted((k, v) for k, v in params.items()), default=str)
    digest = hashlib.sha1(normalized.encode('utf-8')).hexdigest()
    return f'{PROPERTY_LIST_PREFIX}{digest}'


def _enabled():
    return current_app.config.get('CACHE_ENABLED', False)


def get_json(key):
    if not _enabled():
        return None
    try:
        raw = redis_client.get(key)
    except RedisError as e:
        current_app.logger.warning(f"Cache read failed for {key}: {e}")
        return None
    return json.loads(raw) if raw else None


def set_json(key, value, ttl=None):
    if not _enabled():
        return False
    ttl = ttl or current_app.config.get('CACHE_TTL_SECONDS', 300)
    try:
        redis_client.setex(key, ttl, json.dumps(value))
        return True
    except RedisError as e:
        current_app.logger.warning(f"Cache write failed for {key}: {e}")
        return False


def cached(key, loader, ttl=None):
    """Return the cached value for key, computing and storing it on a miss"""
    value = get_json(key)
    if value is not None:
        return value

    value = loader()
    set_json(key, value, ttl)
    return value


def invalidate_property(property_id=None):
    """Drop a property's detail entry and every cached listing page"""
    if not _enabled():
        return
    try:
        if property_id is not None:
            redis_client.delete(property_key(property_id))
        keys = list(redis_client.scan_iter(match=f'{PROPERTY_LIST_PREFIX}*'))
        if keys:
            redis_client.delete(*keys)
    except RedisError as e:
        current_app.logger.warning(f"Cache invalidation failed: {e}")
