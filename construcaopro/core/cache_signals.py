"""
Cache invalidation signals
Automatically invalidate dashboard caches when data changes
"""
import logging

from django.core.cache import cache
from django.db import transaction
from django.db.models.signals import post_save, post_delete
from django.dispatch import receiver

from .permissions import get_accessible_obra_ids

logger = logging.getLogger('construcaopro.core')

DASHBOARD_CACHE_PREFIX = 'dashboard'
ESTOQUE_CACHE_PREFIX = 'estoque_por_obra'

# Models whose changes alter dashboard numbers
DASHBOARD_MODELS = ['Obra', 'Almoxarifado', 'Material', 'Estoque', 'Movimentacao', 'NotaFiscal']


def access_cache_key(prefix, user, *parts):
    """Cache key scoped to the set of obras the user can see"""
    obra_ids = get_accessible_obra_ids(user)
    scope = 'all' if obra_ids is None else '-'.join(str(i) for i in sorted(obra_ids)) or 'none'
    return '_'.join([prefix, *[str(p) for p in parts], scope])


def invalidate_cache_pattern(pattern):
    """
    Invalidate all cache keys matching a pattern.
    django-redis supports pattern deletes; other backends are cleared.
    """
    try:
        if hasattr(cache, 'delete_pattern'):
            deleted = cache.delete_pattern(f"*{pattern}*")
            logger.info(f"Cache invalidation requested for pattern: {pattern} - Deleted {deleted} keys")
        else:
            cache.clear()
            logger.info(f"Cache invalidation requested for pattern: {pattern} - Cache cleared")
    except Exception as e:
        logger.warning(f"Could not invalidate cache pattern {pattern}: {str(e)}")


def invalidate_dashboard_cache_manual():
    """Manually invalidate dashboard and grouped stock caches"""
    invalidate_cache_pattern(DASHBOARD_CACHE_PREFIX)
    invalidate_cache_pattern(ESTOQUE_CACHE_PREFIX)


@receiver([post_save, post_delete])
def invalidate_dashboard_cache(sender, instance, **kwargs):
    """Invalidate dashboard caches when obras, materials, stock or invoices change"""
    if sender.__name__ not in DASHBOARD_MODELS:
        return
    if not sender.__module__.startswith('construcaopro.'):
        return
    # Invalidate after commit so the cache is not refilled with stale rows
    transaction.on_commit(invalidate_dashboard_cache_manual)
