"""
Data models: relational entities, cache directives, request and response schemas.
"""

from ecommerce.models.base import Base
from ecommerce.models.cache import CacheModel, CacheSnapshot
from ecommerce.models.user import User

__all__ = [
    'Base',
    'CacheModel',
    'CacheSnapshot',
    'User',
]
