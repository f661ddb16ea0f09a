"""
E-commerce Backend - Source Package

Lambda entry points (``users``, ``files``) and the ``ecommerce`` service
package they delegate to.
"""

__version__ = "1.0.0"

__all__ = [
    "__version__",
]
