"""
Middleware package for admin authentication and request logging
"""
from .auth import (
    api_key_middleware,
    logging_middleware,
    verify_api_key,
    generate_api_key,
)

__all__ = [
    "api_key_middleware",
    "logging_middleware",
    "verify_api_key",
    "generate_api_key",
]
