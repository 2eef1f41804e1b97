"""
Middleware for API endpoints - Admin authentication and request logging
"""
from fastapi import Request, status
from fastapi.responses import JSONResponse
from typing import Callable
import logging
import secrets
import time

logger = logging.getLogger(__name__)

PROTECTED_PREFIX = "/admin"


def verify_api_key(api_key: str, valid_keys: dict) -> bool:
    """Verify if API key is valid"""
    return any(secrets.compare_digest(api_key, key) for key in valid_keys)


def get_client_name(api_key: str, valid_keys: dict) -> str:
    """Get client name from API key"""
    return valid_keys.get(api_key, "Unknown")


def extract_api_key(request: Request) -> str | None:
    api_key = request.headers.get("X-API-Key") or request.headers.get("Authorization")
    if api_key and api_key.startswith("Bearer "):
        api_key = api_key[len("Bearer "):]
    return api_key


async def api_key_middleware(request: Request, call_next: Callable):
    """
    Middleware to verify API key in request headers.
    Only applies to /admin routes, and only when keys are configured.
    """
    if not request.url.path.startswith(PROTECTED_PREFIX):
        return await call_next(request)

    valid_keys = request.app.state.context.settings.ADMIN_API_KEYS
    if not valid_keys:
        return await call_next(request)

    api_key = extract_api_key(request)
    if not api_key or not verify_api_key(api_key, valid_keys):
        client_ip = request.client.host if request.client else "unknown"
        logger.warning(f"❌ Invalid API key attempt from {client_ip}")
        return JSONResponse(
            status_code=status.HTTP_401_UNAUTHORIZED,
            content={
                "error": "Invalid or missing API key",
                "message": "Please provide a valid API key in X-API-Key header"
            }
        )

    request.state.client_name = get_client_name(api_key, valid_keys)
    logger.info(f"✅ Authenticated: {request.state.client_name}")
    return await call_next(request)


async def logging_middleware(request: Request, call_next: Callable):
    """
    Middleware to log all requests and responses with their timing.
    """
    start_time = time.time()
    client_ip = request.client.host if request.client else "unknown"
    logger.info(f"📥 {request.method} {request.url.path} from {client_ip}")

    try:
        response = await call_next(request)
    except Exception as e:
        duration = (time.time() - start_time) * 1000
        logger.error(f"❌ {request.method} {request.url.path} → ERROR ({duration:.0f}ms): {str(e)}")
        raise

    duration = (time.time() - start_time) * 1000  # ms
    status_emoji = "✅" if response.status_code < 400 else "❌"
    logger.info(
        f"{status_emoji} {request.method} {request.url.path} "
        f"→ {response.status_code} ({duration:.0f}ms)"
    )
    response.headers["X-Process-Time"] = f"{duration:.2f}ms"
    return response


def generate_api_key() -> str:
    """Generate a new secure API key"""
    return secrets.token_urlsafe(32)
