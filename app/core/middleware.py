"""
Custom middleware for request tracking and console logging.
"""
import time
import uuid

from fastapi import Request

from app.core.privacy import sanitize_url


async def request_id_middleware(request: Request, call_next):
    """
    Middleware to add unique request ID to each request.

    The request ID is:
    - Taken from an incoming X-Request-ID header, or generated
    - Stored in request.state.request_id
    - Added to response headers as X-Request-ID

    Args:
        request (Request): Incoming FastAPI request
        call_next: Next middleware/endpoint in chain

    Returns:
        Response: Response with X-Request-ID header
    """
    request_id = request.headers.get("x-request-id") or str(uuid.uuid4())
    request.state.request_id = request_id

    response = await call_next(request)
    response.headers["X-Request-ID"] = request_id
    return response


async def request_logging_middleware(request: Request, call_next):
    """
    Print one line per request: method, path, status and duration.

    Query strings go through sanitize_url so tokens and passwords never
    reach the console.
    """
    start_time = time.time()
    path = request.url.path
    if request.url.query:
        path = f"{path}?{request.url.query}"
    path = sanitize_url(path)

    try:
        response = await call_next(request)
    except Exception as e:
        elapsed_ms = int((time.time() - start_time) * 1000)
        print(f"[REQUEST] [ERROR] {request.method} {path} -> 500 ({elapsed_ms} ms): {type(e).__name__}")
        raise

    elapsed_ms = int((time.time() - start_time) * 1000)
    request_id = getattr(request.state, "request_id", "-")
    print(f"[REQUEST] {request.method} {path} -> {response.status_code} ({elapsed_ms} ms) [{request_id}]")
    return response
