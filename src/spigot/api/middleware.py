"""aiohttp middlewares for the faucet HTTP surface.

Order (outermost first): request id, unhandled errors, CORS, admission gate.
"""

import logging
import uuid

from aiohttp import web

from spigot.dispatch.errors import RateLimitError
from spigot.dispatch.rate_limiter import AdmissionGate, AdmissionResult
from spigot.observability.logging import clear_request_id, set_request_id
from spigot.observability.metrics import RATE_LIMITED

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"

# Request-scoped keys
JSON_BODY_KEY = "spigot.json_body"
PREPARED_RESPONSE_KEY = "spigot.prepared_response"


def client_identity(request: web.Request, trusted_proxy_hops: int = 0) -> str:
    """Network identity used as the admission gate key.

    With ``trusted_proxy_hops`` > 0 the address is read from
    ``X-Forwarded-For``, that many entries from the right.
    """
    if trusted_proxy_hops > 0:
        forwarded = request.headers.get("X-Forwarded-For", "")
        hops = [hop.strip() for hop in forwarded.split(",") if hop.strip()]
        if hops:
            return hops[max(0, len(hops) - trusted_proxy_hops)]
    return request.remote or "unknown"


async def track_prepared_response(request: web.Request, response: web.StreamResponse) -> None:
    """``on_response_prepare`` hook: remember that headers went out."""
    request[PREPARED_RESPONSE_KEY] = response


@web.middleware
async def request_id_middleware(request: web.Request, handler):
    """Bind a request id to the logging context and echo it back."""
    request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
    set_request_id(request_id)
    try:
        response = await handler(request)
        if not response.prepared:
            response.headers[REQUEST_ID_HEADER] = request_id
        return response
    finally:
        clear_request_id()


@web.middleware
async def error_middleware(request: web.Request, handler):
    """Last-resort handler for exceptions no route dealt with.

    Answers 500 with a JSON body, unless the response was already started,
    in which case the error is only logged.
    """
    try:
        return await handler(request)
    except web.HTTPException:
        raise
    except Exception as e:
        code = getattr(e, "code", None)
        logger.error(
            "Unhandled error",
            extra={
                "error": str(e) or "Unknown server error",
                "error_type": type(e).__name__,
                "code": code,
                "path": request.path,
                "method": request.method,
                "body": request.get(JSON_BODY_KEY),
            },
            exc_info=True,
        )

        prepared = request.get(PREPARED_RESPONSE_KEY)
        if prepared is not None:
            logger.error("Error occurred after response was sent", extra={"path": request.path})
            return prepared

        body = {"error": str(e) or "Unknown server error", "path": request.path}
        if code:
            body["code"] = code
        return web.json_response(body, status=500)


def make_cors_middleware(origins: list[str]):
    """aiohttp middleware that adds CORS headers.

    ``*`` allows any origin; otherwise only listed origins are echoed back.
    """
    allowed = set(origins)
    allow_any = "*" in allowed

    @web.middleware
    async def cors_middleware(request: web.Request, handler):
        origin = request.headers.get("Origin", "")
        if request.method == "OPTIONS" and origin:
            response = web.Response(status=204)
        else:
            response = await handler(request)

        if response.prepared:
            return response
        if allow_any:
            response.headers["Access-Control-Allow-Origin"] = "*"
        elif origin in allowed:
            response.headers["Access-Control-Allow-Origin"] = origin
            response.headers["Vary"] = "Origin"
        else:
            return response
        response.headers["Access-Control-Allow-Methods"] = "GET, POST, OPTIONS"
        response.headers["Access-Control-Allow-Headers"] = "Content-Type, X-Request-ID"
        return response

    return cors_middleware


def _rate_limit_headers(result: AdmissionResult) -> dict[str, str]:
    return {
        "RateLimit-Limit": str(result.limit),
        "RateLimit-Remaining": str(result.remaining),
        "RateLimit-Reset": str(result.retry_after),
    }


def make_admission_middleware(
    gate: AdmissionGate,
    gated_routes: frozenset[str],
    trusted_proxy_hops: int = 0,
):
    """aiohttp middleware that runs the admission gate on funding routes.

    The gate runs before request validation, so rejected requests count
    toward the quota too.
    """

    @web.middleware
    async def admission_middleware(request: web.Request, handler):
        route_name = request.match_info.route.name
        if route_name not in gated_routes:
            return await handler(request)

        identity = client_identity(request, trusted_proxy_hops)
        result = await gate.check(identity)
        headers = _rate_limit_headers(result)

        try:
            result.raise_for_denial()
        except RateLimitError as e:
            RATE_LIMITED.inc()
            logger.info(
                "Request rejected by admission gate",
                extra={"identity": identity, "path": request.path},
            )
            headers["Retry-After"] = str(e.retry_after)
            return web.json_response({"error": e.message}, status=e.status, headers=headers)

        response = await handler(request)
        if not response.prepared:
            response.headers.update(headers)
        return response

    return admission_middleware
