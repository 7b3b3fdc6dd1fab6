"""
HTTP surface of the blog: posts CRUD, admin login, view counter and health.

Errors raised by the service layer are turned into `{"error": message}`
responses by `error_middleware`; anything unexpected becomes a generic 500.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from aiohttp import web
from pydantic import ValidationError as PydanticValidationError

from portfolio.application.blog_service import BlogService
from portfolio.domain.exceptions import AuthError, BlogException, ValidationError
from portfolio.domain.models import PostDraft

logger = logging.getLogger(__name__)

# Posts may carry inline images and videos.
MAX_BODY_SIZE = 10 * 1024 * 1024

BLOG_SERVICE = web.AppKey("blog_service", BlogService)


def bearer_token(request: web.Request) -> Optional[str]:
    header = request.headers.get("Authorization", "")
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


async def read_json(request: web.Request) -> Dict[str, Any]:
    try:
        body = await request.json()
    except ValueError:
        raise ValidationError("Invalid JSON body")
    if not isinstance(body, dict):
        raise ValidationError("JSON body must be an object")
    return body


def parse_draft(body: Dict[str, Any]) -> PostDraft:
    try:
        return PostDraft.model_validate(body)
    except PydanticValidationError as e:
        fields = sorted({str(error["loc"][0]) for error in e.errors() if error["loc"]})
        raise ValidationError(f"Invalid field(s): {', '.join(fields)}")


@web.middleware
async def error_middleware(request: web.Request, handler):
    try:
        return await handler(request)
    except web.HTTPException:
        raise
    except BlogException as exc:
        log_level = logging.WARNING if exc.status_code < 500 else logging.ERROR
        logger.log(log_level, f"{request.method} {request.path} -> {exc.status_code}: {exc.message}")
        return web.json_response({"error": exc.message}, status=exc.status_code)
    except Exception as exc:
        logger.exception(f"Unhandled exception on {request.method} {request.path}: {type(exc).__name__}: {exc}")
        return web.json_response({"error": "Internal server error"}, status=500)


CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, POST, PUT, DELETE, OPTIONS",
    "Access-Control-Allow-Headers": "Authorization, Content-Type",
}


@web.middleware
async def cors_middleware(request: web.Request, handler):
    if request.method == "OPTIONS":
        response = web.Response(status=204)
    else:
        try:
            response = await handler(request)
        except web.HTTPException as exc:
            # Router 404/405s are raised, not returned.
            exc.headers.update(CORS_HEADERS)
            raise
    response.headers.update(CORS_HEADERS)
    return response


routes = web.RouteTableDef()


@routes.get("/api/posts")
async def list_posts(request: web.Request) -> web.Response:
    posts = await request.app[BLOG_SERVICE].list_posts()
    return web.json_response([post.model_dump(mode="json") for post in posts])


@routes.get("/api/posts/{post_id}")
async def get_post(request: web.Request) -> web.Response:
    post = await request.app[BLOG_SERVICE].get_post(request.match_info["post_id"])
    return web.json_response(post.model_dump(mode="json"))


@routes.post("/api/posts")
async def create_post(request: web.Request) -> web.Response:
    service = request.app[BLOG_SERVICE]
    secret = bearer_token(request)
    # Authorization is checked before the body is even parsed.
    if not service.gate.has_admin_capability(secret):
        raise AuthError()
    draft = parse_draft(await read_json(request))
    post = await service.create_post(draft, secret)
    return web.json_response(post.model_dump(mode="json"), status=201)


@routes.put("/api/posts/{post_id}")
async def update_post(request: web.Request) -> web.Response:
    service = request.app[BLOG_SERVICE]
    secret = bearer_token(request)
    if not service.gate.has_admin_capability(secret):
        raise AuthError()
    draft = parse_draft(await read_json(request))
    post = await service.update_post(request.match_info["post_id"], draft, secret)
    return web.json_response(post.model_dump(mode="json"))


@routes.delete("/api/posts/{post_id}")
async def delete_post(request: web.Request) -> web.Response:
    await request.app[BLOG_SERVICE].delete_post(request.match_info["post_id"], bearer_token(request))
    return web.json_response({"message": "Post deleted successfully"})


@routes.post("/api/admin/login")
async def admin_login(request: web.Request) -> web.Response:
    try:
        body = await read_json(request)
    except ValidationError:
        body = {}
    secret = body.get("secret")
    if not isinstance(secret, str) or not request.app[BLOG_SERVICE].login(secret):
        raise AuthError("Invalid credentials")
    return web.json_response({"success": True})


@routes.get("/api/views")
async def get_views(request: web.Request) -> web.Response:
    count = await request.app[BLOG_SERVICE].view_count()
    return web.json_response({"count": count})


@routes.post("/api/views")
async def increment_views(request: web.Request) -> web.Response:
    count = await request.app[BLOG_SERVICE].increment_view_count()
    return web.json_response({"count": count})


@routes.get("/api/health")
async def health(request: web.Request) -> web.Response:
    return web.json_response({
        "status": "ok",
        "timestamp": datetime.now(timezone.utc).isoformat(),
    })


def create_app(service: BlogService) -> web.Application:
    app = web.Application(
        middlewares=[cors_middleware, error_middleware],
        client_max_size=MAX_BODY_SIZE,
    )
    app[BLOG_SERVICE] = service
    app.add_routes(routes)
    return app
