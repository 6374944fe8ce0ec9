from __future__ import annotations

import structlog
from fastapi import APIRouter, FastAPI, Request

API_PREFIX = "/api"
CURRENT_VERSION = "v1"
SUPPORTED_VERSIONS = ("v1",)
API_SEMVER = "1.0.0"

logger = structlog.get_logger(__name__)


def versioned_prefix(version: str = CURRENT_VERSION) -> str:
    return f"{API_PREFIX}/{version}"


def is_legacy_path(path: str) -> bool:
    if not path.startswith(API_PREFIX + "/"):
        return False
    return not any(
        path == f"{API_PREFIX}/{v}" or path.startswith(f"{API_PREFIX}/{v}/") for v in SUPPORTED_VERSIONS
    )


def include_versioned_router(app: FastAPI, router: APIRouter) -> None:
    """
    Mount a router at /api/v1 and again at the legacy /api prefix.
    Only the versioned copy shows up in the OpenAPI schema.
    """
    app.include_router(router, prefix=versioned_prefix())
    app.include_router(router, prefix=API_PREFIX, include_in_schema=False)


def install_version_headers(app: FastAPI) -> None:
    @app.middleware("http")
    async def _api_version_headers(request: Request, call_next):
        path = request.url.path
        legacy = is_legacy_path(path)
        if legacy:
            logger.warning(
                "legacy_route_accessed",
                path=path,
                use=versioned_prefix() + path[len(API_PREFIX):],
            )

        response = await call_next(request)

        if path.startswith(API_PREFIX + "/"):
            response.headers["API-Version"] = API_SEMVER
            if legacy:
                response.headers["Deprecation"] = "true"
        return response
