from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

# IMPORTANT:
# This imports ALL models so SQLAlchemy registers tables + FKs correctly
import app.models  # noqa: F401

from app.core.config import settings
from app.core.logging import configure_logging
from app.core.versioning import API_SEMVER, include_versioned_router, install_version_headers

# Routers
from app.routers.auth import router as auth_router
from app.routers.auth_change_password import router as auth_change_password_router
from app.routers.me import router as me_router

from app.routers.businesses import router as businesses_router
from app.routers.deals import router as deals_router
from app.routers.favorites import router as favorites_router
from app.routers.redemptions import router as redemptions_router
from app.routers.ratings import router as ratings_router
from app.routers.notifications import router as notifications_router
from app.routers.images import router as images_router

from app.routers.admin_users import router as admin_users_router
from app.routers.admin_businesses import router as admin_businesses_router
from app.routers.admin_deals import router as admin_deals_router

from app.routers.health import router as health_router

API_ROUTERS = (
    # Auth & users
    auth_router,
    auth_change_password_router,
    me_router,
    # Marketplace
    businesses_router,
    deals_router,
    favorites_router,
    redemptions_router,
    ratings_router,
    notifications_router,
    images_router,
    # Admin
    admin_users_router,
    admin_businesses_router,
    admin_deals_router,
)


def create_app() -> FastAPI:
    configure_logging(settings.LOG_LEVEL)

    app = FastAPI(title="Pinnity API", version=API_SEMVER)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    install_version_headers(app)

    for router in API_ROUTERS:
        include_versioned_router(app, router)

    app.include_router(health_router)
    return app


app = create_app()
