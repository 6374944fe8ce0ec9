from fastapi import APIRouter

from app.core.versioning import API_SEMVER

router = APIRouter(tags=["health"])


@router.get("/health")
async def health():
    return {"status": "ok", "version": API_SEMVER}
