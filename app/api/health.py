from fastapi import APIRouter, Request
from app.schemas.entity import EntityType

router = APIRouter()

@router.get("/health")
async def health(request: Request):
    repo = request.app.state.repository
    return {
        "status": "ok",
        "loading": [t.value for t in EntityType if repo.is_loading(t)],
        "errors": {t.value: repo.error(t) for t in EntityType if repo.error(t)},
    }
