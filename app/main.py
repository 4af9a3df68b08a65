import logging
from fastapi import FastAPI
from app.core.config import settings
from app.db.repository import build_repository
from app.api import health, entities, quotations

logging.basicConfig(level=settings.LOG_LEVEL)
logger = logging.getLogger(__name__)

app = FastAPI(title=settings.PROJECT_NAME)

# The one repository instance; routers reach it through app.api.entities.get_repository.
app.state.repository = build_repository(settings)

# Include routers
app.include_router(health.router)
app.include_router(entities.router)
app.include_router(quotations.router)

@app.on_event("startup")
async def startup_event():
    ok = await app.state.repository.load_all()
    if not ok:
        logger.warning("Some collections failed to load; see /health for details")

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
