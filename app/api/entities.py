from fastapi import APIRouter, Body, Depends, HTTPException, Query, Request
from typing import Any, Dict, List, Optional
import logging
from app.db.repository import EntityRepository
from app.schemas.entity import EntityList, EntityStatus, EntityType, NumberResponse

router = APIRouter(prefix="/entities", tags=["entities"])
logger = logging.getLogger(__name__)

def get_repository(request: Request) -> EntityRepository:
    return request.app.state.repository

# Fixed paths first: "/entities/load-all" must not be parsed as an entity type.
# Per-type sub-resources live under "/-/" so no entity id can shadow them.

@router.post("/load-all")
async def load_all(repo: EntityRepository = Depends(get_repository)):
    ok = await repo.load_all()
    errors = {t.value: repo.error(t) for t in EntityType if repo.error(t)}
    return {"status": "success" if ok else "partial", "errors": errors}

@router.post("/flush")
async def flush(repo: EntityRepository = Depends(get_repository)):
    ok = repo.flush()
    errors = {t.value: repo.last_persist_error(t) for t in EntityType if repo.last_persist_error(t)}
    return {"status": "success" if ok else "partial", "errors": errors}

@router.post("/reset")
async def reset(repo: EntityRepository = Depends(get_repository)):
    repo.reset()
    logger.info("Repository reset")
    return {"status": "success"}

@router.get("/{entity_type}", response_model=EntityList)
async def list_entities(
    entity_type: EntityType,
    q: str = "",
    fields: Optional[List[str]] = Query(None),
    repo: EntityRepository = Depends(get_repository),
):
    """Every entity of a type, narrowed by `q` when given (substring over `fields`)."""
    if q and not fields:
        raise HTTPException(status_code=400, detail="Search requires at least one field")
    items = repo.search(entity_type, q, fields or [])
    return EntityList(entity_type=entity_type, total=len(items), items=list(items))

@router.post("/{entity_type}/filter", response_model=EntityList)
async def filter_entities(
    entity_type: EntityType,
    filters: Dict[str, Any] = Body(...),
    repo: EntityRepository = Depends(get_repository),
):
    items = repo.filter(entity_type, filters)
    return EntityList(entity_type=entity_type, total=len(items), items=list(items))

@router.get("/{entity_type}/-/status", response_model=EntityStatus)
async def entity_status(entity_type: EntityType, repo: EntityRepository = Depends(get_repository)):
    state = repo.state(entity_type)
    return EntityStatus(
        entity_type=entity_type,
        count=len(repo.all(entity_type)),
        loading=state.loading,
        error=state.error,
        persist_error=repo.last_persist_error(entity_type),
    )

@router.get("/{entity_type}/-/next-number", response_model=NumberResponse)
async def next_number(
    entity_type: EntityType,
    prefix: Optional[str] = None,
    repo: EntityRepository = Depends(get_repository),
):
    return NumberResponse(entity_type=entity_type, number=repo.generate_number(entity_type, prefix))

@router.get("/{entity_type}/{entity_id}")
async def get_entity(entity_type: EntityType, entity_id: str, repo: EntityRepository = Depends(get_repository)):
    entity = repo.get(entity_type, entity_id)
    if entity is None:
        raise HTTPException(status_code=404, detail=f"{entity_type.value} '{entity_id}' not found")
    return entity

@router.post("/{entity_type}", status_code=201)
async def create_entity(
    entity_type: EntityType,
    data: Dict[str, Any] = Body(...),
    repo: EntityRepository = Depends(get_repository),
):
    entity = repo.add(entity_type, data)
    logger.info(f"Created {entity_type.value} {entity['id']}")
    return entity

@router.patch("/{entity_type}/{entity_id}")
async def update_entity(
    entity_type: EntityType,
    entity_id: str,
    data: Dict[str, Any] = Body(...),
    repo: EntityRepository = Depends(get_repository),
):
    entity = repo.update(entity_type, entity_id, data)
    if entity is None:
        raise HTTPException(status_code=404, detail=f"{entity_type.value} '{entity_id}' not found")
    return entity

@router.delete("/{entity_type}/{entity_id}")
async def delete_entity(entity_type: EntityType, entity_id: str, repo: EntityRepository = Depends(get_repository)):
    repo.remove(entity_type, entity_id)
    return {"status": "success"}
