from uuid import UUID

from fastapi import APIRouter, Body, Depends, Query

from journal.core.auth import require_admin
from journal.schemas.publication import IssueCreate, VolumeCreate
from journal.services.publication_service import PublicationService

router = APIRouter(tags=["Publications"])


# === Volumes / Issues ===


@router.get("/volumes")
async def list_volumes():
    return {"success": True, "data": PublicationService().list_volumes()}


@router.get("/volumes/latest")
async def latest_volume():
    return {"success": True, "data": PublicationService().latest_volume()}


@router.get("/volumes/{volume_number}")
async def get_volume(volume_number: int):
    return {"success": True, "data": PublicationService().get_volume_by_number(volume_number)}


@router.post("/volumes", status_code=201)
async def create_volume(
    current_user: dict = Depends(require_admin),
    req: VolumeCreate = Body(...),
):
    return {"success": True, "message": "Volume created successfully", "data": PublicationService().create_volume(req)}


@router.post("/volumes/{volume_id}/issues", status_code=201)
async def create_issue(
    volume_id: UUID,
    current_user: dict = Depends(require_admin),
    req: IssueCreate = Body(...),
):
    data = PublicationService().create_issue(volume_id, req)
    return {"success": True, "message": "Issue created successfully", "data": data}


@router.get("/issues/{issue_id}/articles")
async def articles_by_issue(issue_id: UUID):
    return {"success": True, "data": PublicationService().articles_by_issue(issue_id)}


# === Articles ===


@router.get("/articles")
async def list_articles(
    page: int = Query(1, ge=1),
    limit: int = Query(12, ge=1, le=100),
):
    return {"success": True, **PublicationService().list_articles(page=page, limit=limit)}


@router.get("/articles/recent")
async def recent_articles(limit: int = Query(10, ge=1, le=50)):
    return {"success": True, "data": PublicationService().recent_articles(limit)}


@router.get("/articles/search")
async def search_articles(q: str = Query("")):
    return {"success": True, "data": PublicationService().search_articles(q)}


@router.get("/articles/stats")
async def article_stats():
    return {"success": True, "data": PublicationService().get_stats()}


@router.get("/articles/{article_id}")
async def get_article(article_id: UUID):
    return {"success": True, "data": PublicationService().get_article(article_id)}
