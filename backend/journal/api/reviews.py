from uuid import UUID

from fastapi import APIRouter, BackgroundTasks, Body, Depends

from journal.core.auth import get_current_user, require_editor, require_reviewer
from journal.models.review import serialize_review
from journal.models.user import public_user
from journal.schemas.review import ReviewAssign, ReviewCreate, ReviewUpdate
from journal.models.audit_log import AuditAction
from journal.services.audit_service import AuditService, audit_trail
from journal.services.review_service import ReviewService

router = APIRouter(prefix="/reviews", tags=["Reviews"])


@router.post("", status_code=201)
async def create_review(
    current_user: dict = Depends(require_reviewer),
    req: ReviewCreate = Body(...),
):
    review = ReviewService().create_review(current_user, req)
    return {"success": True, "message": "Review submitted successfully", "data": serialize_review(review)}


@router.post("/assign")
async def assign_reviewer(
    background_tasks: BackgroundTasks,
    current_user: dict = Depends(require_editor),
    req: ReviewAssign = Body(...),
    audit: AuditService = Depends(audit_trail),
):
    review = ReviewService().assign_reviewer(current_user, req.submission_id, req.reviewer_id, background_tasks)
    audit.record(
        AuditAction.REVIEWER_ASSIGNED,
        actor=current_user,
        entity_type="submission",
        entity_id=req.submission_id,
        details={"review_id": review.get("id"), "reviewer_id": str(req.reviewer_id)},
    )
    return {"success": True, "message": "Reviewer assigned successfully", "data": serialize_review(review)}


@router.get("/dashboard")
async def reviewer_dashboard(current_user: dict = Depends(require_reviewer)):
    """
    审稿人工作台（直接返回 dashboard 对象，不包 success 信封）
    """
    return ReviewService().get_reviewer_dashboard(current_user["id"])


@router.get("/my-reviews")
async def my_reviews(current_user: dict = Depends(require_reviewer)):
    return {"success": True, "data": ReviewService().get_my_reviews(current_user)}


@router.get("/available-reviewers")
async def available_reviewers(current_user: dict = Depends(require_editor)):
    rows = ReviewService().get_available_reviewers(current_user)
    return {"success": True, "data": [public_user(u) for u in rows]}


@router.get("/all")
async def all_reviews(current_user: dict = Depends(require_editor)):
    return {"success": True, "data": ReviewService().get_all_reviews(current_user)}


@router.get("/statistics")
async def review_statistics(current_user: dict = Depends(require_editor)):
    return {"success": True, "data": ReviewService().get_review_statistics(current_user)}


@router.get("/submission/{submission_id}")
async def reviews_for_submission(submission_id: UUID, current_user: dict = Depends(require_editor)):
    return {"success": True, "data": ReviewService().get_reviews_for_submission(current_user, submission_id)}


@router.get("/submission/{submission_id}/author-view")
async def reviews_for_author(submission_id: UUID, current_user: dict = Depends(get_current_user)):
    return {"success": True, "data": ReviewService().get_reviews_for_author(current_user, submission_id)}


@router.put("/{review_id}")
async def update_review(
    review_id: UUID,
    current_user: dict = Depends(require_reviewer),
    req: ReviewUpdate = Body(...),
):
    review = ReviewService().update_review(current_user, review_id, req)
    return {"success": True, "message": "Review updated successfully", "data": serialize_review(review)}


@router.post("/{review_id}/complete")
async def complete_review(
    review_id: UUID,
    background_tasks: BackgroundTasks,
    current_user: dict = Depends(require_reviewer),
):
    review = ReviewService().complete_review(current_user, review_id, background_tasks)
    return {"success": True, "message": "Review completed successfully", "data": serialize_review(review)}
