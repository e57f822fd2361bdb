from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, BackgroundTasks, Body, Depends, File, Form, Query, UploadFile

from journal.core.auth import get_current_user, require_editor, require_roles, require_submitter
from journal.models.submission import serialize_submission
from journal.schemas.common import parse_payload
from journal.schemas.submission import SubmissionCreate, SubmissionStatusUpdate, SubmissionUpdate, split_list_field
from journal.models.audit_log import AuditAction
from journal.services.audit_service import AuditService, audit_trail
from journal.services.submission_service import SubmissionService

router = APIRouter(prefix="/submissions", tags=["Submissions"])


@router.post("", status_code=201)
async def create_submission(
    background_tasks: BackgroundTasks,
    title: Optional[str] = Form(None),
    abstract: Optional[str] = Form(None),
    keywords: Optional[List[str]] = Form(None),
    co_authors: Optional[List[str]] = Form(None),
    manuscript: UploadFile = File(...),
    current_user: dict = Depends(require_submitter),
):
    """
    作者投稿（multipart/form-data）

    中文注释:
    - keywords / co_authors 支持重复字段、JSON 数组字符串或逗号分隔字符串。
    - 字段校验 -> 文件校验 -> 上传 Storage -> 写库，任一步失败都不会留下稿件记录。
    """
    payload = parse_payload(
        SubmissionCreate,
        {
            "title": title or "",
            "abstract": abstract or "",
            "keywords": split_list_field(keywords),
            "co_authors": split_list_field(co_authors),
        },
    )
    content = await manuscript.read()
    submission = SubmissionService().create_submission(
        current_user,
        payload,
        filename=manuscript.filename,
        content_type=manuscript.content_type,
        content=content,
        background_tasks=background_tasks,
    )
    return {
        "success": True,
        "message": "Submission created successfully",
        "data": serialize_submission(submission),
    }


@router.get("")
async def list_submissions(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    status: Optional[str] = Query(None),
    current_user: dict = Depends(require_editor),
):
    result = SubmissionService().list_submissions(current_user, page=page, limit=limit, status=status)
    body = result.to_dict()
    body["data"] = [serialize_submission(s) for s in result.data]
    return {"success": True, **body}


@router.get("/my")
async def list_my_submissions(current_user: dict = Depends(require_roles("author"))):
    rows = SubmissionService().list_my_submissions(current_user)
    return {"success": True, "data": [serialize_submission(s) for s in rows]}


@router.get("/stats")
async def submission_stats(current_user: dict = Depends(require_editor)):
    return {"success": True, "data": SubmissionService().get_stats(current_user)}


@router.get("/search")
async def search_submissions(
    q: str = Query("", description="标题/摘要关键字"),
    current_user: dict = Depends(require_editor),
):
    rows = SubmissionService().search(current_user, q)
    return {"success": True, "data": [serialize_submission(s) for s in rows]}


@router.get("/pending-review")
async def pending_review(current_user: dict = Depends(require_editor)):
    rows = SubmissionService().pending_review(current_user)
    return {"success": True, "data": [serialize_submission(s) for s in rows]}


@router.get("/{submission_id}")
async def get_submission(submission_id: UUID, current_user: dict = Depends(get_current_user)):
    submission = SubmissionService().get_submission(current_user, submission_id)
    return {"success": True, "data": serialize_submission(submission)}


@router.put("/{submission_id}")
async def update_submission(
    submission_id: UUID,
    current_user: dict = Depends(get_current_user),
    req: SubmissionUpdate = Body(...),
):
    submission = SubmissionService().update_content(current_user, submission_id, req)
    return {
        "success": True,
        "message": "Submission updated successfully",
        "data": serialize_submission(submission),
    }


@router.put("/{submission_id}/status")
async def update_submission_status(
    submission_id: UUID,
    background_tasks: BackgroundTasks,
    current_user: dict = Depends(require_editor),
    req: SubmissionStatusUpdate = Body(...),
    audit: AuditService = Depends(audit_trail),
):
    """
    编辑/管理员更新稿件状态（非法流转返回 400）
    """
    submission = SubmissionService().update_status(
        current_user,
        submission_id,
        req.status,
        req.editor_comments,
        background_tasks,
    )
    audit.record(
        AuditAction.SUBMISSION_STATUS_CHANGED,
        actor=current_user,
        entity_type="submission",
        entity_id=submission_id,
        details={"status": submission.get("status"), "editor_comments": req.editor_comments},
    )
    return {
        "success": True,
        "message": "Submission status updated successfully",
        "data": serialize_submission(submission),
    }


@router.put("/{submission_id}/manuscript")
async def resubmit_manuscript(
    submission_id: UUID,
    background_tasks: BackgroundTasks,
    manuscript: UploadFile = File(...),
    current_user: dict = Depends(get_current_user),
):
    content = await manuscript.read()
    submission = SubmissionService().resubmit_manuscript(
        current_user,
        submission_id,
        filename=manuscript.filename,
        content_type=manuscript.content_type,
        content=content,
        background_tasks=background_tasks,
    )
    return {
        "success": True,
        "message": "Manuscript updated successfully",
        "data": serialize_submission(submission),
    }


@router.get("/{submission_id}/manuscript-url")
async def manuscript_url(submission_id: UUID, current_user: dict = Depends(get_current_user)):
    return {"success": True, "data": SubmissionService().get_manuscript_url(current_user, submission_id)}
