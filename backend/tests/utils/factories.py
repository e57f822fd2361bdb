"""
测试数据工厂：直接往 FakeSupabase 写行 + 签发测试 JWT
"""

from datetime import datetime, timedelta, timezone
from typing import Optional
from uuid import uuid4

import jwt

from journal.core.auth import SUPABASE_JWT_SECRET
from tests.utils.fake_supabase import FakeSupabase


def generate_test_token(user_id: str, email: str = "test@example.com", *, expires_in: timedelta = timedelta(hours=1)):
    """
    生成用于测试的 JWT 令牌（与 Supabase 签发格式一致）
    """
    now = datetime.now(timezone.utc)
    payload = {
        "sub": user_id,
        "email": email,
        "aud": "authenticated",
        "exp": now + expires_in,
        "iat": now,
        "role": "authenticated",
    }
    return jwt.encode(payload, SUPABASE_JWT_SECRET, algorithm="HS256")


def token_for(user: dict) -> str:
    return generate_test_token(user["id"], user["email"])


def make_user(db: FakeSupabase, role: str = "author", *, is_active: bool = True, **fields) -> dict:
    user_id = str(uuid4())
    row = {
        "id": user_id,
        "email": fields.pop("email", f"{role}-{user_id[:8]}@example.com"),
        "first_name": fields.pop("first_name", role.capitalize()),
        "last_name": fields.pop("last_name", "Tester"),
        "affiliation": fields.pop("affiliation", "University of Ghana"),
        "role": role,
        "is_active": is_active,
        "created_at": datetime.now(timezone.utc).isoformat(),
        **fields,
    }
    return db.seed("users", row)


def make_submission(db: FakeSupabase, author: dict, *, status: str = "submitted", **fields) -> dict:
    row = {
        "title": fields.pop("title", "Community Health Workers in Rural Kenya"),
        "abstract": fields.pop("abstract", "A mixed-methods study of community health outreach."),
        "keywords": fields.pop("keywords", ["health", "policy", "kenya"]),
        "co_authors": fields.pop("co_authors", []),
        "author_id": author["id"],
        "status": status,
        "manuscript_path": fields.pop("manuscript_path", f"{author['id']}/1700000000000_paper.pdf"),
        "submitted_at": fields.pop("submitted_at", datetime.now(timezone.utc).isoformat()),
        **fields,
    }
    return db.seed("submissions", row)


def make_review(db: FakeSupabase, submission: dict, reviewer: dict, *, completed: bool = False, **fields) -> dict:
    now = datetime.now(timezone.utc).isoformat()
    status = "completed" if completed else fields.pop("status", "in_progress")
    fields.pop("status", None)
    row = {
        "submission_id": submission["id"],
        "reviewer_id": reviewer["id"],
        "recommendation": fields.pop("recommendation", "minor_revisions"),
        "comments": fields.pop("comments", "Solid methodology, clarify the sampling frame."),
        "confidential_comments": fields.pop("confidential_comments", None),
        "rating": fields.pop("rating", 4),
        "status": status,
        "is_completed": completed,
        "assigned_date": now,
        "completed_date": now if completed else None,
        "submitted_at": now if completed else None,
        **fields,
    }
    return db.seed("reviews", row)


def pdf_file(size: Optional[int] = None, *, name: str = "manuscript.pdf", content_type: str = "application/pdf"):
    body = b"%PDF-1.4\n% test manuscript\n"
    if size is not None:
        body = body + b"0" * max(size - len(body), 0)
    return {"manuscript": (name, body, content_type)}
