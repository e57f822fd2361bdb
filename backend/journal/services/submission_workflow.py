"""
稿件状态机

中文注释:
- 编辑/管理员：submitted -> under_review / revisions_required / accepted / rejected；
  under_review -> revisions_required / accepted / rejected。
- 作者：revisions_required -> under_review，只能通过重新上传稿件触发（不走状态接口）。
- 管理员：accepted -> published（人工操作，不自动生成 Article）。
- 其余边（包括同状态更新、离开终态）一律 ValidationError，且在写库之前拒绝。
"""

from __future__ import annotations

from typing import Any, Mapping, Optional

from journal.core.exceptions import AuthorizationError, ValidationError
from journal.core.roles import EDITORIAL_ROLES, Role, has_role
from journal.models.submission import SubmissionStatus, normalize_status

S = SubmissionStatus

EDITORIAL_TRANSITIONS: dict[str, frozenset[str]] = {
    S.SUBMITTED.value: frozenset(
        {S.UNDER_REVIEW.value, S.REVISIONS_REQUIRED.value, S.ACCEPTED.value, S.REJECTED.value}
    ),
    S.UNDER_REVIEW.value: frozenset({S.REVISIONS_REQUIRED.value, S.ACCEPTED.value, S.REJECTED.value}),
}

ADMIN_TRANSITIONS: dict[str, frozenset[str]] = {
    S.ACCEPTED.value: frozenset({S.PUBLISHED.value}),
}

RESUBMISSION_TRANSITIONS: dict[str, frozenset[str]] = {
    S.REVISIONS_REQUIRED.value: frozenset({S.UNDER_REVIEW.value}),
}


def check_status_transition(user: Optional[Mapping[str, Any]], current: Any, target: Any) -> str:
    """
    校验一次“状态接口”发起的流转，返回规范化后的目标状态。
    """
    if not has_role(user, EDITORIAL_ROLES):
        raise AuthorizationError("Only editors and admins can update submission status")

    tgt = normalize_status(target)
    if tgt is None:
        raise ValidationError(
            f"Invalid status: {target}",
            details=[{"field": "status", "message": "Unknown submission status"}],
        )
    cur = normalize_status(current) or str(current)

    if tgt in RESUBMISSION_TRANSITIONS.get(cur, frozenset()):
        raise ValidationError(
            f"Transition from {cur} to {tgt} happens only when the author resubmits the manuscript"
        )

    if tgt in ADMIN_TRANSITIONS.get(cur, frozenset()):
        if not has_role(user, [Role.ADMIN.value]):
            raise AuthorizationError("Only admins can publish accepted submissions")
        return tgt

    if tgt not in EDITORIAL_TRANSITIONS.get(cur, frozenset()):
        raise ValidationError(f"Invalid status transition from {cur} to {tgt}")
    return tgt


def check_resubmission(current: Any) -> str:
    cur = normalize_status(current)
    if cur != S.REVISIONS_REQUIRED.value:
        raise ValidationError("Manuscript can only be updated when revisions are required")
    return S.UNDER_REVIEW.value
