from __future__ import annotations

from typing import Any, Optional

from journal.core.exceptions import ConflictError, NotFoundError, ValidationError
from journal.models.publication import serialize_article, serialize_issue, serialize_volume
from journal.repositories.publications import ArticleRepository, IssueRepository, VolumeRepository
from journal.schemas.publication import IssueCreate, VolumeCreate


class PublicationService:
    """
    卷 / 期 / 文章

    中文注释:
    - 读接口全部公开；建卷/建期只对管理员开放（路由层 require_admin）。
    - Article 由编辑部人工整理录入，这里不提供从 accepted 稿件自动生成的逻辑。
    """

    def __init__(
        self,
        volumes: Optional[VolumeRepository] = None,
        issues: Optional[IssueRepository] = None,
        articles: Optional[ArticleRepository] = None,
    ):
        self.volumes = volumes or VolumeRepository()
        self.issues = issues or IssueRepository()
        self.articles = articles or ArticleRepository()

    # === Volumes / Issues ===

    def list_volumes(self) -> list[dict[str, Any]]:
        volumes = self.volumes.find_all()
        issues = self.issues.find_by_volumes([v.get("id") for v in volumes])
        by_volume: dict[str, list[dict[str, Any]]] = {}
        for issue in issues:
            by_volume.setdefault(str(issue.get("volume_id")), []).append(issue)
        return [serialize_volume(v, by_volume.get(str(v.get("id")), [])) for v in volumes]

    def latest_volume(self) -> dict[str, Any]:
        volume = self.volumes.find_latest()
        if not volume:
            raise NotFoundError("No volumes published yet")
        return serialize_volume(volume, self.issues.find_by_volume(volume["id"]))

    def get_volume_by_number(self, volume_number: int) -> dict[str, Any]:
        volume = self.volumes.find_by_number(volume_number)
        if not volume:
            raise NotFoundError(f"Volume {volume_number} not found")
        return serialize_volume(volume, self.issues.find_by_volume(volume["id"]))

    def create_volume(self, payload: VolumeCreate) -> dict[str, Any]:
        if self.volumes.find_by_number(payload.volume_number):
            raise ConflictError(f"Volume {payload.volume_number} already exists")
        volume = self.volumes.create(payload.model_dump(mode="json"))
        return serialize_volume(volume, [])

    def create_issue(self, volume_id: Any, payload: IssueCreate) -> dict[str, Any]:
        volume = self.volumes.find_by_id(volume_id)
        if not volume:
            raise NotFoundError("Volume not found")
        if self.issues.find_by_volume_and_number(volume_id, payload.issue_number):
            raise ConflictError(
                f"Issue {payload.issue_number} already exists in volume {volume.get('volume_number')}"
            )
        data = payload.model_dump(mode="json")
        data["volume_id"] = str(volume_id)
        return serialize_issue(self.issues.create(data))

    # === Articles ===

    def list_articles(self, *, page: Any = 1, limit: Any = 12, issue_id: Optional[str] = None) -> dict[str, Any]:
        result = self.articles.find_with_pagination(page, limit, issue_id=issue_id)
        body = result.to_dict()
        body["data"] = [serialize_article(a) for a in result.data]
        return body

    def get_article(self, article_id: Any) -> dict[str, Any]:
        article = self.articles.find_by_id(article_id)
        if not article:
            raise NotFoundError("Article not found")
        return serialize_article(article)

    def search_articles(self, term: str) -> list[dict[str, Any]]:
        if not (term or "").strip():
            raise ValidationError("Search query is required")
        return [serialize_article(a) for a in self.articles.search(term)]

    def recent_articles(self, limit: int = 10) -> list[dict[str, Any]]:
        return [serialize_article(a) for a in self.articles.find_recent(limit)]

    def articles_by_issue(self, issue_id: Any) -> list[dict[str, Any]]:
        if not self.issues.find_by_id(issue_id):
            raise NotFoundError("Issue not found")
        return [serialize_article(a) for a in self.articles.find_by_issue(issue_id)]

    def get_stats(self) -> dict[str, int]:
        return {
            "total_volumes": self.volumes.count(),
            "total_issues": self.issues.count(),
            "total_articles": self.articles.count(),
        }
