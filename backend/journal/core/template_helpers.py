"""
邮件模板 helper 注册表

中文注释:
- TemplateHelpers 在进程启动时构造一次，由 EmailService 持有并在每次 render 时作为上下文传入；
  不修改任何共享的 Jinja Environment（filters/globals 保持干净）。
- 模板里以函数形式调用：{{ format_date(submitted_at, "long") }}、{{ nl2br(comments) }}。
"""

from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Any, Callable, Iterable, Optional
from urllib.parse import quote

from markupsafe import Markup, escape

_STATUS_LABELS = {
    "submitted": "Submitted",
    "under_review": "Under Review",
    "revisions_required": "Revisions Required",
    "accepted": "Accepted",
    "rejected": "Rejected",
    "published": "Published",
}


def _coerce_datetime(value: Any) -> Optional[datetime]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)
    try:
        return datetime.fromisoformat(str(value).strip().replace("Z", "+00:00"))
    except ValueError:
        return None


class TemplateHelpers:
    """显式的 helper 注册表；新增 helper 时同步登记到 names()。"""

    def __init__(self, *, now: Optional[Callable[[], datetime]] = None):
        self._now = now or (lambda: datetime.now(timezone.utc))

    @staticmethod
    def names() -> tuple[str, ...]:
        return (
            "format_date",
            "format_status",
            "truncate",
            "capitalize",
            "nl2br",
            "format_list",
            "url_encode",
            "current_year",
        )

    def as_context(self) -> dict[str, Callable[..., Any]]:
        return {name: getattr(self, name) for name in self.names()}

    @staticmethod
    def format_date(value: Any, fmt: str = "long") -> str:
        dt = _coerce_datetime(value)
        if dt is None:
            return ""
        if fmt == "full":
            return f"{dt:%A}, {dt:%B} {dt.day}, {dt.year}"
        if fmt == "short":
            return f"{dt:%b} {dt.day}, {dt.year}"
        if fmt == "month-year":
            return f"{dt:%B} {dt.year}"
        if fmt == "year":
            return str(dt.year)
        return f"{dt:%B} {dt.day}, {dt.year}"

    @staticmethod
    def format_status(status: Any) -> str:
        raw = str(getattr(status, "value", status) or "")
        if not raw:
            return ""
        return _STATUS_LABELS.get(raw) or raw.replace("_", " ").title()

    @staticmethod
    def truncate(text: Any, length: Any = 100) -> str:
        if not text:
            return ""
        s = str(text)
        try:
            n = int(length)
        except (TypeError, ValueError):
            n = 100
        if n <= 0:
            n = 100
        if len(s) <= n:
            return s
        return s[:n] + "..."

    @staticmethod
    def capitalize(text: Any) -> str:
        if not text or not isinstance(text, str):
            return ""
        return text[:1].upper() + text[1:]

    @staticmethod
    def nl2br(text: Any) -> Markup:
        if not text:
            return Markup("")
        escaped = str(escape(str(text)))
        return Markup(escaped.replace("\r\n", "<br>").replace("\r", "<br>").replace("\n", "<br>"))

    @staticmethod
    def format_list(items: Optional[Iterable[Any]]) -> str:
        values = [str(i) for i in (items or []) if str(i).strip()]
        if not values:
            return ""
        if len(values) == 1:
            return values[0]
        if len(values) == 2:
            return f"{values[0]} and {values[1]}"
        return f"{', '.join(values[:-1])}, and {values[-1]}"

    @staticmethod
    def url_encode(value: Any) -> str:
        # encodeURIComponent 语义：保留 A-Z a-z 0-9 - _ . ! ~ * ' ( )
        return quote(str(value if value is not None else ""), safe="-_.!~*'()")

    def current_year(self) -> int:
        return self._now().year
