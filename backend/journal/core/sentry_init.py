"""
Sentry 错误上报

中文注释:
- 未配置 SENTRY_DSN 或 SENTRY_ENABLED=0 时完全不初始化。
- 上报前清洗：认证凭据、稿件 PDF 内容、审稿 confidential_comments 一律替换为 [Filtered]。
"""

from typing import Any, Optional

from journal.core.config import SentryConfig

FILTERED = "[Filtered]"

# 凭据类字段（小写比较）
CREDENTIAL_KEYS = frozenset(
    {
        "password",
        "new_password",
        "access_token",
        "refresh_token",
        "refreshtoken",
        "token",
        "authorization",
        "cookie",
        "set-cookie",
        "apikey",
        "supabase_service_role_key",
        "service_role_key",
    }
)

# 只允许编辑可见的审稿内容与稿件文件本身
EDITORIAL_KEYS = frozenset({"confidential_comments", "manuscript"})

MAX_TEXT_LENGTH = 5000


def _is_sensitive_key(key: Any) -> bool:
    k = str(key).strip().lower()
    return k in CREDENTIAL_KEYS or k in EDITORIAL_KEYS


def _is_file_payload(value: Any) -> bool:
    if isinstance(value, (bytes, bytearray)):
        return True
    return isinstance(value, str) and len(value) > MAX_TEXT_LENGTH


def scrub(value: Any) -> Any:
    if _is_file_payload(value):
        return FILTERED
    if isinstance(value, dict):
        return {str(k): FILTERED if _is_sensitive_key(k) else scrub(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [scrub(v) for v in value]
    return value


def _strip_request(request: dict[str, Any]) -> dict[str, Any]:
    # 请求体（multipart 稿件、登录密码）与 cookie 一律不上传
    headers = request.get("headers")
    if isinstance(headers, dict):
        request["headers"] = {k: v for k, v in headers.items() if not _is_sensitive_key(k)}
    for field in ("cookies", "data", "body"):
        if field in request:
            request[field] = FILTERED
    return request


def before_send(event: dict[str, Any], hint: dict[str, Any]) -> Optional[dict[str, Any]]:
    if isinstance(event.get("request"), dict):
        event["request"] = _strip_request(event["request"])
    for section in ("extra", "contexts"):
        if isinstance(event.get(section), dict):
            event[section] = scrub(event[section])
    return event


def build_sentry_options(cfg: SentryConfig) -> dict[str, Any]:
    from sentry_sdk.integrations.fastapi import FastApiIntegration

    return {
        "dsn": cfg.dsn,
        "environment": cfg.environment,
        "traces_sample_rate": cfg.traces_sample_rate,
        "integrations": [FastApiIntegration()],
        "send_default_pii": False,
        "before_send": before_send,
        "max_request_body_size": "never",
    }


def init_sentry(cfg: Optional[SentryConfig] = None) -> bool:
    """
    返回是否启用。初始化异常由调用方（main.py）兜住，不得阻塞启动。
    """
    cfg = cfg or SentryConfig.from_env()
    if not cfg.enabled or not cfg.dsn:
        return False

    import sentry_sdk

    sentry_sdk.init(**build_sentry_options(cfg))
    return True
