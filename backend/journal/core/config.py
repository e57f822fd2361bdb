import os
from dataclasses import dataclass
from typing import Optional


def _env_bool(key: str, default: bool) -> bool:
    raw = os.environ.get(key)
    if raw is None:
        return default
    lowered = raw.strip().lower()
    return lowered in {"1", "true", "yes", "y", "on"}


def _env_int(key: str, default: int, *, minimum: int = 1) -> int:
    raw = (os.environ.get(key) or "").strip()
    if not raw:
        return default
    try:
        return max(int(raw), minimum)
    except ValueError:
        return default


def _env_float(key: str, default: float) -> float:
    raw = (os.environ.get(key) or "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


@dataclass(frozen=True)
class AppConfig:
    """
    Application environment config.

    中文注释:
    - env 决定 500 错误是否回显异常信息（仅 development 回显）。
    - frontend_url 用于邮件中的跳转链接与密码重置回调。
    """

    env: str  # 'development', 'staging', 'production'
    supabase_url: str
    supabase_key: str
    supabase_anon_key: str
    frontend_url: str
    journal_name: str

    @property
    def is_development(self) -> bool:
        return self.env == "development"

    @staticmethod
    def from_env() -> "AppConfig":
        env = (os.environ.get("APP_ENV") or "development").strip().lower()
        supabase_url = (os.environ.get("SUPABASE_URL") or "").strip()
        supabase_key = (os.environ.get("SUPABASE_SERVICE_ROLE_KEY") or "").strip()
        # 历史上同时存在 SUPABASE_KEY 与 SUPABASE_ANON_KEY，优先读后者
        supabase_anon_key = (os.environ.get("SUPABASE_ANON_KEY") or os.environ.get("SUPABASE_KEY") or "").strip()
        frontend_url = (
            os.environ.get("FRONTEND_URL")
            or os.environ.get("FRONTEND_ORIGIN")
            or "http://localhost:3000"
        ).strip().rstrip("/")
        journal_name = (
            os.environ.get("JOURNAL_NAME")
            or "Africa Journal of Social Work and Social Policy"
        ).strip()

        return AppConfig(
            env=env,
            supabase_url=supabase_url,
            supabase_key=supabase_key,
            supabase_anon_key=supabase_anon_key,
            frontend_url=frontend_url,
            journal_name=journal_name,
        )


# Global Config Instance
app_config = AppConfig.from_env()


@dataclass(frozen=True)
class UploadConfig:
    """
    稿件上传限制

    中文注释:
    - MIME 必须严格等于 application/pdf，大小上限 10 MiB（10 * 1024 * 1024 字节）。
    - 两项校验都在写 Storage 之前执行。
    """

    max_bytes: int
    allowed_content_type: str
    bucket: str

    @staticmethod
    def from_env() -> "UploadConfig":
        bucket = (os.environ.get("MANUSCRIPT_BUCKET") or "manuscripts").strip()
        return UploadConfig(
            max_bytes=10 * 1024 * 1024,
            allowed_content_type="application/pdf",
            bucket=bucket or "manuscripts",
        )


@dataclass(frozen=True)
class SMTPConfig:
    """
    SMTP 配置（从环境变量读取）

    中文注释:
    1) 该配置只存在于后端进程内，严禁泄露到前端。
    2) 允许在本地/测试环境缺省（此时邮件发送逻辑会降级为“只记录日志”）。
    """

    host: str
    port: int
    user: Optional[str]
    password: Optional[str]
    from_email: str
    use_starttls: bool

    @staticmethod
    def from_env() -> Optional["SMTPConfig"]:
        host = (os.environ.get("SMTP_HOST") or "").strip()
        if not host:
            return None

        port_raw = (os.environ.get("SMTP_PORT") or "587").strip()
        try:
            port = int(port_raw)
        except ValueError:
            port = 587

        user = (os.environ.get("SMTP_USER") or "").strip() or None
        password = (os.environ.get("SMTP_PASSWORD") or "").strip() or None

        from_email = (
            os.environ.get("SMTP_FROM_EMAIL") or user or "noreply@africajournal.org"
        ).strip()

        use_starttls = _env_bool("SMTP_USE_STARTTLS", True)

        return SMTPConfig(
            host=host,
            port=port,
            user=user,
            password=password,
            from_email=from_email,
            use_starttls=use_starttls,
        )


@dataclass(frozen=True)
class ResendConfig:
    """
    Resend API configuration (HTTP e-mail provider)
    """

    api_key: str
    sender: str

    @staticmethod
    def from_env() -> Optional["ResendConfig"]:
        api_key = (os.environ.get("RESEND_API_KEY") or "").strip()
        if not api_key:
            return None

        sender = (
            os.environ.get("EMAIL_SENDER") or "Africa Journal <noreply@africajournal.org>"
        ).strip()

        return ResendConfig(api_key=api_key, sender=sender)


@dataclass(frozen=True)
class SentryConfig:
    enabled: bool
    dsn: Optional[str]
    environment: str
    traces_sample_rate: float

    @staticmethod
    def from_env() -> "SentryConfig":
        dsn = (os.environ.get("SENTRY_DSN") or "").strip() or None
        enabled = _env_bool("SENTRY_ENABLED", bool(dsn))
        environment = (
            os.environ.get("SENTRY_ENVIRONMENT")
            or os.environ.get("APP_ENV")
            or "development"
        ).strip()
        traces_sample_rate = _env_float("SENTRY_TRACES_SAMPLE_RATE", 0.0)
        return SentryConfig(
            enabled=enabled,
            dsn=dsn,
            environment=environment,
            traces_sample_rate=traces_sample_rate,
        )


@dataclass(frozen=True)
class RateLimitRule:
    max_requests: int
    window_sec: int


@dataclass(frozen=True)
class RateLimitConfig:
    """
    认证端点限流（按客户端 IP）

    中文注释:
    - 环境变量 RATE_LIMIT_<NAME>_MAX / RATE_LIMIT_<NAME>_WINDOW_SEC 覆盖默认值。
    - pytest / APP_ENV=test 下整体关闭；RATE_LIMIT_ENABLED=0 可手动关闭。
    """

    enabled: bool
    rules: dict[str, RateLimitRule]

    # 路径 -> (环境变量名, 默认次数, 默认窗口秒)
    DEFAULTS = {
        "/api/auth/login": ("LOGIN", 10, 60),
        "/api/auth/register": ("REGISTER", 5, 60),
        "/api/auth/refresh": ("REFRESH", 30, 60),
        "/api/auth/forgot-password": ("FORGOT", 5, 300),
    }

    @staticmethod
    def from_env() -> "RateLimitConfig":
        under_test = bool(os.environ.get("PYTEST_CURRENT_TEST")) or (
            (os.environ.get("APP_ENV") or "").strip().lower() in {"test", "testing"}
        )
        rules = {
            path: RateLimitRule(
                max_requests=_env_int(f"RATE_LIMIT_{name}_MAX", max_requests),
                window_sec=_env_int(f"RATE_LIMIT_{name}_WINDOW_SEC", window_sec),
            )
            for path, (name, max_requests, window_sec) in RateLimitConfig.DEFAULTS.items()
        }
        return RateLimitConfig(
            enabled=not under_test and _env_bool("RATE_LIMIT_ENABLED", True),
            rules=rules,
        )


def cors_origins() -> list[str]:
    """
    允许跨域的前端 Origins：FRONTEND_ORIGIN + FRONTEND_ORIGINS（逗号分隔），去重保序；
    都未配置时只放行本地 http://localhost:3000。
    """
    raw = [os.environ.get("FRONTEND_ORIGIN") or ""] + (os.environ.get("FRONTEND_ORIGINS") or "").split(",")
    origins = [o.strip().rstrip("/") for o in raw if o and o.strip()]
    return list(dict.fromkeys(origins)) or ["http://localhost:3000"]
