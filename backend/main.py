import logging
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

# 在应用启动前加载环境变量
load_dotenv()

logger = logging.getLogger("journal")

_SENTRY_ENABLED = False
try:
    from journal.core.sentry_init import init_sentry

    _SENTRY_ENABLED = init_sentry()
    if _SENTRY_ENABLED:
        logger.info("[sentry] enabled")
except Exception as e:
    # 中文注释: 零崩溃原则，Sentry 任何异常不得阻塞启动
    logger.warning("[sentry] init failed (ignored): %s", e)

from journal.api import auth, health, publications, reviews, submissions, users
from journal.core.config import app_config, cors_origins
from journal.core.exceptions import register_exception_handlers
from journal.core.middleware import ExceptionHandlerMiddleware
from journal.core.rate_limit import RateLimitMiddleware

API_PREFIX = "/api"


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Journal API starting (env=%s)", app_config.env)
    yield


app = FastAPI(
    title="Journal Submission API",
    description="Manuscript submission and peer-review backend",
    version="1.0.0",
    lifespan=lifespan,
)

if _SENTRY_ENABLED:
    try:
        from sentry_sdk.integrations.asgi import SentryAsgiMiddleware

        app.add_middleware(SentryAsgiMiddleware)
    except Exception as e:
        logger.warning("[sentry] middleware attach failed (ignored): %s", e)


# === 中间件配置 ===
# 1. 跨域资源共享 (CORS) - 允许前端访问
app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# 2. 认证端点限流（pytest 下自动关闭）
app.add_middleware(RateLimitMiddleware)

# 3. 统一异常处理 + 请求日志（最外层）
app.add_middleware(ExceptionHandlerMiddleware)

# === 错误体统一 ===
register_exception_handlers(app)

# === 路由注册 ===
app.include_router(auth.router, prefix=API_PREFIX)
app.include_router(submissions.router, prefix=API_PREFIX)
app.include_router(reviews.router, prefix=API_PREFIX)
app.include_router(users.router, prefix=API_PREFIX)
app.include_router(publications.router, prefix=API_PREFIX)
app.include_router(health.router, prefix=API_PREFIX)


@app.get("/")
async def root():
    return {"message": "Journal API is running", "docs": "/docs"}
