"""
FastAPI 应用入口 - Genfuze.ai Q&A API
"""

import asyncio
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from config.settings import settings
from genfuze.api.errors import register_error_handlers
from genfuze.api.routes_analysis import router as analysis_router
from genfuze.api.routes_auth import router as auth_router
from genfuze.api.routes_automation import router as automation_router
from genfuze.api.routes_email import router as email_router
from genfuze.api.routes_embeddings import router as embeddings_router
from genfuze.api.routes_export import router as export_router
from genfuze.api.routes_llm import router as llm_router
from genfuze.api.routes_sessions import router as sessions_router
from genfuze.log import get_logger
from genfuze.observability import setup_observability
from genfuze.storage import get_store

logger = get_logger(__name__)

_DEFAULT_SECRET = "change-me-in-local"


async def sweep_expired_sessions(interval_seconds: float) -> None:
    """后台循环：定期删除过期的 refresh token 会话。"""
    while True:
        await asyncio.sleep(interval_seconds)
        try:
            deleted = await asyncio.to_thread(get_store().delete_expired_user_sessions)
            if deleted:
                logger.info("[sweep] cleaned up %d expired user sessions", deleted)
        except Exception as e:
            logger.error("[sweep] expired session cleanup failed: %s", e)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """应用生命周期：DB初始化 → 清理过期吊销记录 → 默认管理员 → 启动会话清理任务"""

    # 0. 确保表结构存在（alembic 已建表时 create_all 为空操作）
    from genfuze.db.engine import init_db
    try:
        init_db()
    except Exception as e:
        logger.warning("[startup] init_db failed (may be OK if alembic already ran): %s", e)

    # 0a. JWT secret key safety check
    if settings.auth.secret_key == _DEFAULT_SECRET:
        logger.warning(
            "[startup] SECURITY WARNING: auth.secret_key is still set to the default value '%s'. "
            "All JWT tokens can be trivially forged. "
            "Set JWT_SECRET or auth.secret_key in config/genfuze_config.local.json before deploying.",
            _DEFAULT_SECRET,
        )

    # 0b. Purge expired JWT revocation records to keep the table compact
    try:
        from genfuze.auth.tokens import purge_expired_revocations
        purged = purge_expired_revocations()
        if purged:
            logger.info("[startup] purged %d expired token revocation record(s)", purged)
    except Exception as e:
        logger.warning("[startup] purge_expired_revocations failed: %s", e)

    # 1. 本地认证开启时创建默认管理员
    try:
        from genfuze.auth.accounts import ensure_default_admin
        ensure_default_admin(get_store())
    except Exception as e:
        logger.warning("[startup] ensure_default_admin failed: %s", e)

    logger.info(
        "[startup] auth=%s local=%s storage=%s",
        settings.auth.auth_type, settings.auth.enable_local_auth, settings.storage.backend,
    )

    # 2. 过期会话清理（默认每 24 小时）
    sweep_task = asyncio.create_task(
        sweep_expired_sessions(settings.auth.session_sweep_interval_hours * 3600)
    )

    yield

    # Shutdown: 取消清理任务
    sweep_task.cancel()
    try:
        await sweep_task
    except asyncio.CancelledError:
        pass


app = FastAPI(
    title="Genfuze.ai Q&A API",
    description="LLM 问答生成、评分与网页端回答采集 API",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.api.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_error_handlers(app)

app.include_router(auth_router)
app.include_router(sessions_router)
app.include_router(export_router)
app.include_router(email_router)
app.include_router(llm_router)
app.include_router(analysis_router)
app.include_router(embeddings_router)
app.include_router(automation_router)

# Observability: 中间件 + /metrics
setup_observability(app)


@app.get("/api/health")
def health() -> dict:
    return {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "auth": settings.auth.auth_type,
        "localAuthEnabled": settings.auth.enable_local_auth,
    }
