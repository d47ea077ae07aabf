"""
一键初始化 Observability：注册中间件 + /metrics 端点 + 应用元信息。
"""

from fastapi import FastAPI
from fastapi.responses import PlainTextResponse
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST

from genfuze.observability.middleware import ObservabilityMiddleware
from genfuze.observability.metrics import metrics
from genfuze.observability.tracing import SERVICE_NAME, SERVICE_VERSION
from genfuze.log import get_logger

logger = get_logger(__name__)


def setup_observability(app: FastAPI) -> None:
    """
    在 FastAPI app 上挂载 Observability 组件。

    应在 router 注册之后、启动之前调用。
    """
    app.add_middleware(ObservabilityMiddleware)

    @app.get("/metrics", include_in_schema=False)
    def prometheus_metrics():
        return PlainTextResponse(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    metrics.app_info.info({"version": SERVICE_VERSION, "service": SERVICE_NAME})
    logger.info("[observability] middleware + /metrics registered")
