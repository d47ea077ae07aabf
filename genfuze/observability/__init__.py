"""
Observability 模块：OpenTelemetry tracing + Prometheus metrics。

用法：
    from genfuze.observability import setup_observability, metrics, tracer

    setup_observability(app)

    with tracer.start_as_current_span("automation.batch"):
        ...

    metrics.automation_questions_total.labels(target="chatgpt", outcome="answered").inc()
"""

from genfuze.observability.setup import setup_observability
from genfuze.observability.metrics import metrics
from genfuze.observability.tracing import tracer

__all__ = ["setup_observability", "metrics", "tracer"]
