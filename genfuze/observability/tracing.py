"""
OpenTelemetry tracing 配置。

提供全局 tracer 供业务代码使用：
    from genfuze.observability import tracer
    with tracer.start_as_current_span("llm.call"):
        ...

GENFUZE_TRACE_CONSOLE=1 时把 span 打印到控制台（本地排查用），否则只在进程内流转。
"""

import os

from opentelemetry import trace
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import SimpleSpanProcessor, ConsoleSpanExporter
from opentelemetry.sdk.resources import Resource

SERVICE_NAME = "genfuze-api"
SERVICE_VERSION = "0.1.0"

_provider = TracerProvider(
    resource=Resource.create({"service.name": SERVICE_NAME, "service.version": SERVICE_VERSION})
)

if os.getenv("GENFUZE_TRACE_CONSOLE", "0") == "1":
    _provider.add_span_processor(SimpleSpanProcessor(ConsoleSpanExporter()))

trace.set_tracer_provider(_provider)

tracer = trace.get_tracer(SERVICE_NAME, SERVICE_VERSION)
