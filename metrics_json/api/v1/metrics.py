"""Metrics document REST API endpoints.

``GET /metrics`` accepts these query-string parameters:

- ``class``: only include groups whose name starts with this prefix. The
  value ``runtime`` selects just the runtime section.
- ``pretty``: ``true`` to indent the JSON for reading in a browser.
- ``full-samples``: ``true`` to include every sampled value of histograms
  and timers, e.g. for computing quantiles across hosts.
"""

import io
from typing import Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import Response

from metrics_json.core.config import settings
from metrics_json.services.metrics.clock import Clock
from metrics_json.services.metrics.instance import (
    get_clock, get_default_registry, get_runtime_metrics
)
from metrics_json.services.metrics.models import MetricsHealthModel
from metrics_json.services.metrics.serializer import MetricsContext, MetricsJsonGenerator
from metrics_json.services.metrics.writer import JsonDocumentWriter

router = APIRouter(prefix="/metrics", tags=["metrics"])

CONTENT_TYPE = "application/json"
NO_CACHE = "must-revalidate,no-cache,no-store"

_generator = MetricsJsonGenerator(runtime_selector=settings.RUNTIME_SELECTOR)


def _parse_bool(value: Optional[str]) -> bool:
    return value is not None and value.lower() == "true"


def get_metrics_context(clock: Clock = Depends(get_clock)) -> MetricsContext:
    """FastAPI dependency assembling the document collaborators."""
    return MetricsContext(
        clock=clock,
        runtime=get_runtime_metrics(),
        registry=get_default_registry(),
    )


@router.get("")
def get_metrics_document(
    class_prefix: Optional[str] = Query(None, alias="class", description="Group name prefix filter"),
    pretty: Optional[str] = Query(None, description="Indent the output when 'true'"),
    full_samples: Optional[str] = Query(None, alias="full-samples", description="Include raw samples when 'true'"),
    context: MetricsContext = Depends(get_metrics_context),
):
    """Get the full metrics document.

    Instruments that fail to serialize are left out; the response is still
    a complete JSON document.
    """
    buffer = io.StringIO()
    json = JsonDocumentWriter(buffer, pretty=_parse_bool(pretty))
    _generator.write_document(
        json,
        context,
        class_prefix=class_prefix,
        show_full_samples=_parse_bool(full_samples),
        show_runtime=settings.METRICS_SHOW_RUNTIME,
    )
    return Response(
        content=buffer.getvalue(),
        media_type=CONTENT_TYPE,
        headers={"Cache-Control": NO_CACHE},
    )


@router.get("/health", response_model=MetricsHealthModel)
def get_metrics_health(context: MetricsContext = Depends(get_metrics_context)):
    """Lightweight health check that always returns 200."""
    grouped = context.registry.grouped_metrics()
    return MetricsHealthModel(
        metric_count=sum(len(metrics) for metrics in grouped.values()),
        group_count=len(grouped),
        runtime_enabled=settings.METRICS_SHOW_RUNTIME,
        version=settings.VERSION,
    )
