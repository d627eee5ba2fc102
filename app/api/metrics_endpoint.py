"""Prometheus scrape endpoint.

Returns the text exposition format (not JSON): HTTP request metrics plus
the assessment counters defined in app/core/metrics.py, e.g.

  quiz_question_sets_total{source="fallback"} 3.0
  generation_degraded_total{operation="evaluate",reason="timeout"} 1.0
  certificates_issued_total{result="created"} 12.0
"""

from __future__ import annotations

from fastapi import APIRouter
from fastapi.responses import Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

router = APIRouter(tags=["observability"])


@router.get("/metrics", include_in_schema=False)
async def metrics() -> Response:
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
