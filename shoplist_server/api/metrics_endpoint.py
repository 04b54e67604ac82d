"""Prometheus metrics endpoint.

Returns plain text in Prometheus exposition format, not JSON.  Metric
data reveals request rates and rejection reasons, so the route is
guarded by the admin API key; the scraper sends it in ``x-api-key``.
"""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends
from fastapi.responses import Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from shoplist_server.api.dependencies import require_admin_key
from shoplist_server.models.claims import AdminKeyClaims

router = APIRouter(tags=["observability"])


@router.get("/metrics", include_in_schema=False)
def metrics(
    _key: Annotated[AdminKeyClaims, Depends(require_admin_key)],
) -> Response:
    """Expose all Prometheus metrics in text exposition format."""
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST,
    )
