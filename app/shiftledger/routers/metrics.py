from fastapi import APIRouter, Response

from app.shiftledger.core.metrics import metrics

router = APIRouter()


@router.get("/shift/ops/metrics")
def get_metrics():
    snapshot = metrics.render()
    # Scrapers must always see live counters.
    return Response(
        content=snapshot.content,
        media_type=snapshot.content_type,
        headers={"Cache-Control": "no-store"},
    )
