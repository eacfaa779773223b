from fastapi import APIRouter, Body, Depends
from fastapi.responses import Response
from dataclasses import asdict
from datetime import datetime, timezone
from models.report import AttachmentRequest, ProgressRequest, ProgressStatsResponse
from routes.deps import get_current_user_id
from utils.documents import DOCX_MEDIA_TYPE, load_branding_image, render_document
from utils.email import attachment_filename
from utils.progress import build_progress_snapshot, summarize_progress
from logging_config import get_logger

router = APIRouter(prefix="/api/reports", tags=["Reports"])
logger = get_logger("reports")


@router.post("/progress", response_model=ProgressStatsResponse)
async def get_progress_stats(
    payload: ProgressRequest,
    current_user_id: str = Depends(get_current_user_id),
):
    """Counters and derived figures for a task list, as used in progress reports."""
    snapshot = build_progress_snapshot(payload.tasks)
    stats = summarize_progress(snapshot, datetime.now(timezone.utc))
    return ProgressStatsResponse(**asdict(stats))


@router.post("/attachment")
def render_attachment(
    attachment: AttachmentRequest = Body(...),
    current_user_id: str = Depends(get_current_user_id),
):
    """Render the Word (.docx) attachment for a notification. The request body selects the kind."""
    now = datetime.now(timezone.utc)
    document = render_document(attachment, now, load_branding_image())
    logger.info("Attachment rendered", extra={"data": {"kind": attachment.kind, "bytes": len(document)}})
    return Response(
        content=document,
        media_type=DOCX_MEDIA_TYPE,
        headers={"Content-Disposition": f'attachment; filename="{attachment_filename(attachment.kind, now)}"'},
    )
