"""AI summary and quiz endpoints."""

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from app.database import get_db
from app.middleware.auth import get_current_active_user
from app.models.user import User
from app.models.schemas import ErrorResponse
from app.models.video_schemas import SummaryResponse
from app.services.error_tracking import capture_exception
from app.services.logging_service import app_metrics, logger
from app.services.rag_service import RAGPipelineError, SummaryPipeline, get_summary_pipeline
from app.services.video_service import get_video

router = APIRouter()

SUMMARY_ERROR_RESPONSES = {
    400: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
    500: {"model": ErrorResponse},
}


def summarize_video(video_id: int, db: Session, pipeline: SummaryPipeline) -> dict:
    """
    Run the summary pipeline for a video and map failures to HTTP errors.

    Known pipeline failures keep their own status and message; anything else
    becomes a 500 carrying the underlying error text.
    """
    video = get_video(db, video_id)
    if not video:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Video not found")

    try:
        return pipeline.run(db, video)
    except RAGPipelineError as e:
        app_metrics.record_ai_pipeline(success=False)
        logger.warning("Summary pipeline rejected video", video_id=video_id, error=str(e))
        raise HTTPException(status_code=e.status_code, detail=str(e))
    except Exception as e:
        app_metrics.record_ai_pipeline(success=False)
        logger.exception("AI pipeline error", video_id=video_id)
        capture_exception(e, tags={"component": "ai_pipeline"})
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"message": "AI pipeline error", "error": str(e)}
        )


@router.get("/video/{video_id}/summary", response_model=SummaryResponse, responses=SUMMARY_ERROR_RESPONSES)
def get_video_summary(
    video_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
    pipeline: SummaryPipeline = Depends(get_summary_pipeline)
):
    """
    Summarize a video and generate a three-question quiz.

    Transcribes the stored file, indexes its chunks in the vector store,
    retrieves the most relevant chunks and asks the chat model for
    ``{"summary", "quiz"}``.
    """
    return summarize_video(video_id, db, pipeline)
