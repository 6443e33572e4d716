import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, HTTPException
from pydantic import BaseModel

from ..config import Settings
from ..dependencies import get_completion_client, get_settings
from ..errors import ExtractionError, UpstreamError
from ..services import quiz_service
from ..services.llm_client import CompletionClient

logger = logging.getLogger("openlearnhub.routes.quiz_routes")

router = APIRouter()


class QuizRequest(BaseModel):
    videoTitle: Optional[str] = None
    difficulty: Optional[str] = None
    topic: Optional[Any] = None


@router.post("/generate-quiz", response_model=Dict[str, Any])
async def generate_quiz(
    payload: QuizRequest = Body(...),
    completion: CompletionClient = Depends(get_completion_client),
    settings: Settings = Depends(get_settings),
):
    """
    Generate a multiple-choice quiz for a video from its title and topic.
    """
    if not payload.videoTitle:
        raise HTTPException(status_code=400, detail="Video title is required")

    try:
        quiz = await quiz_service.generate_quiz(
            completion,
            settings.quiz_model,
            video_title=payload.videoTitle,
            topic=payload.topic,
            difficulty=payload.difficulty or quiz_service.DEFAULT_DIFFICULTY,
        )
    except ExtractionError as e:
        raise HTTPException(status_code=500, detail=e.message)
    except UpstreamError as e:
        logger.error(f"Quiz generation error: {e}")
        raise HTTPException(status_code=500, detail="Failed to generate quiz.")

    return {"quiz": quiz}
