import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Body, Depends, HTTPException, Path
from pydantic import BaseModel

from ..dependencies import get_quiz_result_store
from ..errors import ValidationError
from ..services.quiz_result_service import QuizResultStore, build_quiz_result

logger = logging.getLogger("openlearnhub.routes.submit_routes")

router = APIRouter()


class QuizSubmission(BaseModel):
    uid: Optional[str] = None
    videoId: Optional[str] = None
    score: Optional[Any] = None
    total: Optional[Any] = None
    difficulty: Optional[str] = None


@router.post("/submit-quiz", response_model=Dict[str, Any])
async def submit_quiz(
    submission: QuizSubmission = Body(...),
    store: QuizResultStore = Depends(get_quiz_result_store),
):
    """
    Record a scored quiz attempt for a user.
    """
    try:
        result = build_quiz_result(
            submission.uid,
            submission.videoId,
            submission.score,
            submission.total,
            submission.difficulty,
        )
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=e.message)

    try:
        await store.submit(result)
    except Exception as e:
        logger.error(f"Error storing quiz result: {e}")
        raise HTTPException(status_code=500, detail="Could not store quiz result.")

    return {"message": "Quiz submitted successfully!"}


@router.get("/quiz-results/{uid}", response_model=List[Dict[str, Any]])
async def get_quiz_results(
    uid: str = Path(..., description="The user id whose attempts to list"),
    store: QuizResultStore = Depends(get_quiz_result_store),
):
    """
    List every stored quiz attempt for a user. Empty list when there are none.
    """
    if not uid.strip():
        raise HTTPException(status_code=400, detail="Missing UID")

    try:
        results = await store.list_by_user(uid)
    except Exception as e:
        logger.error(f"Failed to fetch quiz results: {e}")
        raise HTTPException(status_code=500, detail="Failed to fetch quiz results")

    return [result.model_dump(mode="json") for result in results]
