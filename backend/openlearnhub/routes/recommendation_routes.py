from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, HTTPException
from pydantic import BaseModel

from ..config import Settings
from ..dependencies import get_completion_client, get_settings
from ..services import llm_client
from ..services.llm_client import CompletionClient

router = APIRouter()


class RecommendationRequest(BaseModel):
    userInput: Optional[str] = None


@router.post("/recommend-courses", response_model=Dict[str, Any])
async def recommend_courses(
    payload: RecommendationRequest = Body(...),
    completion: CompletionClient = Depends(get_completion_client),
    settings: Settings = Depends(get_settings),
):
    """
    Ask the LLM for course recommendations.
    Provider failures degrade to a fixed "unavailable" message.
    """
    if not payload.userInput:
        raise HTTPException(status_code=400, detail="User input is required.")

    try:
        recommendation = await llm_client.recommend_courses(
            completion, payload.userInput, settings.recommendation_model
        )
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Something went wrong! {e}")
    return {"recommendation": recommendation}
