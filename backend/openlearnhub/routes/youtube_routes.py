from typing import Any, Dict, List

from fastapi import APIRouter, Depends, HTTPException, Query

from ..dependencies import get_video_search
from ..errors import UpstreamError
from ..services.youtube_service import VideoSearchService

router = APIRouter()


@router.get("/videos", response_model=List[Dict[str, Any]])
async def get_course_videos(
    subCourse: str = Query(..., min_length=1, description="Sub-course to find videos for"),
    maxResults: int = Query(10, ge=1, le=50, description="Maximum number of results"),
    search: VideoSearchService = Depends(get_video_search),
):
    """
    Search YouTube for course videos on a sub-course.
    """
    try:
        return await search.search_course_videos(subCourse, max_results=maxResults)
    except UpstreamError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
