import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from google.cloud.firestore_v1.base_query import FieldFilter
from pydantic import BaseModel, Field

from ..errors import ValidationError

logger = logging.getLogger("openlearnhub.services.quiz_result_service")

QUIZ_RESULTS_COLLECTION = "quizResults"


class QuizResult(BaseModel):
    uid: str
    videoId: str
    score: int = Field(ge=0)
    total: int = Field(gt=0)
    difficulty: Optional[str] = None
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def build_quiz_result(
    uid: Any,
    video_id: Any,
    score: Any,
    total: Any,
    difficulty: Any = None,
) -> QuizResult:
    """Validate a submission and turn it into a QuizResult."""
    if not uid or not video_id or score is None or not total:
        raise ValidationError("Incomplete quiz submission.")
    if not _is_int(score) or not _is_int(total):
        raise ValidationError("Score and total must be integers.")
    if total <= 0:
        raise ValidationError("Total must be greater than zero.")
    if score < 0 or score > total:
        raise ValidationError("Score must be between 0 and total.")

    return QuizResult(
        uid=str(uid),
        videoId=str(video_id),
        score=score,
        total=total,
        difficulty=difficulty,
    )


class QuizResultStore:
    """
    Append-only store of quiz attempts.
    Uses Firestore when a client is given, otherwise an in-process list.
    """

    def __init__(self, db=None):
        self._db = db
        self._memory_results: List[Dict[str, Any]] = []

    async def submit(self, result: QuizResult) -> None:
        data = result.model_dump()
        if self._db is not None:
            await self._db.collection(QUIZ_RESULTS_COLLECTION).add(data)
        else:
            self._memory_results.append(data)
        logger.info(f"Stored quiz result for {result.uid} on video {result.videoId}: {result.score}/{result.total}")

    async def list_by_user(self, uid: str) -> List[QuizResult]:
        if self._db is not None:
            query = self._db.collection(QUIZ_RESULTS_COLLECTION).where(filter=FieldFilter("uid", "==", uid))
            docs = await query.get()
            rows = [doc.to_dict() for doc in docs]
        else:
            rows = [row for row in self._memory_results if row["uid"] == uid]
        return [QuizResult(**row) for row in rows]
