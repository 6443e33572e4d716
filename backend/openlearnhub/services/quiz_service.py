import re
import json
import logging
from typing import Any, Dict, List

from ..errors import (
    EmptyCompletionError,
    InvalidQuizSchemaError,
    MalformedJsonError,
    NoJsonArrayFoundError,
)
from .llm_client import CompletionClient

logger = logging.getLogger("openlearnhub.services.quiz_service")

QUESTION_COUNT = 10
OPTION_LABELS = ["A", "B", "C", "D"]
DEFAULT_DIFFICULTY = "beginner"

QUIZ_SYSTEM_PROMPT = "You are a quiz master AI for educational videos."

QUIZ_GENERATION_PROMPT = """
Generate exactly {count} multiple-choice questions based on the video titled "{video_title}" (topic: {topic}, difficulty: {difficulty}).

Each question must have this format only:
{{
  "question": "string",
  "options": ["A", "B", "C", "D"],
  "answer": "A" | "B" | "C" | "D"
}}

Output a valid JSON array ONLY, like this:
[
  {{ "question": "...", "options": [...], "answer": "B" }},
  ...
]
DO NOT include explanations. Output ONLY the JSON array.
"""

# First "[ {...} ]" run in the text; the model may wrap it in chatter.
JSON_ARRAY_PATTERN = re.compile(r"\[\s*{[\s\S]*?}\s*\]")


def build_quiz_prompt(video_title: str, topic: Any, difficulty: str) -> str:
    return QUIZ_GENERATION_PROMPT.format(
        count=QUESTION_COUNT,
        video_title=video_title,
        topic=topic,
        difficulty=difficulty,
    )


def extract_json_array(text: str) -> str:
    match = JSON_ARRAY_PATTERN.search(text)
    if not match:
        raise NoJsonArrayFoundError("AI returned invalid quiz format.")
    return match.group(0)


def parse_quiz_text(text: str) -> Any:
    """Extract the JSON array from model output and decode it."""
    if not text or not text.strip():
        raise EmptyCompletionError("AI returned no quiz content.")

    candidate = extract_json_array(text)
    try:
        return json.loads(candidate)
    except json.JSONDecodeError as e:
        logger.error(f"JSON parsing failed for quiz: {e}")
        raise MalformedJsonError("AI returned malformed JSON.")


def _validate_question(index: int, item: Any) -> Dict[str, Any]:
    if not isinstance(item, dict):
        raise InvalidQuizSchemaError(f"Question {index + 1} is not an object.")

    question = item.get("question")
    if not isinstance(question, str) or not question.strip():
        raise InvalidQuizSchemaError(f"Question {index + 1} has no question text.")

    options = item.get("options")
    if not isinstance(options, list) or len(options) != len(OPTION_LABELS):
        raise InvalidQuizSchemaError(f"Question {index + 1} must have exactly {len(OPTION_LABELS)} options.")

    answer = item.get("answer")
    if isinstance(answer, str):
        answer = answer.strip()
    if answer not in OPTION_LABELS:
        # Some models answer with the option text instead of its label.
        if answer in options:
            answer = OPTION_LABELS[options.index(answer)]
        else:
            raise InvalidQuizSchemaError(f"Question {index + 1} has an answer that is not one of A-D.")

    return {**item, "answer": answer}


def validate_quiz(parsed: Any) -> List[Dict[str, Any]]:
    if not isinstance(parsed, list) or not parsed:
        raise InvalidQuizSchemaError("AI returned quiz with invalid structure.")

    questions = [_validate_question(i, item) for i, item in enumerate(parsed)]
    if len(questions) != QUESTION_COUNT:
        logger.warning(f"Expected {QUESTION_COUNT} quiz questions, got {len(questions)}")
    return questions


async def generate_quiz(
    completion: CompletionClient,
    model: str,
    video_title: str,
    topic: Any = None,
    difficulty: str = DEFAULT_DIFFICULTY,
) -> List[Dict[str, Any]]:
    """
    Generate multiple-choice questions for a video.
    Raises an ExtractionError subclass naming the stage that failed,
    or UpstreamError if the completion request itself failed.
    """
    prompt = build_quiz_prompt(video_title, topic, difficulty)
    logger.info(f"Generating quiz for '{video_title}' (topic: {topic}, difficulty: {difficulty})")

    raw_output = await completion.complete_raw(QUIZ_SYSTEM_PROMPT, prompt, model)
    if raw_output is None:
        raise EmptyCompletionError("AI returned no quiz content.")
    logger.info(f"Raw quiz response: {raw_output[:200]}...")

    try:
        questions = validate_quiz(parse_quiz_text(raw_output))
    except (NoJsonArrayFoundError, MalformedJsonError, InvalidQuizSchemaError) as e:
        logger.error(f"Quiz extraction failed ({e.kind}): {raw_output[:500]}")
        raise

    logger.info(f"Successfully generated {len(questions)} quiz questions")
    return questions
