import logging
import re
from typing import Dict, List, Mapping

from ..errors import ValidationError
from .entities import OPTION_LETTERS, TRUE_FALSE_ANSWERS, QuestionType, Quiz

logger = logging.getLogger(__name__)

_ANSWER_KEY = re.compile(r"^q(0|[1-9]\d*)$")


def _error(field: str, message: str) -> Dict[str, str]:
    return {"field": field, "message": message}


def validate_quiz(quiz: Quiz) -> None:
    """
    Check a whole quiz record before it is stored.

    Past deadlines are allowed; such a quiz is simply never available.
    Raises ValidationError listing every offending field.
    """
    errors: List[Dict[str, str]] = []

    if not quiz.title or not quiz.title.strip():
        errors.append(_error("title", "Title is required"))
    for name in ("grade", "group", "subject"):
        value = getattr(quiz, name)
        if not value or not value.strip():
            errors.append(_error(name, f"{name.capitalize()} is required"))
    if quiz.duration_minutes is None or quiz.duration_minutes <= 0:
        errors.append(_error("duration_minutes", "Duration must be greater than 0"))
    if quiz.max_attempts is None or quiz.max_attempts < 1:
        errors.append(_error("max_attempts", "Max attempts must be at least 1"))
    if quiz.deadline is None:
        errors.append(_error("deadline", "Deadline is required"))

    if not quiz.questions:
        errors.append(_error("questions", "A quiz needs at least one question"))

    for index, question in enumerate(quiz.questions):
        prefix = f"questions[{index}]"
        if not question.prompt or not question.prompt.strip():
            errors.append(_error(f"{prefix}.prompt", "Question text is required"))

        if question.type == QuestionType.MULTIPLE_CHOICE:
            if len(question.options) < 2:
                errors.append(
                    _error(f"{prefix}.options", "Multiple-choice questions need at least 2 options")
                )
            elif len(question.options) > len(OPTION_LETTERS):
                errors.append(
                    _error(f"{prefix}.options", f"At most {len(OPTION_LETTERS)} options are supported")
                )
            if any(not o or not o.strip() for o in question.options):
                errors.append(_error(f"{prefix}.options", "Options must not be empty"))
            if question.correct_answer not in question.allowed_answers():
                errors.append(
                    _error(
                        f"{prefix}.correct_answer",
                        "Correct answer must be the letter of one of the options",
                    )
                )
        elif question.type == QuestionType.TRUE_FALSE:
            if question.correct_answer not in TRUE_FALSE_ANSWERS:
                errors.append(
                    _error(f"{prefix}.correct_answer", "Correct answer must be 'true' or 'false'")
                )
        else:
            errors.append(_error(f"{prefix}.type", f"Unknown question type: {question.type}"))

    if errors:
        logger.warning(f"Quiz definition rejected with {len(errors)} error(s)")
        raise ValidationError("Invalid quiz definition", errors)


def validate_answers(quiz: Quiz, answers: Mapping[str, str]) -> None:
    """Reject answer keys that address no question and values outside a question's domain."""
    errors: List[Dict[str, str]] = []
    for key, value in answers.items():
        match = _ANSWER_KEY.match(key)
        if not match or int(match.group(1)) >= len(quiz.questions):
            errors.append(_error(f"answers.{key}", "Unknown question"))
            continue
        question = quiz.questions[int(match.group(1))]
        if value not in question.allowed_answers():
            errors.append(
                _error(
                    f"answers.{key}",
                    f"Answer must be one of: {', '.join(question.allowed_answers())}",
                )
            )
    if errors:
        raise ValidationError("Invalid answers", errors)
