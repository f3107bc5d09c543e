from typing import Mapping, Sequence

from .entities import Question, question_key


def score(questions: Sequence[Question], answers: Mapping[str, str]) -> int:
    """
    Count the questions whose submitted answer equals the correct answer.

    Answers are keyed by question position ("q0", "q1", ...) and compared
    with exact string equality. Missing answers are simply wrong.
    """
    correct = 0
    for index, question in enumerate(questions):
        submitted = answers.get(question_key(index))
        if submitted is not None and submitted == question.correct_answer:
            correct += 1
    return correct


def percentage(correct: int, total_questions: int) -> float:
    # total_questions is the attempt's snapshot, not the live quiz length
    if total_questions <= 0:
        return 0.0
    return round(min(correct / total_questions * 100, 100.0), 2)
