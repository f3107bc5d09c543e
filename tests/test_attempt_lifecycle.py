import threading
from datetime import timedelta

import pytest

from app.application.errors import (
    AlreadyCompleted,
    AttemptLimitExceeded,
    AttemptNotFound,
    Forbidden,
    QuizNotFound,
    QuizUnavailable,
    ScopeMismatch,
    ValidationError,
)
from app.application.quizzes.entities import AttemptStatus, Completed
from conftest import NOW, build_quiz


def test_start_creates_in_progress_attempt(attempt_service, quizzes, student):
    quiz = quizzes.create(build_quiz(duration_minutes=20))

    view = attempt_service.start_attempt(student, quiz.id)

    attempt = view.attempt
    assert attempt.status == AttemptStatus.IN_PROGRESS
    assert attempt.attempt_number == 1
    assert attempt.total_questions == 2
    assert attempt.answers == {}
    assert attempt.started_at == NOW
    assert attempt.score is None and attempt.completed_at is None
    assert view.expires_at == NOW + timedelta(minutes=20)


def test_attempt_limit(attempt_service, quizzes, student):
    quiz = quizzes.create(build_quiz(max_attempts=2))

    first = attempt_service.start_attempt(student, quiz.id).attempt
    second = attempt_service.start_attempt(student, quiz.id).attempt
    assert (first.attempt_number, second.attempt_number) == (1, 2)

    with pytest.raises(AttemptLimitExceeded):
        attempt_service.start_attempt(student, quiz.id)


def test_limit_is_per_user(attempt_service, quizzes, users, student):
    quiz = quizzes.create(build_quiz(max_attempts=1))
    classmate = users.add("Laila")

    attempt_service.start_attempt(student, quiz.id)
    assert attempt_service.start_attempt(classmate, quiz.id).attempt.attempt_number == 1


def test_missing_quiz(attempt_service, student):
    with pytest.raises(QuizNotFound):
        attempt_service.start_attempt(student, 404)


@pytest.mark.parametrize("is_active", [True, False])
def test_past_deadline_is_unavailable(attempt_service, quizzes, student, is_active):
    quiz = quizzes.create(build_quiz(deadline=NOW - timedelta(seconds=1), is_active=is_active))
    with pytest.raises(QuizUnavailable):
        attempt_service.start_attempt(student, quiz.id)


def test_deadline_is_exclusive(attempt_service, quizzes, student):
    quiz = quizzes.create(build_quiz(deadline=NOW))
    with pytest.raises(QuizUnavailable):
        attempt_service.start_attempt(student, quiz.id)


def test_inactive_quiz_is_unavailable(attempt_service, quizzes, student):
    quiz = quizzes.create(build_quiz(is_active=False))
    with pytest.raises(QuizUnavailable):
        attempt_service.start_attempt(student, quiz.id)


def test_unavailable_is_checked_before_scope(attempt_service, quizzes, student):
    quiz = quizzes.create(build_quiz(grade="grade-2", is_active=False))
    with pytest.raises(QuizUnavailable):
        attempt_service.start_attempt(student, quiz.id)


def test_scope_mismatch(attempt_service, quizzes, student, admin):
    quiz = quizzes.create(build_quiz(grade="grade-2", group="group-b"))
    with pytest.raises(ScopeMismatch):
        attempt_service.start_attempt(student, quiz.id)
    # admins may take any quiz
    assert attempt_service.start_attempt(admin, quiz.id).attempt.attempt_number == 1


def test_submit_scores_and_completes(attempt_service, quizzes, student, clock):
    quiz = quizzes.create(build_quiz())
    attempt = attempt_service.start_attempt(student, quiz.id).attempt
    clock.advance(minutes=5)

    view = attempt_service.submit_attempt(attempt.id, {"q0": "b", "q1": "false"}, student)

    assert view.attempt.status == AttemptStatus.COMPLETED
    assert view.attempt.score == 1
    assert view.attempt.completed_at == NOW + timedelta(minutes=5)
    assert view.attempt.answers == {"q0": "b", "q1": "false"}
    assert view.percentage == 50.0


def test_partial_answers_from_timer_expiry(attempt_service, quizzes, student, clock):
    quiz = quizzes.create(build_quiz(duration_minutes=10))
    attempt = attempt_service.start_attempt(student, quiz.id).attempt
    clock.advance(minutes=10)

    view = attempt_service.submit_attempt(attempt.id, {"q0": "b"}, student)

    assert view.attempt.score == 1
    assert view.attempt.total_questions == 2


def test_second_submit_fails_and_keeps_first_result(attempt_service, attempts, quizzes, student, clock):
    quiz = quizzes.create(build_quiz())
    attempt = attempt_service.start_attempt(student, quiz.id).attempt
    first = attempt_service.submit_attempt(attempt.id, {"q0": "a"}, student).attempt

    clock.advance(minutes=1)
    with pytest.raises(AlreadyCompleted):
        attempt_service.submit_attempt(attempt.id, {"q0": "b", "q1": "true"}, student)

    stored = attempts.get(attempt.id)
    assert stored.score == first.score == 0
    assert stored.completed_at == first.completed_at
    assert stored.answers == {"q0": "a"}


def test_only_owner_can_submit(attempt_service, quizzes, users, student, admin):
    quiz = quizzes.create(build_quiz())
    attempt = attempt_service.start_attempt(student, quiz.id).attempt

    with pytest.raises(Forbidden):
        attempt_service.submit_attempt(attempt.id, {}, users.add("Sami"))
    with pytest.raises(Forbidden):
        attempt_service.submit_attempt(attempt.id, {}, admin)


def test_submit_unknown_attempt(attempt_service, student):
    with pytest.raises(AttemptNotFound):
        attempt_service.submit_attempt(77, {}, student)


def test_submit_rejects_answers_outside_the_domain(attempt_service, attempts, quizzes, student):
    quiz = quizzes.create(build_quiz())
    attempt = attempt_service.start_attempt(student, quiz.id).attempt

    with pytest.raises(ValidationError):
        attempt_service.submit_attempt(attempt.id, {"q1": "صح"}, student)
    assert not attempts.get(attempt.id).is_completed


def test_submit_after_quiz_deleted(attempt_service, quizzes, student):
    quiz = quizzes.create(build_quiz())
    attempt = attempt_service.start_attempt(student, quiz.id).attempt
    quizzes.delete(quiz.id)

    with pytest.raises(QuizNotFound):
        attempt_service.submit_attempt(attempt.id, {"q0": "b"}, student)


def test_percentage_uses_snapshot_after_quiz_edit(attempt_service, quizzes, student):
    quiz = quizzes.create(build_quiz())
    attempt = attempt_service.start_attempt(student, quiz.id).attempt
    attempt_service.submit_attempt(attempt.id, {"q0": "b", "q1": "true"}, student)

    quiz.questions = quiz.questions + quiz.questions
    quizzes.update(quiz)

    view = attempt_service.list_attempts(student, quiz.id)[0]
    assert view.attempt.total_questions == 2
    assert view.percentage == 100.0


def test_listing_survives_deleted_quiz(attempt_service, quizzes, student):
    kept = quizzes.create(build_quiz(title="kept"))
    dropped = quizzes.create(build_quiz(title="dropped"))
    attempt_service.start_attempt(student, kept.id)
    attempt_service.start_attempt(student, dropped.id)
    quizzes.delete(dropped.id)

    views = attempt_service.list_attempts(student)
    assert [v.quiz_available for v in views] == [True, False]
    assert views[1].expires_at is None
    assert [v.attempt.quiz_id for v in attempt_service.list_attempts(student, kept.id)] == [kept.id]


def test_delete_is_owner_or_admin(attempt_service, quizzes, users, student, admin):
    quiz = quizzes.create(build_quiz(max_attempts=3))
    first = attempt_service.start_attempt(student, quiz.id).attempt
    second = attempt_service.start_attempt(student, quiz.id).attempt

    with pytest.raises(Forbidden):
        attempt_service.delete_attempt(users.add("Other"), first.id)

    attempt_service.delete_attempt(student, first.id)
    attempt_service.delete_attempt(admin, second.id)
    assert attempt_service.list_attempts(student) == []
    with pytest.raises(AttemptNotFound):
        attempt_service.delete_attempt(admin, first.id)


def test_owner_delete_does_not_allow_a_retake(attempt_service, quizzes, student):
    quiz = quizzes.create(build_quiz(max_attempts=1))
    attempt = attempt_service.start_attempt(student, quiz.id).attempt
    attempt_service.submit_attempt(attempt.id, {"q0": "a"}, student)
    attempt_service.delete_attempt(student, attempt.id)

    with pytest.raises(AttemptLimitExceeded):
        attempt_service.start_attempt(student, quiz.id)


def test_attempt_numbers_are_never_reissued(attempt_service, quizzes, admin, student):
    quiz = quizzes.create(build_quiz(max_attempts=3))
    attempt_service.start_attempt(student, quiz.id)
    second = attempt_service.start_attempt(student, quiz.id).attempt
    attempt_service.delete_attempt(admin, second.id)

    third = attempt_service.start_attempt(student, quiz.id).attempt
    assert third.attempt_number == 3
    with pytest.raises(AttemptLimitExceeded):
        attempt_service.start_attempt(student, quiz.id)


# ---------------------------
# Races
# ---------------------------

def _run_concurrently(count, target):
    barrier = threading.Barrier(count)
    results, errors = [], []

    def worker():
        barrier.wait()
        try:
            results.append(target())
        except Exception as e:  # collected for assertions
            errors.append(e)

    threads = [threading.Thread(target=worker) for _ in range(count)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    return results, errors


def test_concurrent_starts_respect_the_limit(attempt_service, quizzes, student):
    quiz = quizzes.create(build_quiz(max_attempts=3))

    results, errors = _run_concurrently(10, lambda: attempt_service.start_attempt(student, quiz.id))

    assert sorted(v.attempt.attempt_number for v in results) == [1, 2, 3]
    assert len(errors) == 7
    assert all(isinstance(e, AttemptLimitExceeded) for e in errors)


def test_concurrent_submits_complete_once(attempt_service, attempts, quizzes, student):
    quiz = quizzes.create(build_quiz())
    attempt = attempt_service.start_attempt(student, quiz.id).attempt

    results, errors = _run_concurrently(
        2, lambda: attempt_service.submit_attempt(attempt.id, {"q0": "b", "q1": "true"}, student)
    )

    assert len(results) == 1
    assert len(errors) == 1 and isinstance(errors[0], AlreadyCompleted)
    assert isinstance(attempts.get(attempt.id).state, Completed)
