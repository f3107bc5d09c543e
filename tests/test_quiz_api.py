from datetime import timedelta

from app.application.quizzes.entities import Role
from conftest import NOW


def _quiz_payload(**overrides):
    payload = {
        "title": "Fractions",
        "description": "Halves and quarters",
        "grade": "grade-1",
        "group": "group-a",
        "subject": "math",
        "duration_minutes": 20,
        "max_attempts": 2,
        "deadline": (NOW + timedelta(days=3)).isoformat() + "Z",
        "questions": [
            {"prompt": "1/2 + 1/4 = ?", "type": "multiple-choice", "options": ["3/4", "2/6"], "correct_answer": "a"},
            {"prompt": "1/2 equals 2/4", "type": "true-false", "correct_answer": "true"},
        ],
    }
    payload.update(overrides)
    return payload


def test_admin_creates_quiz(client, make_user, headers_for):
    admin = make_user("Head", role=Role.ADMIN)

    response = client.post("/quizzes", json=_quiz_payload(), headers=headers_for(admin))

    assert response.status_code == 201
    body = response.json()
    assert body["total_questions"] == 2
    assert body["is_available"] is True
    assert body["deadline"] == (NOW + timedelta(days=3)).isoformat()
    assert [q["key"] for q in body["questions"]] == ["q0", "q1"]
    assert [q["correct_answer"] for q in body["questions"]] == ["a", "true"]


def test_create_reports_field_errors(client, make_user, headers_for):
    admin = make_user("Head", role=Role.ADMIN)
    payload = _quiz_payload(
        duration_minutes=0,
        questions=[{"prompt": "Sun is a star", "type": "true-false", "correct_answer": "yes"}],
    )

    response = client.post("/quizzes", json=payload, headers=headers_for(admin))

    assert response.status_code == 400
    fields = {e["field"] for e in response.json()["detail"]["errors"]}
    assert fields == {"duration_minutes", "questions[0].correct_answer"}


def test_students_cannot_author(client, make_user, make_quiz, headers_for):
    headers = headers_for(make_user("Amira"))
    quiz = make_quiz()

    assert client.post("/quizzes", json=_quiz_payload(), headers=headers).status_code == 403
    assert client.put(f"/quizzes/{quiz.id}", json={"title": "x"}, headers=headers).status_code == 403
    assert client.delete(f"/quizzes/{quiz.id}", headers=headers).status_code == 403
    assert client.get(f"/quizzes/{quiz.id}/stats", headers=headers).status_code == 403


def test_student_listing_is_scoped(client, make_user, make_quiz, headers_for):
    make_quiz(title="mine")
    make_quiz(title="other grade", grade="grade-2")
    make_quiz(title="expired", deadline=NOW - timedelta(days=1))
    student = make_user("Amira")

    listed = client.get("/quizzes", headers=headers_for(student)).json()
    assert sorted(q["title"] for q in listed) == ["expired", "mine"]
    assert {q["title"]: q["is_available"] for q in listed} == {"expired": False, "mine": True}

    available = client.get("/quizzes", params={"available_only": True}, headers=headers_for(student)).json()
    assert [q["title"] for q in available] == ["mine"]

    admin = make_user("Head", role=Role.ADMIN)
    assert len(client.get("/quizzes", headers=headers_for(admin)).json()) == 3


def test_students_never_see_answer_keys(client, make_user, make_quiz, headers_for):
    quiz = make_quiz()

    student_view = client.get(f"/quizzes/{quiz.id}", headers=headers_for(make_user("Amira"))).json()
    admin_view = client.get(f"/quizzes/{quiz.id}", headers=headers_for(make_user("Head", role=Role.ADMIN))).json()

    assert all(q["correct_answer"] is None for q in student_view["questions"])
    assert [q["correct_answer"] for q in admin_view["questions"]] == ["b", "true"]
    assert student_view["questions"][0]["options"] == ["Venus", "Mars", "Jupiter", "Saturn"]


def test_get_quiz_errors(client, make_user, make_quiz, headers_for):
    headers = headers_for(make_user("Amira"))
    assert client.get("/quizzes/404", headers=headers).status_code == 404
    other = make_quiz(group="group-b")
    assert client.get(f"/quizzes/{other.id}", headers=headers).status_code == 403


def test_partial_update_and_delete(client, make_user, make_quiz, headers_for):
    headers = headers_for(make_user("Head", role=Role.ADMIN))
    quiz = make_quiz()

    response = client.put(f"/quizzes/{quiz.id}", json={"is_active": False, "title": "Renamed"}, headers=headers)
    assert response.status_code == 200
    body = response.json()
    assert (body["title"], body["is_active"], body["is_available"]) == ("Renamed", False, False)
    assert body["total_questions"] == 2

    bad = client.put(f"/quizzes/{quiz.id}", json={"max_attempts": 0}, headers=headers)
    assert bad.status_code == 400

    assert client.delete(f"/quizzes/{quiz.id}", headers=headers).status_code == 204
    assert client.delete(f"/quizzes/{quiz.id}", headers=headers).status_code == 404
    assert client.get(f"/quizzes/{quiz.id}", headers=headers).status_code == 404


def test_quiz_stats_endpoint(client, make_user, make_quiz, headers_for):
    quiz = make_quiz(max_attempts=1)
    admin = make_user("Head", role=Role.ADMIN)
    for name, answers in (("Amal", {"q0": "b"}), ("Badr", {"q0": "b", "q1": "true"})):
        headers = headers_for(make_user(name))
        attempt = client.post("/quiz-attempts", json={"quiz_id": quiz.id}, headers=headers).json()
        client.put(f"/quiz-attempts/{attempt['id']}", json={"answers": answers}, headers=headers)
    client.post("/quiz-attempts", json={"quiz_id": quiz.id}, headers=headers_for(make_user("Carim")))

    stats = client.get(f"/quizzes/{quiz.id}/stats", headers=headers_for(admin)).json()

    assert stats["total_attempts"] == 3
    assert stats["completed_attempts"] == 2
    assert stats["average_score"] == 1.5
    assert stats["completion_rate"] == 66.67
    assert [(t["user_name"], t["score"]) for t in stats["top_scores"]] == [("Badr", 2), ("Amal", 1)]

    assert client.get("/quizzes/999/stats", headers=headers_for(admin)).status_code == 404


def test_update_with_null_required_field_is_a_validation_error(client, make_user, make_quiz, headers_for):
    headers = headers_for(make_user("Head", role=Role.ADMIN))
    quiz = make_quiz()

    response = client.put(f"/quizzes/{quiz.id}", json={"is_active": None}, headers=headers)

    assert response.status_code == 400
    assert response.json()["detail"]["errors"] == [{"field": "is_active", "message": "Field cannot be null"}]
    assert client.get(f"/quizzes/{quiz.id}", headers=headers).json()["is_active"] is True
