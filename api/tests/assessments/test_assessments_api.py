"""HTTP tests for assessment endpoints."""

from decimal import Decimal
from uuid import uuid4

import pytest
from fastapi.testclient import TestClient

from learnflow.assessments.models import Assessment, Question, QuestionType


@pytest.fixture
def assessment(store, course) -> Assessment:
    return store.add_assessment(
        Assessment(
            id=uuid4(),
            course_id=course.id,
            title="Safety check",
            questions=[
                Question(
                    id="q1",
                    type=QuestionType.TRUE_FALSE.value,
                    text="Gloves are required",
                    options=["true", "false"],
                    correct_answers=[0],
                    explanation="Always",
                ),
                Question(
                    id="q2",
                    type=QuestionType.MULTIPLE_CHOICE.value,
                    text="Pick c",
                    options=["a", "b", "c"],
                    correct_answers=2,
                    points=30,
                ),
            ],
        )
    )


def test_trainee_view_hides_answers(
    client: TestClient, auth_headers, trainee, enrollment, assessment
) -> None:
    response = client.get(
        f"/v1/assessments/{assessment.id}", headers=auth_headers(trainee)
    )

    assert response.status_code == 200
    questions = response.json()["data"]["questions"]
    assert [q["points"] for q in questions] == [10, 30]
    assert all(q["correct_answers"] is None for q in questions)
    assert all(q["explanation"] is None for q in questions)


def test_instructor_view_shows_answers(
    client: TestClient, auth_headers, instructor, assessment
) -> None:
    response = client.get(
        f"/v1/assessments/{assessment.id}", headers=auth_headers(instructor)
    )

    assert response.status_code == 200
    questions = response.json()["data"]["questions"]
    assert questions[0]["correct_answers"] == [0]
    assert questions[1]["correct_answers"] == 2


def test_submit_attempt(
    client: TestClient, auth_headers, trainee, enrollment, assessment
) -> None:
    response = client.post(
        f"/v1/assessments/{assessment.id}/attempts",
        json={"enrollment_id": str(enrollment.id), "answers": {"q1": 0, "q2": 2}},
        headers=auth_headers(trainee),
    )

    assert response.status_code == 201
    body = response.json()
    assert body["message"] == "Assessment passed"
    assert Decimal(body["data"]["score"]) == 100
    assert body["data"]["attempt_number"] == 1


def test_submit_attempt_staff_forbidden(
    client: TestClient, auth_headers, admin, enrollment, assessment
) -> None:
    response = client.post(
        f"/v1/assessments/{assessment.id}/attempts",
        json={"enrollment_id": str(enrollment.id), "answers": {}},
        headers=auth_headers(admin),
    )
    assert response.status_code == 403


def test_list_and_get_attempts(
    client: TestClient, auth_headers, trainee, enrollment, assessment
) -> None:
    created = client.post(
        f"/v1/assessments/{assessment.id}/attempts",
        json={"enrollment_id": str(enrollment.id), "answers": {"q1": 1}},
        headers=auth_headers(trainee),
    ).json()["data"]

    listed = client.get(
        "/v1/assessments/attempts",
        params={"enrollment_id": str(enrollment.id)},
        headers=auth_headers(trainee),
    )
    fetched = client.get(
        f"/v1/assessments/attempts/{created['id']}", headers=auth_headers(trainee)
    )

    assert listed.status_code == 200
    assert listed.json()["pagination"]["total"] == 1
    assert fetched.status_code == 200
    assert fetched.json()["data"]["answers"] == {"q1": 1}
