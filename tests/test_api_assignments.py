"""
API tests for assignments, uploads and late penalties.
"""

from datetime import datetime, timedelta

import pytest

from app.services import assignment_service
from app.services.assignment_service import apply_late_penalty

FUTURE = "2099-01-01T00:00:00Z"
PAST = "2000-01-01T00:00:00Z"
FILE_URL = "https://files.example/s1/essay.docx"


@pytest.fixture
def class_id(client):
    response = client.post("/api/classes", json={"name": "History", "instructorId": "inst-1"})
    return response.get_json()["data"]["id"]


def _create_assignment(client, class_id, **overrides):
    payload = {
        "title": "Essay on the Renaissance",
        "description": "Two pages.",
        "classId": class_id,
        "dueDate": FUTURE,
        "points": 50,
        "latePenaltyAmount": 15,
        "createdBy": "inst-1",
    }
    payload.update(overrides)
    return client.post("/api/assignments", json=payload)


def _submit(client, assignment_id, **overrides):
    payload = {"studentId": "s1", "fileUrl": FILE_URL, "agreementConfirmed": True}
    payload.update(overrides)
    return client.post(f"/api/assignments/{assignment_id}/submissions", json=payload)


class TestAssignments:

    def test_create_and_get_assignment(self, client, class_id):
        created = _create_assignment(client, class_id)

        assert created.status_code == 201
        data = created.get_json()["data"]
        assert data["points"] == 50
        assert data["latePenaltyAmount"] == 15

        fetched = client.get(f"/api/assignments/{data['id']}").get_json()["data"]
        assert fetched["title"] == "Essay on the Renaissance"

    def test_defaults_to_100_points_without_penalty(self, client, class_id):
        response = _create_assignment(client, class_id, points=None, latePenaltyAmount=None)

        data = response.get_json()["data"]
        assert data["points"] == 100
        assert data["latePenaltyAmount"] == 0

    @pytest.mark.parametrize("overrides", [
        {"title": " "},
        {"points": 0},
        {"points": "50"},
        {"latePenaltyAmount": -5},
        {"latePenaltyAmount": 60},
        {"dueDate": None},
    ])
    def test_create_rejects_invalid_payload(self, client, class_id, overrides):
        response = _create_assignment(client, class_id, **overrides)

        assert response.status_code == 400
        assert response.get_json()["code"] == "INVALID_PAYLOAD"

    def test_list_and_delete(self, client, class_id):
        assignment = _create_assignment(client, class_id).get_json()["data"]

        items = client.get(f"/api/assignments?classId={class_id}").get_json()["data"]["items"]
        assert [a["id"] for a in items] == [assignment["id"]]

        assert client.delete(f"/api/assignments/{assignment['id']}").status_code == 200
        assert client.get(f"/api/assignments/{assignment['id']}").status_code == 404


class TestAssignmentSubmissions:

    def test_on_time_submission(self, client, class_id):
        assignment = _create_assignment(client, class_id).get_json()["data"]

        response = _submit(client, assignment["id"])

        assert response.status_code == 201
        data = response.get_json()["data"]
        assert data["isLate"] is False
        assert data["status"] == "submitted"
        assert data["fileUrl"] == FILE_URL

    def test_late_submission_is_accepted_and_penalised(self, client, class_id):
        assignment = _create_assignment(client, class_id, dueDate=PAST).get_json()["data"]
        submission = _submit(client, assignment["id"]).get_json()["data"]
        assert submission["isLate"] is True

        response = client.patch(f"/api/assignment-submissions/{submission['id']}/grade",
                                json={"grade": 45, "feedback": "Strong argument"})

        data = response.get_json()["data"]
        assert data["rawGrade"] == 45
        assert data["grade"] == 30
        assert data["status"] == "graded"

    def test_resubmission_replaces_file_and_clears_grade(self, client, class_id):
        assignment = _create_assignment(client, class_id).get_json()["data"]
        first = _submit(client, assignment["id"]).get_json()["data"]
        client.patch(f"/api/assignment-submissions/{first['id']}/grade", json={"grade": 40})

        second = _submit(client, assignment["id"], fileUrl="https://files.example/v2.docx")

        data = second.get_json()["data"]
        assert data["id"] == first["id"]
        assert data["fileUrl"] == "https://files.example/v2.docx"
        assert data["grade"] is None
        assert data["status"] == "submitted"
        listed = client.get(f"/api/assignments/{assignment['id']}/submissions").get_json()["data"]
        assert len(listed["items"]) == 1

    @pytest.mark.parametrize("overrides, code", [
        ({"fileUrl": ""}, "MISSING_FILE"),
        ({"agreementConfirmed": False}, "AGREEMENT_REQUIRED"),
        ({"agreementConfirmed": "yes"}, "AGREEMENT_REQUIRED"),
    ])
    def test_submission_requirements(self, client, class_id, overrides, code):
        assignment = _create_assignment(client, class_id).get_json()["data"]

        response = _submit(client, assignment["id"], **overrides)

        assert response.status_code == 400
        assert response.get_json()["code"] == code

    def test_grade_must_fit_assignment_points(self, client, class_id):
        assignment = _create_assignment(client, class_id).get_json()["data"]
        submission = _submit(client, assignment["id"]).get_json()["data"]

        response = client.patch(f"/api/assignment-submissions/{submission['id']}/grade",
                                json={"grade": 51})

        assert response.status_code == 400
        assert response.get_json()["code"] == "INVALID_GRADE"

    def test_submit_to_unknown_assignment_returns_404(self, client):
        response = _submit(client, 999)

        assert response.status_code == 404
        assert response.get_json()["code"] == "ASSIGNMENT_NOT_FOUND"

    def test_lateness_uses_submission_time(self, app, client, class_id):
        assignment = _create_assignment(client, class_id).get_json()["data"]
        after_due = datetime(2099, 1, 1) + timedelta(minutes=1)

        submission = assignment_service.submit_assignment(
            assignment["id"], "s2", FILE_URL, agreement_confirmed=True, now=after_due
        )

        assert submission.is_late is True

    def test_writes_rejected_when_read_only(self, app, client, class_id):
        app.config["DB_READ_ONLY"] = True

        response = _create_assignment(client, class_id)

        assert response.status_code == 503
        assert response.get_json()["code"] == "DB_READ_ONLY"


class TestApplyLatePenalty:

    @pytest.mark.parametrize("raw, penalty, is_late, expected", [
        (45, 15, False, 45),
        (45, 15, True, 30),
        (10, 15, True, 0.0),
    ])
    def test_apply_late_penalty(self, raw, penalty, is_late, expected):
        assert apply_late_penalty(raw, penalty, is_late) == expected
