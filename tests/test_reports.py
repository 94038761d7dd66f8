import pytest

from campus_events.models import Feedback
from helpers import NOW, in_days


@pytest.fixture
def activity(college, other_college, make_event, make_student, register, attend, db):
    """Two events at Northfield, one at Southgate, with mixed attendance and feedback"""
    workshop = make_event(college, title="Rust Workshop")
    talk = make_event(college, title="Security Talk", date=in_days(-1))
    fest = make_event(other_college, title="Spring Fest", date=in_days(-2))

    ada = make_student(college, "ada@northfield.edu", name="Ada")
    bob = make_student(college, "bob@northfield.edu", name="Bob")
    zoe = make_student(other_college, "zoe@southgate.edu", name="Zoe")

    for student_id in (ada, bob):
        attend(register(student_id, workshop))
    attend(register(ada, talk))
    attend(register(zoe, fest))

    feedback_on = register(bob, talk)
    attend(feedback_on, checked_in_at=in_days(-1))
    db.add(Feedback(registration_id=feedback_on, rating=3, submitted_at=NOW))
    db.commit()
    return {"workshop": workshop, "talk": talk, "fest": fest}


def test_reports_require_admin(client, student_headers):
    assert client.get("/api/reports/overall-stats", headers=student_headers).status_code == 403


def test_overall_stats(client, admin_headers, activity, college):
    body = client.get("/api/reports/overall-stats", headers=admin_headers).json()
    assert body == {
        "totalStudents": 3,
        "totalEvents": 3,
        "totalRegistrations": 5,
        "totalAttendance": 5,
        "totalFeedbacks": 1,
        "overallAttendanceRate": 100,
    }

    scoped = client.get("/api/reports/overall-stats", params={"collegeId": college}, headers=admin_headers).json()
    assert scoped["totalStudents"] == 2
    assert scoped["totalEvents"] == 2
    assert scoped["totalRegistrations"] == 4


def test_event_popularity(client, admin_headers, activity, college):
    rows = client.get("/api/reports/event-popularity", params={"collegeId": college}, headers=admin_headers).json()
    # equal counts keep date order
    assert [(r["title"], r["totalRegistrations"]) for r in rows] == [("Security Talk", 2), ("Rust Workshop", 2)]
    talk = next(r for r in rows if r["title"] == "Security Talk")
    assert talk["averageRating"] == 3.0
    assert talk["college"] == "Northfield University"


def test_top_active_students(client, admin_headers, activity):
    rows = client.get("/api/reports/top-active-students", params={"limit": 2}, headers=admin_headers).json()
    assert [(r["name"], r["totalAttendance"]) for r in rows] == [("Ada", 2), ("Bob", 2)]
    assert sorted(e["eventTitle"] for e in rows[0]["eventsAttended"]) == ["Rust Workshop", "Security Talk"]


def test_attendance_percentage_for_one_event(client, admin_headers, activity):
    rows = client.get(
        "/api/reports/attendance-percentage", params={"eventId": activity["fest"]}, headers=admin_headers
    ).json()
    assert rows == [{
        "eventId": activity["fest"],
        "eventTitle": "Spring Fest",
        "eventDate": in_days(-2).isoformat(),
        "totalRegistrations": 1,
        "totalAttendance": 1,
        "attendancePercentage": 100,
    }]


def test_average_feedback(client, admin_headers, activity):
    rows = client.get(
        "/api/reports/average-feedback", params={"eventId": activity["talk"]}, headers=admin_headers
    ).json()
    assert rows[0]["totalFeedbacks"] == 1
    assert rows[0]["averageRating"] == 3.0
    assert rows[0]["ratingDistribution"]["3"] == 1


def test_student_participation(client, admin_headers, activity, other_college):
    rows = client.get(
        "/api/reports/student-participation", params={"collegeId": other_college}, headers=admin_headers
    ).json()
    assert [(r["name"], r["attendanceRate"]) for r in rows] == [("Zoe", 100)]
