from campus_events.app.dependencies import STUDENT
from campus_events.models import Attendance, Feedback
from helpers import in_days, reason_of


def test_mark_attendance_on_event_day(client, admin_headers, college, student, make_event, register):
    registration_id = register(student, make_event(college))
    response = client.post("/api/attendance", json={"registrationId": registration_id}, headers=admin_headers)
    assert response.status_code == 201
    body = response.json()
    assert body["message"] == "Attendance marked successfully"
    assert body["attendance"]["registrationId"] == registration_id


def test_attendance_marked_once(client, admin_headers, college, student, make_event, register, db):
    registration_id = register(student, make_event(college))
    client.post("/api/attendance", json={"registrationId": registration_id}, headers=admin_headers)
    response = client.post("/api/attendance", json={"registrationId": registration_id}, headers=admin_headers)

    assert response.status_code == 400
    assert reason_of(response) == "AlreadyMarked"
    assert db.query(Attendance).count() == 1


def test_attendance_only_on_event_day(client, admin_headers, college, student, make_event, register):
    registration_id = register(student, make_event(college, date=in_days(1)))
    response = client.post("/api/attendance", json={"registrationId": registration_id}, headers=admin_headers)
    assert response.status_code == 400
    assert reason_of(response) == "NotEventDay"


def test_unknown_registration(client, admin_headers):
    response = client.post("/api/attendance", json={"registrationId": "missing"}, headers=admin_headers)
    assert response.status_code == 404
    assert reason_of(response) == "RegistrationNotFound"


def test_student_self_check_in(client, college, student, student_headers, make_event, register):
    event_id = make_event(college)
    register(student, event_id)
    response = client.post(f"/api/students/events/{event_id}/attendance", headers=student_headers)
    assert response.status_code == 201

    again = client.post(f"/api/students/events/{event_id}/attendance", headers=student_headers)
    assert reason_of(again) == "AlreadyMarked"


def test_bulk_attendance_reports_each_item(
    client, admin_headers, college, make_event, make_student, register, attend
):
    event_id = make_event(college)
    fresh = register(make_student(college, "fresh@northfield.edu"), event_id)
    marked = register(make_student(college, "marked@northfield.edu"), event_id)
    attend(marked)

    response = client.post(
        "/api/attendance/bulk",
        json={"registrationIds": [fresh, "missing", marked]},
        headers=admin_headers,
    )
    assert response.status_code == 200
    body = response.json()
    assert body["successful"] == 1
    assert body["failed"] == 2
    assert [a["registrationId"] for a in body["attendances"]] == [fresh]
    assert [(e["registrationId"], e["reason"]) for e in body["errors"]] == [
        ("missing", "RegistrationNotFound"),
        (marked, "AlreadyMarked"),
    ]


def test_remove_attendance(client, admin_headers, college, student, make_event, register, attend, db):
    registration_id = register(student, make_event(college))
    attend(registration_id)
    attendance_id = db.query(Attendance).one().id

    assert client.delete(f"/api/attendance/{attendance_id}", headers=admin_headers).status_code == 200
    missing = client.delete(f"/api/attendance/{attendance_id}", headers=admin_headers)
    assert missing.status_code == 404
    assert missing.json()["error"] == "Attendance record not found"


def test_feedback_requires_attendance(client, college, student, student_headers, make_event, register, db):
    registration_id = register(student, make_event(college))
    response = client.post(
        "/api/feedback",
        json={"registrationId": registration_id, "rating": 4},
        headers=student_headers,
    )
    assert response.status_code == 400
    assert reason_of(response) == "NoAttendance"
    assert db.query(Feedback).count() == 0


def test_out_of_range_rating_never_persisted(client, college, student, student_headers, make_event, register, attend, db):
    registration_id = register(student, make_event(college))
    attend(registration_id)
    for rating in (0, 6, 4.5, "5"):
        response = client.post(
            "/api/feedback",
            json={"registrationId": registration_id, "rating": rating},
            headers=student_headers,
        )
        assert response.status_code == 400
        assert reason_of(response) == "InvalidRating"
    assert db.query(Feedback).count() == 0


def test_feedback_for_future_event(client, college, student, student_headers, make_event, register, attend):
    registration_id = register(student, make_event(college, date=in_days(1)))
    attend(registration_id)
    response = client.post(
        "/api/feedback",
        json={"registrationId": registration_id, "rating": 4},
        headers=student_headers,
    )
    assert reason_of(response) == "EventInFuture"


def test_feedback_once_per_registration(client, college, student, student_headers, make_event, register, attend):
    registration_id = register(student, make_event(college))
    attend(registration_id)
    body = {"registrationId": registration_id, "rating": 5, "comments": "Great session"}

    first = client.post("/api/feedback", json=body, headers=student_headers)
    assert first.status_code == 201
    assert first.json()["feedback"]["rating"] == 5

    second = client.post("/api/feedback", json=body, headers=student_headers)
    assert second.status_code == 400
    assert reason_of(second) == "AlreadySubmitted"


def test_student_feedback_route_and_stats(
    client, college, make_event, make_student, headers_for, register, attend
):
    event_id = make_event(college)
    for n, rating in enumerate([3, 4, 4]):
        email = f"s{n}@northfield.edu"
        student_id = make_student(college, email)
        attend(register(student_id, event_id))
        headers = headers_for(student_id, email, STUDENT, college)
        response = client.post(
            f"/api/students/events/{event_id}/feedback", json={"rating": rating}, headers=headers
        )
        assert response.status_code == 201

    stats = client.get(f"/api/feedback/{event_id}/stats", headers=headers).json()
    assert stats["totalFeedbacks"] == 3
    assert stats["averageRating"] == 3.67
    assert stats["ratingDistribution"] == {"1": 0, "2": 0, "3": 1, "4": 2, "5": 0}


def test_update_feedback_revalidates_rating(
    client, college, student, student_headers, make_event, register, attend
):
    registration_id = register(student, make_event(college))
    attend(registration_id)
    created = client.post(
        "/api/feedback", json={"registrationId": registration_id, "rating": 3}, headers=student_headers
    ).json()
    feedback_id = created["feedback"]["id"]

    bad = client.put(f"/api/feedback/{feedback_id}", json={"rating": 9}, headers=student_headers)
    assert bad.status_code == 400
    assert reason_of(bad) == "InvalidRating"

    good = client.put(f"/api/feedback/{feedback_id}", json={"rating": 4, "comments": "Better on reflection"}, headers=student_headers)
    assert good.status_code == 200
    assert good.json()["feedback"]["rating"] == 4
    assert good.json()["feedback"]["comments"] == "Better on reflection"


def test_students_cannot_touch_others_feedback(
    client, college, student, make_student, headers_for, make_event, register, attend, db
):
    registration_id = register(student, make_event(college))
    attend(registration_id)
    db.add(Feedback(registration_id=registration_id, rating=2))
    db.commit()
    feedback_id = db.query(Feedback).one().id

    intruder = make_student(college, "mallory@northfield.edu")
    headers = headers_for(intruder, "mallory@northfield.edu", STUDENT, college)
    assert client.delete(f"/api/feedback/{feedback_id}", headers=headers).status_code == 403
    assert db.query(Feedback).count() == 1
