from campus_events.app.dependencies import ADMIN
from campus_events.models import Attendance, Event, EventCategory, Feedback, Registration
from helpers import NOW, in_days, reason_of

EVENT_BODY = {
    "title": "Intro to Rust",
    "description": "Ownership and borrowing from scratch",
    "date": "2025-03-20T10:00:00Z",
    "venue": "Hall A",
    "category": "WORKSHOP",
    "maxCapacity": 30,
}


def test_create_event_in_admin_college(client, admin_headers, college):
    response = client.post("/api/events", json=EVENT_BODY, headers=admin_headers)
    assert response.status_code == 201
    body = response.json()
    assert body["collegeId"] == college
    assert body["registrationCount"] == 0
    assert body["maxCapacity"] == 30
    assert body["status"] == "ACTIVE"
    assert body["allowOtherColleges"] is False
    assert body["date"].startswith("2025-03-20T10:00:00")


def test_admin_without_college_cannot_create(client, headers_for):
    headers = headers_for("admin", "admin@northfield.edu", ADMIN)
    response = client.post("/api/events", json=EVENT_BODY, headers=headers)
    assert response.status_code == 403
    assert response.json()["error"] == "College association required"


def test_invalid_category_rejected(client, admin_headers):
    response = client.post("/api/events", json={**EVENT_BODY, "category": "PARTY"}, headers=admin_headers)
    assert response.status_code == 400
    assert response.json()["error"] == "Validation failed"


def test_non_positive_capacity_rejected(client, admin_headers):
    response = client.post("/api/events", json={**EVENT_BODY, "maxCapacity": 0}, headers=admin_headers)
    assert response.status_code == 400


def test_list_limited_to_admin_college(client, admin_headers, college, other_college, make_event):
    make_event(college, title="Home Event")
    make_event(other_college, title="Away Event")
    response = client.get("/api/events", params={"collegeId": other_college}, headers=admin_headers)
    assert [e["title"] for e in response.json()] == ["Home Event"]


def test_list_upcoming_and_category_filters(client, admin_headers, college, make_event):
    make_event(college, title="Old Seminar", date=in_days(-3), category=EventCategory.SEMINAR)
    make_event(college, title="Next Seminar", date=in_days(3), category=EventCategory.SEMINAR)
    make_event(college, title="Next Fest", date=in_days(4), category=EventCategory.FEST)
    response = client.get("/api/events", params={"upcoming": True, "category": "SEMINAR"}, headers=admin_headers)
    assert [e["title"] for e in response.json()] == ["Next Seminar"]


def test_created_event_reads_back(client, admin_headers):
    created = client.post("/api/events", json={**EVENT_BODY, "maxCapacity": 50}, headers=admin_headers)
    assert created.status_code == 201

    body = client.get(f"/api/events/{created.json()['id']}").json()
    assert body["maxCapacity"] == 50
    assert body["registrationCount"] == 0
    assert body["title"] == "Intro to Rust"


def test_max_capacity_update_round_trip(client, admin_headers, college, make_event):
    event_id = make_event(college, max_capacity=10)
    response = client.put(f"/api/events/{event_id}", json={"maxCapacity": 50}, headers=admin_headers)
    assert response.status_code == 200
    assert response.json()["maxCapacity"] == 50
    assert response.json()["registrationCount"] == 0

    body = client.get(f"/api/events/{event_id}").json()
    assert body["maxCapacity"] == 50
    assert body["registrations"] == []


def test_capacity_cannot_drop_below_registrations(client, admin_headers, college, make_event, make_student, register):
    event_id = make_event(college, max_capacity=5, date=in_days(2))
    for n in range(3):
        register(make_student(college, f"s{n}@northfield.edu"), event_id)
    response = client.put(f"/api/events/{event_id}", json={"maxCapacity": 2}, headers=admin_headers)
    assert response.status_code == 400
    assert client.get(f"/api/events/{event_id}").json()["maxCapacity"] == 5


def test_other_college_admin_cannot_update(client, headers_for, college, other_college, make_event):
    event_id = make_event(college)
    headers = headers_for("admin", "admin@southgate.edu", ADMIN, other_college)
    response = client.put(f"/api/events/{event_id}", json={"title": "Taken over"}, headers=headers)
    assert response.status_code == 403
    assert response.json()["error"] == "You can only manage events from your own college"


def test_capacity_endpoint(client, college, make_event, make_student, register):
    event_id = make_event(college, max_capacity=2, date=in_days(1))
    register(make_student(college, "one@northfield.edu"), event_id)
    body = client.get(f"/api/events/{event_id}/capacity").json()
    assert body == {
        "eventId": event_id,
        "title": "Intro to Rust",
        "maxCapacity": 2,
        "currentRegistrations": 1,
        "availableSpots": 1,
        "isFull": False,
    }


def test_cancelled_event_refuses_registrations(client, admin_headers, college, student, student_headers, make_event):
    event_id = make_event(college, date=in_days(1))
    response = client.put(f"/api/events/{event_id}/cancel", headers=admin_headers)
    assert response.json()["status"] == "CANCELLED"

    response = client.post(f"/api/students/events/{event_id}/register", headers=student_headers)
    assert response.status_code == 400
    assert reason_of(response) == "EventNotActive"


def test_delete_event_cascades(client, admin_headers, college, student, make_event, register, attend, db):
    event_id = make_event(college)
    registration_id = register(student, event_id)
    attend(registration_id)
    db.add(Feedback(registration_id=registration_id, rating=5, submitted_at=NOW))
    db.commit()

    response = client.delete(f"/api/events/{event_id}", headers=admin_headers)
    assert response.status_code == 200

    db.expire_all()
    assert db.get(Event, event_id) is None
    assert db.query(Registration).count() == 0
    assert db.query(Attendance).count() == 0
    assert db.query(Feedback).count() == 0


def test_feedback_reminders(client, admin_headers, college, make_event, make_student, register, attend, db):
    event_id = make_event(college)
    reviewed = register(make_student(college, "reviewed@northfield.edu", name="Reviewed"), event_id)
    pending = register(make_student(college, "pending@northfield.edu", name="Pending"), event_id)
    register(make_student(college, "absent@northfield.edu", name="Absent"), event_id)
    attend(reviewed)
    attend(pending)
    db.add(Feedback(registration_id=reviewed, rating=4, submitted_at=NOW))
    db.commit()

    response = client.post(f"/api/events/{event_id}/send-feedback-reminders", headers=admin_headers)
    assert response.status_code == 200
    body = response.json()
    assert body["remindersSent"] == 1
    assert [s["email"] for s in body["students"]] == ["pending@northfield.edu"]


def test_no_reminders_for_future_events(client, admin_headers, college, make_event):
    event_id = make_event(college, date=in_days(2))
    response = client.post(f"/api/events/{event_id}/send-feedback-reminders", headers=admin_headers)
    assert response.status_code == 400


def test_unknown_event_is_404(client):
    assert client.get("/api/events/missing").status_code == 404
