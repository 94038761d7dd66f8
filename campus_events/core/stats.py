"""
Read-only reporting views.

Everything here is recomputed from the rows passed in; nothing is cached
or maintained incrementally. Events are expected with their registrations
(and each registration's attendance/feedback) loaded, students likewise.
"""

import math
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, Iterable, List, Optional, Sequence


def attendance_percentage(attended: int, registered: int) -> int:
    if registered <= 0:
        return 0
    # Half rounds up, so 1 of 8 attended reports 13 rather than 12
    return int(math.floor(100 * attended / registered + 0.5))


def average_rating(ratings: Sequence[int]) -> float:
    if not ratings:
        return 0
    mean = Decimal(sum(ratings)) / Decimal(len(ratings))
    return float(mean.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def rating_distribution(ratings: Iterable[int]) -> Dict[int, int]:
    distribution = {rating: 0 for rating in range(1, 6)}
    for rating in ratings:
        if rating in distribution:
            distribution[rating] += 1
    return distribution


def event_ratings(event: Any) -> List[int]:
    return [r.feedback.rating for r in event.registrations if r.feedback is not None]


def event_summary(event: Any) -> Dict[str, Any]:
    registered = len(event.registrations)
    attended = sum(1 for r in event.registrations if r.attendance is not None)
    ratings = event_ratings(event)
    return {
        "id": event.id,
        "title": event.title,
        "date": event.date,
        "venue": event.venue,
        "category": event.category,
        "college": event.college.name if event.college is not None else None,
        "total_registrations": registered,
        "total_attendance": attended,
        "attendance_percentage": attendance_percentage(attended, registered),
        "average_rating": average_rating(ratings),
        "total_feedbacks": len(ratings),
    }


def student_summary(student: Any) -> Dict[str, Any]:
    registered = len(student.registrations)
    attended = sum(1 for r in student.registrations if r.attendance is not None)
    return {
        "id": student.id,
        "name": student.name,
        "email": student.email,
        "college": student.college.name if student.college is not None else None,
        "total_registrations": registered,
        "total_attendance": attended,
        "attendance_rate": attendance_percentage(attended, registered),
    }


def event_popularity(events: Iterable[Any]) -> List[Dict[str, Any]]:
    summaries = [event_summary(event) for event in events]
    summaries.sort(key=lambda s: s["total_registrations"], reverse=True)
    return summaries


def student_participation(students: Iterable[Any]) -> List[Dict[str, Any]]:
    summaries = [student_summary(student) for student in students]
    summaries.sort(key=lambda s: s["total_attendance"], reverse=True)
    return summaries


def top_active_students(students: Iterable[Any], limit: int = 3) -> List[Dict[str, Any]]:
    ranked = []
    for student in students:
        summary = student_summary(student)
        summary["events_attended"] = [
            {"event_title": r.event.title, "event_date": r.event.date}
            for r in student.registrations
            if r.attendance is not None
        ]
        ranked.append(summary)
    ranked.sort(key=lambda s: (-s["total_attendance"], s["name"]))
    return ranked[:max(limit, 0)]


def attendance_report(events: Iterable[Any]) -> List[Dict[str, Any]]:
    report = []
    for event in events:
        registered = len(event.registrations)
        attended = sum(1 for r in event.registrations if r.attendance is not None)
        report.append({
            "event_id": event.id,
            "event_title": event.title,
            "event_date": event.date,
            "total_registrations": registered,
            "total_attendance": attended,
            "attendance_percentage": attendance_percentage(attended, registered),
        })
    return report


def feedback_report(events: Iterable[Any]) -> List[Dict[str, Any]]:
    report = []
    for event in events:
        ratings = event_ratings(event)
        report.append({
            "event_id": event.id,
            "event_title": event.title,
            "event_date": event.date,
            "total_feedbacks": len(ratings),
            "average_rating": average_rating(ratings),
            "rating_distribution": rating_distribution(ratings),
        })
    return report


def feedback_stats(event_id: str, ratings: Sequence[int]) -> Dict[str, Any]:
    return {
        "event_id": event_id,
        "total_feedbacks": len(ratings),
        "average_rating": average_rating(ratings),
        "rating_distribution": rating_distribution(ratings),
    }


def capacity_snapshot(event: Any) -> Dict[str, Any]:
    current = event.registration_count
    available: Optional[int] = None
    if event.max_capacity is not None:
        available = max(event.max_capacity - current, 0)
    return {
        "event_id": event.id,
        "title": event.title,
        "max_capacity": event.max_capacity,
        "current_registrations": current,
        "available_spots": available,
        "is_full": event.max_capacity is not None and current >= event.max_capacity,
    }


def overall_stats(
    total_students: int,
    total_events: int,
    total_registrations: int,
    total_attendance: int,
    total_feedbacks: int,
) -> Dict[str, Any]:
    return {
        "total_students": total_students,
        "total_events": total_events,
        "total_registrations": total_registrations,
        "total_attendance": total_attendance,
        "total_feedbacks": total_feedbacks,
        "overall_attendance_rate": attendance_percentage(total_attendance, total_registrations),
    }
