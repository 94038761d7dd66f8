from datetime import datetime, timedelta

# Friday noon, UTC; every request in the suite sees this as "now"
NOW = datetime(2025, 3, 14, 12, 0, 0)


def in_days(days):
    return NOW + timedelta(days=days)


def reason_of(response):
    return response.json()["details"][0]["reason"]
