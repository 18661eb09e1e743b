# reputation/conf.py
"""
Access to the ``REPUTATION`` settings dict with in-code defaults.
"""
from datetime import timedelta

from django.conf import settings

DEFAULTS = {
    "TRUST_SCORE_WEIGHTS": {
        "completion_rate": 0.25,
        "response_time": 0.15,
        "rating": 0.20,
        "account_age": 0.10,
        "activity_level": 0.15,
        "report_history": 0.10,
        "verification_status": 0.05,
    },
    "TRUST_REFRESH_HOURS": 24,
    "DAILY_REFRESH_HOUR": 2,
    "BASE_COMPLETION_POINTS": 10,
    "URGENCY_BONUS": {"high": 5, "medium": 3},
    "FAST_COMPLETION_WINDOW": timedelta(hours=24),
    "FAST_COMPLETION_BONUS": 5,
    "EARLY_CLAIM_WINDOW": timedelta(hours=1),
}


def reputation_setting(key):
    overrides = getattr(settings, "REPUTATION", None) or {}
    return overrides.get(key, DEFAULTS[key])
