"""
Analytics package exports.
"""

from review_core.analytics.service import build_learner_dashboard, summarize_session
from review_core.analytics.types import LearnerDashboard, SessionSummary

__all__ = [
    "build_learner_dashboard",
    "summarize_session",
    "LearnerDashboard",
    "SessionSummary",
]
