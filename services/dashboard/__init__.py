"""
Voice Lead Agent - Dashboard Module
"""

from services.dashboard.dashboard_service import DashboardService, summarize_leads
from services.dashboard.auth_service import AuthService

__all__ = [
    "DashboardService",
    "summarize_leads",
    "AuthService",
]
