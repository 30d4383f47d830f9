"""SQLAlchemy models for the Worklog application."""

from src.models.base import Base
from src.models.client import Client
from src.models.history import HistorySnapshot
from src.models.payment import PaymentEntry
from src.models.user import User
from src.models.work import WorkItem, WorkStatus

__all__ = [
    "Base",
    "Client",
    "WorkItem",
    "WorkStatus",
    "PaymentEntry",
    "HistorySnapshot",
    "User",
]
