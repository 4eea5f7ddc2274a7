"""Database models package."""

from questionbank.models.activity import QuestionAttempt, QuestionView
from questionbank.models.audit_log import AuditLog
from questionbank.models.base import Base
from questionbank.models.category import Category
from questionbank.models.company import Company
from questionbank.models.history import ChangeType, QuestionHistory
from questionbank.models.question import Question, QuestionCategory, QuestionStatus
from questionbank.models.user import Role, User
from questionbank.models.vote import Vote, VoteType

__all__ = [
    "AuditLog",
    "Base",
    "Category",
    "ChangeType",
    "Company",
    "Question",
    "QuestionAttempt",
    "QuestionCategory",
    "QuestionHistory",
    "QuestionStatus",
    "QuestionView",
    "Role",
    "User",
    "Vote",
    "VoteType",
]
