"""Repository layer for database operations."""

from questionbank.repositories.audit_log import AuditLogRepository
from questionbank.repositories.category import QuestionCategoryRepository
from questionbank.repositories.history import QuestionHistoryRepository
from questionbank.repositories.question import QuestionRepository
from questionbank.repositories.user import UserRepository
from questionbank.repositories.vote import VoteAction, VoteRepository, VoteTally

__all__ = [
    "AuditLogRepository",
    "QuestionCategoryRepository",
    "QuestionHistoryRepository",
    "QuestionRepository",
    "UserRepository",
    "VoteAction",
    "VoteRepository",
    "VoteTally",
]
