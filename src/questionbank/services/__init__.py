"""Service layer for business logic."""

from questionbank.services.audit import AuditRecorder, audit_recorder
from questionbank.services.questions import QuestionService
from questionbank.services.scheduler import ScoreRecomputeScheduler
from questionbank.services.scoring import ScoringService
from questionbank.services.voting import VoteService

__all__ = [
    "AuditRecorder",
    "QuestionService",
    "ScoreRecomputeScheduler",
    "ScoringService",
    "VoteService",
    "audit_recorder",
]
