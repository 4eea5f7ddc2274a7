"""API routers."""

from questionbank.routers.questions import router as questions_router

__all__ = ["questions_router"]
