"""API module."""

from .onboarding import router as onboarding_router

__all__ = ['onboarding_router']
