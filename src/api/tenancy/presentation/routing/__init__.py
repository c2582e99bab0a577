"""Routing routes: the caller's tier record."""

from tenancy.presentation.routing.routes import router

__all__ = ["router"]
