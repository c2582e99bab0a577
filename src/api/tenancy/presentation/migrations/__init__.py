"""Migration routes: the operator surface for tier migrations."""

from tenancy.presentation.migrations.routes import router

__all__ = ["router"]
