"""Document routes: tenant-scoped CRUD through the Query Guard."""

from tenancy.presentation.documents.routes import router

__all__ = ["router"]
