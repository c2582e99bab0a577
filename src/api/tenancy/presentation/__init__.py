"""Tenancy presentation layer - organized by resource.

Document CRUD is served at the root, routing lookups under /tenancy and
the operator migration surface under /migrations. Auth is enforced per
endpoint through each handler's dependencies.
"""

from __future__ import annotations

from fastapi import APIRouter

from tenancy.presentation import documents, migrations, routing

router = APIRouter()

router.include_router(documents.router)
router.include_router(routing.router)
router.include_router(migrations.router)

__all__ = ["router"]
