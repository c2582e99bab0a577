"""HTTP routes for tenant documents.

Every handler goes through the Query Guard; the tenant always comes from
the resolved tenant context, never from the request body or query.
"""

from __future__ import annotations

from typing import Annotated, Any

from fastapi import APIRouter, Body, Depends, HTTPException, Request, Response, status

from shared_kernel.middleware.tenant_context import TenantContext
from tenancy.application import QueryGuard
from tenancy.dependencies import get_query_guard, get_tenant_context
from tenancy.domain.exceptions import TenancyError
from tenancy.domain.operations import ID_FIELD
from tenancy.presentation.documents.models import DocumentListResponse
from tenancy.presentation.errors import to_http_exception

router = APIRouter(
    prefix="/documents",
    tags=["documents"],
)


def _not_found(document_id: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail=f"Document {document_id} not found",
    )


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_document(
    document: Annotated[dict[str, Any], Body()],
    tenant: Annotated[TenantContext, Depends(get_tenant_context)],
    guard: Annotated[QueryGuard, Depends(get_query_guard)],
) -> dict[str, Any]:
    """Create a document for the caller's tenant.

    An ``id`` is assigned when the document has none.

    Raises:
        HTTPException: 403 if the body names another tenant
        HTTPException: 409 if the id already exists
        HTTPException: 503 if the tenant's target is unavailable
    """
    try:
        return await guard.create(tenant, document)
    except TenancyError as e:
        raise to_http_exception(e) from e


@router.get("")
async def find_documents(
    request: Request,
    tenant: Annotated[TenantContext, Depends(get_tenant_context)],
    guard: Annotated[QueryGuard, Depends(get_query_guard)],
) -> DocumentListResponse:
    """Find the caller's documents.

    Query parameters are equality filters on top-level fields.
    """
    filter = dict(request.query_params)
    try:
        documents = await guard.find(tenant, filter)
    except TenancyError as e:
        raise to_http_exception(e) from e
    return DocumentListResponse.from_documents(documents)


@router.get("/{document_id}")
async def get_document(
    document_id: str,
    tenant: Annotated[TenantContext, Depends(get_tenant_context)],
    guard: Annotated[QueryGuard, Depends(get_query_guard)],
) -> dict[str, Any]:
    """Get one of the caller's documents by id.

    Raises:
        HTTPException: 404 if the tenant has no such document
    """
    try:
        documents = await guard.find(tenant, {ID_FIELD: document_id})
    except TenancyError as e:
        raise to_http_exception(e) from e
    if not documents:
        raise _not_found(document_id)
    return documents[0]


@router.patch("/{document_id}")
async def update_document(
    document_id: str,
    changes: Annotated[dict[str, Any], Body()],
    tenant: Annotated[TenantContext, Depends(get_tenant_context)],
    guard: Annotated[QueryGuard, Depends(get_query_guard)],
) -> dict[str, Any]:
    """Apply field changes to one of the caller's documents.

    Raises:
        HTTPException: 400 if the changes touch the id
        HTTPException: 403 if the changes name another tenant
        HTTPException: 404 if the tenant has no such document
    """
    try:
        updated = await guard.update(tenant, {ID_FIELD: document_id}, changes)
    except TenancyError as e:
        raise to_http_exception(e) from e
    if not updated:
        raise _not_found(document_id)
    return updated[0]


@router.delete("/{document_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_document(
    document_id: str,
    tenant: Annotated[TenantContext, Depends(get_tenant_context)],
    guard: Annotated[QueryGuard, Depends(get_query_guard)],
) -> Response:
    """Delete one of the caller's documents.

    Raises:
        HTTPException: 404 if the tenant has no such document
    """
    try:
        deleted = await guard.delete(tenant, {ID_FIELD: document_id})
    except TenancyError as e:
        raise to_http_exception(e) from e
    if not deleted:
        raise _not_found(document_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
