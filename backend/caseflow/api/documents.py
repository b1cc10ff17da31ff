"""Documents API — single-document reads, gated by the owning case."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from caseflow.api.deps import enforce_access, get_db, get_request_context
from caseflow.auth.context import RequestContext
from caseflow.repositories.documents import DocumentRepository
from caseflow.schemas.schemas import DocumentSchema
from caseflow.services.access_control import ActionType, ResourceType

router = APIRouter(prefix="/api/documents", tags=["documents"])


@router.get("/{document_id}", response_model=DocumentSchema)
async def get_document(
    document_id: str,
    ctx: RequestContext = Depends(get_request_context),
    db: AsyncSession = Depends(get_db),
):
    await enforce_access(db, ctx, ResourceType.DOCUMENT, document_id, ActionType.READ)
    document = await DocumentRepository(db).get(document_id)
    return DocumentSchema.model_validate(document)
