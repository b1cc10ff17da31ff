from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from caseflow.models import Document


class DocumentRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get(self, document_id: str) -> Document | None:
        result = await self.session.execute(
            select(Document).where(Document.id == document_id)
        )
        return result.scalar_one_or_none()

    async def create(self, case_id: str, uploaded_by: str, name: str, document_type: str) -> Document:
        document = Document(
            case_id=case_id,
            uploaded_by=uploaded_by,
            name=name,
            document_type=document_type,
        )
        self.session.add(document)
        await self.session.flush()
        return document

    async def list_by_case(self, case_id: str) -> list[Document]:
        result = await self.session.execute(
            select(Document)
            .where(Document.case_id == case_id)
            .order_by(Document.created_at.asc())
        )
        return list(result.scalars())
