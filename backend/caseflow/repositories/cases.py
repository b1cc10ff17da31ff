"""
Case repository — the only place that reads or writes the cases table.

`update()` is a compare-and-swap on the status column: it only touches the
row if the status still equals the value the caller read, and reports
whether it did. Callers turn a miss into ConflictError.
"""

from typing import Any

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from caseflow.models import Case


class CaseRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get(self, case_id: str) -> Case | None:
        """Fetch a case, always reflecting the row's current state."""
        result = await self.session.execute(
            select(Case)
            .where(Case.id == case_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def create(self, **fields: Any) -> Case:
        case = Case(**fields)
        self.session.add(case)
        await self.session.flush()
        return case

    async def update(self, case_id: str, expected_status: str, fields: dict[str, Any]) -> bool:
        """
        Apply ``fields`` to the case iff its status is still ``expected_status``.

        Returns False when no row matched, i.e. another writer moved the
        case (or it vanished) since it was read.
        """
        result = await self.session.execute(
            update(Case)
            .where(Case.id == case_id, Case.status == expected_status)
            .values(**fields)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    async def set_fields(self, case_id: str, fields: dict[str, Any]) -> bool:
        """Unconditional update for fields the status machine does not own."""
        result = await self.session.execute(
            update(Case)
            .where(Case.id == case_id)
            .values(**fields)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    async def list_by_applicant(self, applicant_id: str, limit: int = 50, offset: int = 0) -> list[Case]:
        return await self._list(Case.applicant_id == applicant_id, limit=limit, offset=offset)

    async def list_by_agent(self, agent_id: str, limit: int = 50, offset: int = 0) -> list[Case]:
        return await self._list(Case.agent_id == agent_id, limit=limit, offset=offset)

    async def list_all(self, status: str | None = None, limit: int = 50, offset: int = 0) -> list[Case]:
        criteria = [Case.status == status] if status else []
        return await self._list(*criteria, limit=limit, offset=offset)

    async def count(self, applicant_id: str | None = None, agent_id: str | None = None) -> int:
        """Number of cases matching the owner / assignee filters, ignoring paging."""
        query = select(func.count()).select_from(Case)
        if applicant_id:
            query = query.where(Case.applicant_id == applicant_id)
        if agent_id:
            query = query.where(Case.agent_id == agent_id)
        result = await self.session.execute(query)
        return result.scalar() or 0

    async def _list(self, *criteria, limit: int, offset: int) -> list[Case]:
        query = select(Case).order_by(Case.updated_at.desc(), Case.id)
        if criteria:
            query = query.where(*criteria)
        result = await self.session.execute(query.offset(offset).limit(limit))
        return list(result.scalars())
