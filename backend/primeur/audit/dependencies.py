from typing import Annotated

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from primeur.audit.service import AuditTrail
from primeur.database import get_db_session

SessionDep = Annotated[AsyncSession, Depends(get_db_session)]


def get_audit_trail(session: SessionDep, request: Request) -> AuditTrail:
    """Fournit la piste d'audit liée à la requête courante (IP, user-agent)."""
    ip_address = request.client.host if request.client else None
    return AuditTrail(db_session=session, ip_address=ip_address, user_agent=request.headers.get("user-agent"))

AuditTrailDep = Annotated[AuditTrail, Depends(get_audit_trail)]
