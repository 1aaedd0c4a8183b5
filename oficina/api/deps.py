"""
Oficina Server - API Dependencies
Resolve usuário, tenant e papel do chamador a partir do token de sessão
"""
import logging
from typing import Optional
from fastapi import Depends, Header
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from oficina.database import get_db
from oficina.models import User, Tenant, UserRole
from oficina.core import verify_access_token
from oficina.core.context import CallerContext
from oficina.core.exceptions import UnauthorizedError, ForbiddenError, NotFoundError

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: AsyncSession = Depends(get_db)
) -> User:
    """Dependency para obter usuário autenticado"""
    if not credentials:
        raise UnauthorizedError("Login necessário")

    payload = verify_access_token(credentials.credentials)
    if not payload:
        raise UnauthorizedError("Token inválido ou expirado")

    result = await db.execute(
        select(User).where(User.id == payload.get("sub"))
    )
    user = result.scalar_one_or_none()

    if not user or not user.is_active:
        raise UnauthorizedError("Usuário não encontrado ou inativo")

    return user


async def get_caller_context(
    x_tenant_id: Optional[str] = Header(None),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
) -> CallerContext:
    """
    Dependency que resolve o tenant do chamador.

    ADMIN_SAAS opera no tenant informado em X-Tenant-ID; os demais papéis só no
    próprio tenant, e apenas se ele estiver ativo (sempre lido do banco para
    que suspensões valham na hora).
    """
    if user.role == UserRole.ADMIN_SAAS.value:
        if not x_tenant_id:
            raise ForbiddenError("Informe o tenant (X-Tenant-ID)")
        tenant_id = x_tenant_id
    else:
        if not user.tenant_id:
            raise ForbiddenError("Nenhum tenant associado ao usuário")
        tenant_id = user.tenant_id

    result = await db.execute(select(Tenant).where(Tenant.id == tenant_id))
    tenant = result.scalar_one_or_none()

    if not tenant:
        raise NotFoundError("Tenant não encontrado")

    if user.role != UserRole.ADMIN_SAAS.value:
        reason = tenant.blocked_reason()
        if reason:
            logger.warning(f"Acesso bloqueado para {user.email}: tenant {tenant.id} em {tenant.status}")
            raise ForbiddenError(reason)

    return CallerContext(user_id=user.id, tenant_id=tenant.id, role=user.role)
