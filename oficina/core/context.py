"""
Oficina Server - Caller Context
Quem está chamando e em qual tenant (resolvido na borda de autenticação)
"""
from dataclasses import dataclass

from oficina.models.tenant import UserRole


@dataclass(frozen=True)
class CallerContext:
    user_id: str
    tenant_id: str
    role: str

    @property
    def is_restricted(self) -> bool:
        """MEMBER só opera OS atribuídas a ele"""
        return self.role == UserRole.MEMBER.value
