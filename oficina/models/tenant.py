"""
Oficina Server - Tenant Model
Representa uma oficina (tenant) no sistema multi-tenant e seus usuários
"""
import uuid
from datetime import datetime
from enum import Enum
from sqlalchemy import Column, String, Boolean, DateTime, ForeignKey
from sqlalchemy.orm import relationship

from oficina.database import Base


class TenantStatus(str, Enum):
    """Status do tenant"""
    ACTIVE = "ACTIVE"                          # Ativo e funcionando
    TRIAL = "TRIAL"                            # Em período de teste
    PENDING_ACTIVATION = "PENDING_ACTIVATION"  # Aguardando pagamento da assinatura
    SUSPENDED = "SUSPENDED"                    # Suspenso por falta de pagamento
    CANCELED = "CANCELED"                      # Assinatura cancelada


# Mensagens exibidas quando o tenant não pode operar
BLOCKED_TENANT_MESSAGES = {
    TenantStatus.PENDING_ACTIVATION.value: "Conta aguardando ativação. Conclua o pagamento.",
    TenantStatus.SUSPENDED.value: "Conta suspensa. Entre em contato com o suporte.",
    TenantStatus.CANCELED.value: "Assinatura cancelada",
}


class UserRole(str, Enum):
    """Papéis de acesso"""
    ADMIN_SAAS = "ADMIN_SAAS"  # Operador da plataforma (acessa qualquer tenant)
    OWNER = "OWNER"
    MANAGER = "MANAGER"
    MEMBER = "MEMBER"          # Só enxerga as OS atribuídas a ele


class Tenant(Base):
    """Modelo de Tenant - uma oficina cliente da plataforma"""
    __tablename__ = "tenants"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))

    name = Column(String(255), nullable=False)
    phone = Column(String(20))
    status = Column(String(30), default=TenantStatus.ACTIVE.value, nullable=False)

    # Timestamps
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    users = relationship("User", back_populates="tenant")

    def blocked_reason(self):
        """Mensagem de bloqueio, ou None se o tenant pode operar"""
        return BLOCKED_TENANT_MESSAGES.get(self.status)

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "phone": self.phone,
            "status": self.status,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


class User(Base):
    """Usuário de um tenant"""
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))

    # ADMIN_SAAS não pertence a nenhum tenant
    tenant_id = Column(String(36), ForeignKey("tenants.id"), nullable=True, index=True)
    tenant = relationship("Tenant", back_populates="users")

    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=False, unique=True, index=True)
    role = Column(String(20), default=UserRole.MEMBER.value, nullable=False)
    is_active = Column(Boolean, default=True)

    # Timestamps
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def to_dict(self):
        return {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "name": self.name,
            "email": self.email,
            "role": self.role,
            "is_active": self.is_active,
        }
