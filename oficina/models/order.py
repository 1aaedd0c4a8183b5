"""
Oficina Server - Service Order Models
Ordem de Serviço (OS), seus itens e pagamentos
"""
import uuid
import time
from datetime import datetime
from enum import Enum
from sqlalchemy import Column, String, DateTime, Text, Integer, Float, ForeignKey
from sqlalchemy.orm import relationship

from oficina.database import Base


class OrderStatus(str, Enum):
    """Status da OS"""
    AGENDADO = "AGENDADO"
    EM_VISTORIA = "EM_VISTORIA"
    EM_EXECUCAO = "EM_EXECUCAO"
    AGUARDANDO_PAGAMENTO = "AGUARDANDO_PAGAMENTO"
    CONCLUIDO = "CONCLUIDO"    # Terminal
    CANCELADO = "CANCELADO"    # Terminal


ORDER_STATUS_LABELS = {
    OrderStatus.AGENDADO.value: "Agendado",
    OrderStatus.EM_VISTORIA.value: "Em Vistoria",
    OrderStatus.EM_EXECUCAO.value: "Em Execução",
    OrderStatus.AGUARDANDO_PAGAMENTO.value: "Aguardando Pag.",
    OrderStatus.CONCLUIDO.value: "Concluído",
    OrderStatus.CANCELADO.value: "Cancelado",
}


class DiscountType(str, Enum):
    """Tipo de desconto"""
    PERCENTAGE = "PERCENTAGE"
    FIXED = "FIXED"


class PaymentMethod(str, Enum):
    """Método de pagamento"""
    PIX = "PIX"
    CARTAO_CREDITO = "CARTAO_CREDITO"
    CARTAO_DEBITO = "CARTAO_DEBITO"
    DINHEIRO = "DINHEIRO"


class ServiceOrder(Base):
    """
    Modelo de Ordem de Serviço.
    Status só muda pela máquina de estados (ou pelo pagamento que quita a OS).
    Nunca é removida: cancelamento é um status terminal.
    """
    __tablename__ = "service_orders"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    tenant_id = Column(String(36), ForeignKey("tenants.id"), nullable=False, index=True)

    # Código legível (OS-<epoch ms>)
    code = Column(String(30), nullable=False, index=True)

    vehicle_id = Column(String(36), ForeignKey("vehicles.id"), nullable=False)
    vehicle = relationship("Vehicle", lazy="selectin")

    # Dono do veículo no momento da abertura
    customer_id = Column(String(36), ForeignKey("customers.id"), nullable=False)

    assigned_to_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    created_by_id = Column(String(36), ForeignKey("users.id"))

    status = Column(String(30), default=OrderStatus.AGENDADO.value, nullable=False, index=True)

    # Datas do ciclo de vida
    scheduled_at = Column(DateTime, nullable=False, index=True)
    started_at = Column(DateTime)
    completed_at = Column(DateTime)

    # Valores
    subtotal = Column(Float, nullable=False, default=0)
    discount_type = Column(String(20))
    discount_value = Column(Float)
    total = Column(Float, nullable=False, default=0)

    # Controle de concorrência otimista
    version = Column(Integer, nullable=False)

    # Timestamps
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    items = relationship(
        "OrderItem",
        back_populates="order",
        lazy="selectin",
        cascade="all, delete-orphan",
        order_by="OrderItem.position",
    )

    __mapper_args__ = {"version_id_col": version}

    @staticmethod
    def generate_code() -> str:
        """Gera código legível da OS"""
        return f"OS-{int(time.time() * 1000)}"

    @property
    def is_terminal(self) -> bool:
        return self.status in (OrderStatus.CONCLUIDO.value, OrderStatus.CANCELADO.value)

    def touch(self):
        """Força um UPDATE (e a checagem de versão) na próxima gravação"""
        self.updated_at = datetime.utcnow()

    def to_dict(self, paid_amount: float = None):
        data = {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "code": self.code,
            "vehicle_id": self.vehicle_id,
            "customer_id": self.customer_id,
            "assigned_to_id": self.assigned_to_id,
            "created_by_id": self.created_by_id,
            "status": self.status,
            "status_label": ORDER_STATUS_LABELS.get(self.status, self.status),
            "scheduled_at": self.scheduled_at.isoformat() if self.scheduled_at else None,
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "subtotal": round(self.subtotal or 0, 2),
            "discount_type": self.discount_type,
            "discount_value": self.discount_value,
            "total": round(self.total or 0, 2),
            "items": [i.to_dict() for i in self.items],
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
        if self.vehicle is not None:
            data["vehicle"] = {
                "plate": self.vehicle.plate,
                "brand": self.vehicle.brand,
                "model": self.vehicle.model,
                "color": self.vehicle.color,
            }
        if paid_amount is not None:
            data["paid_amount"] = round(paid_amount, 2)
            data["balance"] = round((self.total or 0) - paid_amount, 2)
        return data


class OrderItem(Base):
    """Serviço (ou item avulso) cobrado na OS"""
    __tablename__ = "order_items"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))

    order_id = Column(String(36), ForeignKey("service_orders.id"), nullable=False, index=True)
    order = relationship("ServiceOrder", back_populates="items")

    # Ordem de exibição
    position = Column(Integer, default=0)

    service_id = Column(String(36))      # Serviço do catálogo (externo)
    custom_name = Column(String(255))    # Nome livre quando não há serviço
    price = Column(Float, nullable=False)
    quantity = Column(Integer, nullable=False, default=1)
    notes = Column(Text)

    @property
    def line_total(self) -> float:
        return (self.price or 0) * (self.quantity or 0)

    def to_dict(self):
        return {
            "id": self.id,
            "service_id": self.service_id,
            "custom_name": self.custom_name,
            "price": self.price,
            "quantity": self.quantity,
            "notes": self.notes,
            "total": round(self.line_total, 2),
        }


class Payment(Base):
    """
    Recebimento contra uma OS.
    Somente inserção: nunca é alterado ou removido.
    """
    __tablename__ = "payments"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))

    order_id = Column(String(36), ForeignKey("service_orders.id"), nullable=False, index=True)

    method = Column(String(30), nullable=False)
    amount = Column(Float, nullable=False)
    paid_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    received_by = Column(String(36), ForeignKey("users.id"))
    notes = Column(Text)

    created_at = Column(DateTime, default=datetime.utcnow)

    def to_dict(self):
        return {
            "id": self.id,
            "order_id": self.order_id,
            "method": self.method,
            "amount": round(self.amount, 2),
            "paid_at": self.paid_at.isoformat() if self.paid_at else None,
            "received_by": self.received_by,
            "notes": self.notes,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
