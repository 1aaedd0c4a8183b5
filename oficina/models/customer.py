"""
Oficina Server - Customer Model
Clientes da oficina e seus veículos
"""
import uuid
from datetime import datetime
from sqlalchemy import Column, String, DateTime, Text, ForeignKey
from sqlalchemy.orm import relationship

from oficina.database import Base


class Customer(Base):
    """Cliente (dono do veículo)"""
    __tablename__ = "customers"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    tenant_id = Column(String(36), ForeignKey("tenants.id"), nullable=False, index=True)

    name = Column(String(255), nullable=False, index=True)
    phone = Column(String(20))
    email = Column(String(255))
    notes = Column(Text)

    # Timestamps
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    vehicles = relationship("Vehicle", back_populates="customer")

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "phone": self.phone,
            "email": self.email,
        }


class Vehicle(Base):
    """Veículo atendido"""
    __tablename__ = "vehicles"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    tenant_id = Column(String(36), ForeignKey("tenants.id"), nullable=False, index=True)

    # Dono atual (pode mudar; a OS guarda o dono no momento da abertura)
    customer_id = Column(String(36), ForeignKey("customers.id"), nullable=False)
    customer = relationship("Customer", back_populates="vehicles", lazy="selectin")

    plate = Column(String(10), index=True)
    brand = Column(String(100))
    model = Column(String(100))
    color = Column(String(50))

    # Timestamps
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def to_dict(self):
        return {
            "id": self.id,
            "customer_id": self.customer_id,
            "customer_name": self.customer.name if self.customer else None,
            "plate": self.plate,
            "brand": self.brand,
            "model": self.model,
            "color": self.color,
        }
