"""
Oficina Server - Inspection Models
Vistorias (entrada, intermediária, saída), itens do checklist e marcações de dano
"""
import uuid
from datetime import datetime
from enum import Enum
from sqlalchemy import (
    Column, String, Boolean, DateTime, Text, Integer, Float, ForeignKey, UniqueConstraint
)
from sqlalchemy.orm import relationship

from oficina.database import Base


class InspectionType(str, Enum):
    """Tipo de vistoria"""
    ENTRADA = "entrada"              # Obrigatória na chegada do veículo
    INTERMEDIARIA = "intermediaria"  # Opcional durante a execução
    FINAL = "final"                  # Obrigatória antes da entrega (libera a conclusão da OS)


class InspectionStatus(str, Enum):
    """Status da vistoria"""
    EM_ANDAMENTO = "em_andamento"
    CONCLUIDA = "concluida"  # Terminal: snapshot imutável


class ItemStatus(str, Enum):
    """Status de um item do checklist"""
    PENDENTE = "pendente"
    OK = "ok"
    COM_AVARIA = "com_avaria"


class ItemDamageType(str, Enum):
    """Tipos de avaria de um item do checklist"""
    ARRANHAO = "arranhao"
    AMASSADO = "amassado"
    TRINCA = "trinca"
    MANCHA = "mancha"
    RISCO = "risco"
    PINTURA = "pintura"
    OUTRO = "outro"


class ItemSeverity(str, Enum):
    """Gravidade da avaria de um item"""
    LEVE = "leve"
    MODERADO = "moderado"
    GRAVE = "grave"


class MarkerDamageType(str, Enum):
    """Tipos de dano marcados no modelo 3D"""
    SCRATCH = "scratch"
    DENT = "dent"
    CRACK = "crack"
    PAINT = "paint"


class Inspection(Base):
    """Vistoria de uma OS (no máximo uma por tipo)"""
    __tablename__ = "inspections"
    __table_args__ = (
        UniqueConstraint("order_id", "type", name="uq_inspections_order_type"),
    )

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))

    order_id = Column(String(36), ForeignKey("service_orders.id"), nullable=False, index=True)
    type = Column(String(20), nullable=False)
    status = Column(String(20), default=InspectionStatus.EM_ANDAMENTO.value, nullable=False)

    # Assinatura do cliente
    signature_url = Column(Text)
    signed_via = Column(String(20))
    signed_at = Column(DateTime)

    final_video_url = Column(Text)

    # Controle de concorrência otimista
    version = Column(Integer, nullable=False)

    # Timestamps
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    items = relationship(
        "InspectionItem",
        back_populates="inspection",
        lazy="selectin",
        cascade="all, delete-orphan",
        order_by="InspectionItem.position",
    )
    damages = relationship(
        "InspectionDamage",
        back_populates="inspection",
        lazy="selectin",
        cascade="all, delete-orphan",
        order_by="InspectionDamage.position_index",
    )

    __mapper_args__ = {"version_id_col": version}

    @property
    def is_locked(self) -> bool:
        return self.status == InspectionStatus.CONCLUIDA.value

    def touch(self):
        """Força um UPDATE (e a checagem de versão) na próxima gravação"""
        self.updated_at = datetime.utcnow()

    def required_items(self):
        return [i for i in self.items if i.is_required]

    def pending_required_items(self):
        return [i for i in self.items if i.is_required and i.status == ItemStatus.PENDENTE.value]

    def progress(self) -> int:
        """Percentual de itens obrigatórios preenchidos (apenas exibição)"""
        total_required = len(self.required_items())
        if total_required == 0:
            return 0
        completed_required = total_required - len(self.pending_required_items())
        return round(completed_required / total_required * 100)

    def to_dict(self, include_children: bool = True):
        data = {
            "id": self.id,
            "order_id": self.order_id,
            "type": self.type,
            "status": self.status,
            "signature_url": self.signature_url,
            "signed_via": self.signed_via,
            "signed_at": self.signed_at.isoformat() if self.signed_at else None,
            "final_video_url": self.final_video_url,
            "progress": self.progress(),
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
        if include_children:
            data["items"] = [i.to_dict() for i in self.items]
            data["damages"] = [d.to_dict() for d in self.damages]
        else:
            data["damages_count"] = len(self.damages)
        return data


class InspectionItem(Base):
    """Linha do checklist (materializada a partir do template)"""
    __tablename__ = "inspection_items"
    __table_args__ = (
        UniqueConstraint("inspection_id", "item_key", name="uq_inspection_items_key"),
    )

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))

    inspection_id = Column(String(36), ForeignKey("inspections.id"), nullable=False, index=True)
    inspection = relationship("Inspection", back_populates="items")

    # Posição no template no momento da materialização
    position = Column(Integer, default=0)

    item_key = Column(String(50), nullable=False)
    category = Column(String(50), nullable=False)
    label = Column(String(255), nullable=False)
    is_required = Column(Boolean, default=True)
    is_critical = Column(Boolean, default=False)

    status = Column(String(20), default=ItemStatus.PENDENTE.value, nullable=False)
    photo_url = Column(Text)
    notes = Column(Text)

    # Só preenchidos quando status = com_avaria
    damage_type = Column(String(20))
    severity = Column(String(20))

    # Preenchido sse status != pendente
    completed_at = Column(DateTime)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def to_dict(self):
        return {
            "id": self.id,
            "inspection_id": self.inspection_id,
            "item_key": self.item_key,
            "category": self.category,
            "label": self.label,
            "is_required": self.is_required,
            "is_critical": self.is_critical,
            "status": self.status,
            "photo_url": self.photo_url,
            "notes": self.notes,
            "damage_type": self.damage_type,
            "severity": self.severity,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
        }


class InspectionDamage(Base):
    """
    Marcação de dano livre (modelo 3D ou descrição manual).
    Não há atualização: só criação em lote/individual e remoção.
    """
    __tablename__ = "inspection_damages"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))

    inspection_id = Column(String(36), ForeignKey("inspections.id"), nullable=False, index=True)
    inspection = relationship("Inspection", back_populates="damages")

    # Ordem de envio (preserva a correlação do lote)
    position_index = Column(Integer, default=0)

    # Nome da peça (ex: "capo") ou descrição manual
    position = Column(String(255), nullable=False)

    # Coordenadas 3D e vetor normal da superfície
    x = Column(Float, default=0)
    y = Column(Float, default=0)
    z = Column(Float, default=0)
    normal_x = Column(Float, default=0)
    normal_y = Column(Float, default=1)
    normal_z = Column(Float, default=0)
    is_3d = Column(Boolean, default=True)

    damage_type = Column(String(20), nullable=False)
    severity = Column(Integer, default=2)
    notes = Column(Text)
    photo_url = Column(Text)

    created_at = Column(DateTime, default=datetime.utcnow)

    def to_dict(self, client_ref: str = None):
        data = {
            "id": self.id,
            "inspection_id": self.inspection_id,
            "position": self.position,
            "x": self.x,
            "y": self.y,
            "z": self.z,
            "normal_x": self.normal_x,
            "normal_y": self.normal_y,
            "normal_z": self.normal_z,
            "is_3d": self.is_3d,
            "damage_type": self.damage_type,
            "severity": self.severity,
            "notes": self.notes,
            "photo_url": self.photo_url,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
        if client_ref is not None:
            data["client_ref"] = client_ref
        return data
