"""
Oficina Server - Inspection Schemas
"""
from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime
from oficina.models.inspection import (
    InspectionType,
    InspectionStatus,
    ItemStatus,
    ItemDamageType,
    ItemSeverity,
    MarkerDamageType,
)


class InspectionCreate(BaseModel):
    order_id: str
    type: InspectionType


class InspectionItemUpdate(BaseModel):
    status: ItemStatus
    photo_url: Optional[str] = None
    notes: Optional[str] = None
    damage_type: Optional[ItemDamageType] = None
    severity: Optional[ItemSeverity] = None


class SignatureCreate(BaseModel):
    signature_url: str = Field(..., min_length=1)
    signed_via: Optional[str] = Field(None, max_length=20)


class VideoUpdate(BaseModel):
    final_video_url: Optional[str] = None


class DamageCreate(BaseModel):
    """Marcação de dano (nome da peça ou descrição manual + coordenadas 3D)"""
    client_ref: Optional[str] = Field(None, max_length=100)
    position: str = Field(..., min_length=1, max_length=255)
    x: float
    y: float
    z: float = 0
    normal_x: float = 0
    normal_y: float = 1
    normal_z: float = 0
    is_3d: bool = True
    damage_type: MarkerDamageType
    severity: int = Field(2, ge=1, le=3)
    notes: Optional[str] = None
    photo_url: Optional[str] = None


class DamageBatchCreate(BaseModel):
    damages: List[DamageCreate] = Field(..., min_length=1)


class InspectionItemResponse(BaseModel):
    id: str
    inspection_id: str
    item_key: str
    category: str
    label: str
    is_required: bool
    is_critical: bool
    status: ItemStatus
    photo_url: Optional[str] = None
    notes: Optional[str] = None
    damage_type: Optional[ItemDamageType] = None
    severity: Optional[ItemSeverity] = None
    completed_at: Optional[datetime] = None


class DamageResponse(BaseModel):
    id: str
    inspection_id: str
    client_ref: Optional[str] = None
    position: str
    x: float
    y: float
    z: float
    normal_x: float
    normal_y: float
    normal_z: float
    is_3d: bool
    damage_type: MarkerDamageType
    severity: Optional[int] = None
    notes: Optional[str] = None
    photo_url: Optional[str] = None
    created_at: Optional[datetime] = None


class InspectionResponse(BaseModel):
    id: str
    order_id: str
    type: InspectionType
    status: InspectionStatus
    signature_url: Optional[str] = None
    signed_via: Optional[str] = None
    signed_at: Optional[datetime] = None
    final_video_url: Optional[str] = None
    progress: int = 0
    items: List[InspectionItemResponse] = []
    damages: List[DamageResponse] = []
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class InspectionSummaryResponse(BaseModel):
    id: str
    order_id: str
    type: InspectionType
    status: InspectionStatus
    progress: int = 0
    damages_count: int = 0
    signed_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
