"""
Oficina Server - Inspections API
Vistorias de entrada, intermediária e saída
"""
from typing import List, Optional
from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from oficina.database import get_db
from oficina.models import InspectionType
from oficina.schemas import (
    InspectionCreate,
    InspectionItemUpdate,
    SignatureCreate,
    VideoUpdate,
    DamageCreate,
    DamageBatchCreate,
    InspectionItemResponse,
    DamageResponse,
    InspectionResponse,
    InspectionSummaryResponse
)
from oficina.core import limiter, settings, ChecklistTemplateProvider, get_checklist_provider
from oficina.core.context import CallerContext
from oficina.api.deps import get_caller_context
from oficina.services import inspection_service

router = APIRouter(prefix="/inspections", tags=["Inspections"])


@router.get("/order/{order_id}", response_model=List[InspectionSummaryResponse])
async def list_order_inspections(
    order_id: str,
    db: AsyncSession = Depends(get_db),
    ctx: CallerContext = Depends(get_caller_context)
):
    """Vistorias da OS (resumo)"""
    inspections = await inspection_service.list_inspections(db, ctx, order_id)
    return [i.to_dict(include_children=False) for i in inspections]


@router.get("/order/{order_id}/type/{inspection_type}", response_model=Optional[InspectionResponse])
async def get_inspection_by_type(
    order_id: str,
    inspection_type: InspectionType,
    db: AsyncSession = Depends(get_db),
    ctx: CallerContext = Depends(get_caller_context),
    provider: ChecklistTemplateProvider = Depends(get_checklist_provider)
):
    """
    Vistoria de um tipo na OS, ou null se ainda não existir.
    Itens novos do checklist são acrescentados a vistorias em andamento.
    """
    inspection = await inspection_service.get_by_order_and_type(
        db, ctx, order_id, inspection_type.value, provider
    )
    return inspection.to_dict() if inspection else None


@router.get("/{inspection_id}", response_model=InspectionResponse)
async def get_inspection(
    inspection_id: str,
    db: AsyncSession = Depends(get_db),
    ctx: CallerContext = Depends(get_caller_context)
):
    inspection = await inspection_service.get_inspection(db, ctx, inspection_id)
    return inspection.to_dict()


@router.post("", response_model=InspectionResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit(settings.RATE_LIMIT_DEFAULT)
async def create_inspection(
    request: Request,
    data: InspectionCreate,
    db: AsyncSession = Depends(get_db),
    ctx: CallerContext = Depends(get_caller_context),
    provider: ChecklistTemplateProvider = Depends(get_checklist_provider)
):
    """Cria a vistoria com o checklist completo em `pendente`"""
    inspection = await inspection_service.create_inspection(
        db, ctx, data.order_id, data.type.value, provider
    )
    return inspection.to_dict()


@router.patch("/items/{item_id}", response_model=InspectionItemResponse)
@limiter.limit(settings.RATE_LIMIT_DEFAULT)
async def update_item(
    request: Request,
    item_id: str,
    data: InspectionItemUpdate,
    db: AsyncSession = Depends(get_db),
    ctx: CallerContext = Depends(get_caller_context)
):
    """Atualiza status, foto e observações de um item do checklist"""
    item = await inspection_service.update_item(
        db,
        ctx,
        item_id,
        status=data.status.value,
        photo_url=data.photo_url,
        notes=data.notes,
        damage_type=data.damage_type.value if data.damage_type else None,
        severity=data.severity.value if data.severity else None,
    )
    return item.to_dict()


@router.post("/{inspection_id}/complete", response_model=InspectionResponse)
@limiter.limit(settings.RATE_LIMIT_DEFAULT)
async def complete_inspection(
    request: Request,
    inspection_id: str,
    db: AsyncSession = Depends(get_db),
    ctx: CallerContext = Depends(get_caller_context)
):
    """Conclui a vistoria (exige todos os itens obrigatórios preenchidos)"""
    inspection = await inspection_service.complete_inspection(db, ctx, inspection_id)
    return inspection.to_dict()


@router.post("/{inspection_id}/signature", response_model=InspectionResponse)
@limiter.limit(settings.RATE_LIMIT_DEFAULT)
async def save_signature(
    request: Request,
    inspection_id: str,
    data: SignatureCreate,
    db: AsyncSession = Depends(get_db),
    ctx: CallerContext = Depends(get_caller_context)
):
    inspection = await inspection_service.save_signature(
        db, ctx, inspection_id, data.signature_url, data.signed_via
    )
    return inspection.to_dict()


@router.patch("/{inspection_id}/video", response_model=InspectionResponse)
@limiter.limit(settings.RATE_LIMIT_DEFAULT)
async def update_video(
    request: Request,
    inspection_id: str,
    data: VideoUpdate,
    db: AsyncSession = Depends(get_db),
    ctx: CallerContext = Depends(get_caller_context)
):
    inspection = await inspection_service.update_video(db, ctx, inspection_id, data.final_video_url)
    return inspection.to_dict()


@router.post("/{inspection_id}/damage", response_model=DamageResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit(settings.RATE_LIMIT_DEFAULT)
async def add_damage(
    request: Request,
    inspection_id: str,
    data: DamageCreate,
    db: AsyncSession = Depends(get_db),
    ctx: CallerContext = Depends(get_caller_context)
):
    """Grava uma marcação de dano"""
    payload = data.model_dump()
    payload["damage_type"] = data.damage_type.value
    client_ref = payload.pop("client_ref", None)

    damage = await inspection_service.add_damage(db, ctx, inspection_id, payload)
    return damage.to_dict(client_ref=client_ref)


@router.post("/{inspection_id}/damages", response_model=List[DamageResponse], status_code=status.HTTP_201_CREATED)
@limiter.limit(settings.RATE_LIMIT_DEFAULT)
async def add_damages(
    request: Request,
    inspection_id: str,
    data: DamageBatchCreate,
    db: AsyncSession = Depends(get_db),
    ctx: CallerContext = Depends(get_caller_context)
):
    """
    Grava marcações em lote, numa única transação.
    A resposta segue a ordem do envio e ecoa o client_ref de cada marcação.
    """
    payloads = []
    for damage in data.damages:
        payload = damage.model_dump()
        payload["damage_type"] = damage.damage_type.value
        payloads.append(payload)

    created = await inspection_service.add_damages(db, ctx, inspection_id, payloads)
    return [damage.to_dict(client_ref=client_ref) for damage, client_ref in created]


@router.delete("/damages/{damage_id}", status_code=status.HTTP_204_NO_CONTENT)
@limiter.limit(settings.RATE_LIMIT_DEFAULT)
async def remove_damage(
    request: Request,
    damage_id: str,
    db: AsyncSession = Depends(get_db),
    ctx: CallerContext = Depends(get_caller_context)
):
    await inspection_service.remove_damage(db, ctx, damage_id)
