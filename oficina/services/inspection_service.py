"""
Oficina Server - Inspection Checklist Engine
Vistorias: materialização do checklist, atualização de itens, conclusão,
assinatura, vídeo e marcações de dano.

Regras principais:
- uma vistoria por tipo em cada OS;
- itens novos do template são acrescentados às vistorias existentes, itens
  removidos do template nunca são apagados (histórico preservado);
- vistoria concluída é um snapshot imutável;
- a conclusão exige todos os itens obrigatórios fora de `pendente`.
"""
import logging
from datetime import datetime
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from oficina.core.checklist import ChecklistTemplateProvider
from oficina.core.context import CallerContext
from oficina.core.exceptions import (
    NotFoundError,
    ConflictError,
    InspectionLockedError,
    IncompleteInspectionError,
    InvalidItemError,
)
from oficina.database import commit_or_conflict
from oficina.models import (
    ServiceOrder,
    Inspection,
    InspectionItem,
    InspectionDamage,
    InspectionStatus,
    ItemStatus,
)

logger = logging.getLogger(__name__)


# ============================================================
# CONSULTAS (sempre filtradas pelo tenant via OS)
# ============================================================

async def _load_order(db: AsyncSession, ctx: CallerContext, order_id: str) -> ServiceOrder:
    result = await db.execute(
        select(ServiceOrder).where(
            ServiceOrder.id == order_id,
            ServiceOrder.tenant_id == ctx.tenant_id,
        )
    )
    order = result.scalar_one_or_none()
    if not order:
        raise NotFoundError("Ordem de serviço não encontrada")
    return order


async def _load_inspection(
    db: AsyncSession,
    ctx: CallerContext,
    inspection_id: str,
    for_update: bool = False,
) -> Inspection:
    query = (
        select(Inspection)
        .join(ServiceOrder, ServiceOrder.id == Inspection.order_id)
        .where(
            Inspection.id == inspection_id,
            ServiceOrder.tenant_id == ctx.tenant_id,
        )
    )
    if for_update:
        query = query.with_for_update(of=Inspection)

    result = await db.execute(query.execution_options(populate_existing=True))
    inspection = result.scalar_one_or_none()
    if not inspection:
        raise NotFoundError("Vistoria não encontrada")
    return inspection


async def list_inspections(db: AsyncSession, ctx: CallerContext, order_id: str) -> List[Inspection]:
    """Vistorias da OS, da mais recente para a mais antiga"""
    order = await _load_order(db, ctx, order_id)
    result = await db.execute(
        select(Inspection)
        .where(Inspection.order_id == order.id)
        .order_by(Inspection.created_at.desc())
    )
    return list(result.scalars().all())


async def get_inspection(db: AsyncSession, ctx: CallerContext, inspection_id: str) -> Inspection:
    return await _load_inspection(db, ctx, inspection_id)


async def get_by_order_and_type(
    db: AsyncSession,
    ctx: CallerContext,
    order_id: str,
    inspection_type: str,
    provider: ChecklistTemplateProvider,
) -> Optional[Inspection]:
    """
    Vistoria de um tipo na OS (ou None).
    Sincroniza itens novos do template como efeito colateral da leitura.
    """
    order = await _load_order(db, ctx, order_id)
    result = await db.execute(
        select(Inspection)
        .where(Inspection.order_id == order.id, Inspection.type == inspection_type)
        .execution_options(populate_existing=True)
    )
    inspection = result.scalar_one_or_none()
    if not inspection:
        return None

    added = sync_template_drift(inspection, provider)
    if added:
        inspection.touch()
        await commit_or_conflict(db)
        logger.info(
            f"Vistoria {inspection.id}: {len(added)} itens novos do template sincronizados"
        )
    return inspection


# ============================================================
# CHECKLIST
# ============================================================

def materialize_items(provider: ChecklistTemplateProvider, start_position: int = 0) -> List[InspectionItem]:
    """Cria um item `pendente` para cada entrada do template"""
    return [
        InspectionItem(
            position=start_position + index,
            item_key=entry["item_key"],
            category=entry["category"],
            label=entry["label"],
            is_required=entry["is_required"],
            is_critical=entry["is_critical"],
            status=ItemStatus.PENDENTE.value,
        )
        for index, entry in enumerate(provider.items())
    ]


def sync_template_drift(inspection: Inspection, provider: ChecklistTemplateProvider) -> List[InspectionItem]:
    """
    Acrescenta os itens do template que a vistoria ainda não tem.
    Nunca remove itens; vistorias concluídas não são alteradas.
    """
    if inspection.is_locked:
        return []

    existing_keys = {item.item_key for item in inspection.items}
    next_position = max((item.position or 0 for item in inspection.items), default=-1) + 1

    added = []
    for entry in provider.items():
        if entry["item_key"] in existing_keys:
            continue
        item = InspectionItem(
            position=next_position,
            item_key=entry["item_key"],
            category=entry["category"],
            label=entry["label"],
            is_required=entry["is_required"],
            is_critical=entry["is_critical"],
            status=ItemStatus.PENDENTE.value,
        )
        inspection.items.append(item)
        added.append(item)
        next_position += 1

    return added


async def create_inspection(
    db: AsyncSession,
    ctx: CallerContext,
    order_id: str,
    inspection_type: str,
    provider: ChecklistTemplateProvider,
) -> Inspection:
    """Cria a vistoria com os itens materializados do template"""
    order = await _load_order(db, ctx, order_id)

    result = await db.execute(
        select(Inspection.id).where(
            Inspection.order_id == order.id,
            Inspection.type == inspection_type,
        )
    )
    conflict_message = f'Já existe uma vistoria do tipo "{inspection_type}" para esta OS'
    if result.scalar_one_or_none():
        raise ConflictError(conflict_message)

    inspection = Inspection(
        order_id=order.id,
        type=inspection_type,
        status=InspectionStatus.EM_ANDAMENTO.value,
        items=materialize_items(provider),
        damages=[],
    )
    db.add(inspection)

    # A constraint única (order_id, type) cobre a corrida entre duas criações
    await commit_or_conflict(db, conflict_message=conflict_message)

    logger.info(f"Vistoria {inspection_type} criada na OS {order.code} ({len(inspection.items)} itens)")
    return inspection


async def update_item(
    db: AsyncSession,
    ctx: CallerContext,
    item_id: str,
    status: str,
    photo_url: Optional[str] = None,
    notes: Optional[str] = None,
    damage_type: Optional[str] = None,
    severity: Optional[str] = None,
) -> InspectionItem:
    """
    Atualiza um item do checklist.

    `photo_url` e `notes` None mantêm o valor atual. `damage_type`/`severity`
    só sobrevivem com status `com_avaria`.
    """
    result = await db.execute(
        select(InspectionItem.inspection_id)
        .join(Inspection, Inspection.id == InspectionItem.inspection_id)
        .join(ServiceOrder, ServiceOrder.id == Inspection.order_id)
        .where(
            InspectionItem.id == item_id,
            ServiceOrder.tenant_id == ctx.tenant_id,
        )
    )
    inspection_id = result.scalar_one_or_none()
    if not inspection_id:
        raise NotFoundError("Item da vistoria não encontrado")

    inspection = await _load_inspection(db, ctx, inspection_id, for_update=True)
    if inspection.is_locked:
        raise InspectionLockedError()

    item = next(i for i in inspection.items if i.id == item_id)

    if status == ItemStatus.COM_AVARIA.value:
        damage_type = damage_type or item.damage_type
        severity = severity or item.severity
        if not damage_type or not severity:
            raise InvalidItemError("Informe o tipo e a gravidade da avaria")
    else:
        damage_type = None
        severity = None

    previous_status = item.status
    item.status = status
    item.damage_type = damage_type
    item.severity = severity
    if photo_url is not None:
        item.photo_url = photo_url
    if notes is not None:
        item.notes = notes

    if status == ItemStatus.PENDENTE.value:
        item.completed_at = None
    elif previous_status == ItemStatus.PENDENTE.value or not item.completed_at:
        item.completed_at = datetime.utcnow()

    # Versiona a vistoria: uma conclusão concorrente perde a corrida
    inspection.touch()
    await commit_or_conflict(db)

    return item


async def complete_inspection(db: AsyncSession, ctx: CallerContext, inspection_id: str) -> Inspection:
    """
    Conclui a vistoria se todos os itens obrigatórios estiverem preenchidos.
    A conclusão é definitiva.
    """
    inspection = await _load_inspection(db, ctx, inspection_id, for_update=True)

    if inspection.is_locked:
        return inspection

    pending_required = inspection.pending_required_items()
    if pending_required:
        raise IncompleteInspectionError(len(pending_required))

    inspection.status = InspectionStatus.CONCLUIDA.value
    if not inspection.signed_at:
        inspection.signed_at = datetime.utcnow()

    await commit_or_conflict(db)

    logger.info(f"Vistoria {inspection.type} ({inspection.id}) concluída")
    return inspection


async def save_signature(
    db: AsyncSession,
    ctx: CallerContext,
    inspection_id: str,
    signature_url: str,
    signed_via: Optional[str] = None,
) -> Inspection:
    """Registra a assinatura do cliente (antes da conclusão)"""
    inspection = await _load_inspection(db, ctx, inspection_id, for_update=True)
    if inspection.is_locked:
        raise InspectionLockedError()

    inspection.signature_url = signature_url
    inspection.signed_via = signed_via or "web"
    inspection.signed_at = datetime.utcnow()

    await commit_or_conflict(db)
    return inspection


async def update_video(
    db: AsyncSession,
    ctx: CallerContext,
    inspection_id: str,
    final_video_url: Optional[str],
) -> Inspection:
    inspection = await _load_inspection(db, ctx, inspection_id, for_update=True)
    if inspection.is_locked:
        raise InspectionLockedError()

    inspection.final_video_url = final_video_url
    inspection.touch()

    await commit_or_conflict(db)
    return inspection


# ============================================================
# MARCAÇÕES DE DANO
# ============================================================

async def add_damages(
    db: AsyncSession,
    ctx: CallerContext,
    inspection_id: str,
    damages: List[dict],
) -> List[tuple]:
    """
    Cria as marcações em lote, na ordem recebida.

    Retorna pares (damage, client_ref) na mesma ordem do envio; o client_ref é
    devolvido para o cliente correlacionar os ids sem depender da posição.
    """
    inspection = await _load_inspection(db, ctx, inspection_id, for_update=True)
    if inspection.is_locked:
        raise InspectionLockedError()

    next_index = max((d.position_index or 0 for d in inspection.damages), default=-1) + 1

    created = []
    for offset, data in enumerate(damages):
        data = dict(data)
        client_ref = data.pop("client_ref", None)
        damage = InspectionDamage(position_index=next_index + offset, **data)
        inspection.damages.append(damage)
        created.append((damage, client_ref))

    inspection.touch()
    await commit_or_conflict(db)

    logger.info(f"Vistoria {inspection.id}: {len(created)} marcações de dano gravadas")
    return created


async def add_damage(db: AsyncSession, ctx: CallerContext, inspection_id: str, damage: dict) -> InspectionDamage:
    created = await add_damages(db, ctx, inspection_id, [damage])
    return created[0][0]


async def remove_damage(db: AsyncSession, ctx: CallerContext, damage_id: str) -> None:
    result = await db.execute(
        select(InspectionDamage.inspection_id)
        .join(Inspection, Inspection.id == InspectionDamage.inspection_id)
        .join(ServiceOrder, ServiceOrder.id == Inspection.order_id)
        .where(
            InspectionDamage.id == damage_id,
            ServiceOrder.tenant_id == ctx.tenant_id,
        )
    )
    inspection_id = result.scalar_one_or_none()
    if not inspection_id:
        raise NotFoundError("Dano não encontrado")

    inspection = await _load_inspection(db, ctx, inspection_id, for_update=True)
    if inspection.is_locked:
        raise InspectionLockedError()

    damage = next(d for d in inspection.damages if d.id == damage_id)
    inspection.damages.remove(damage)
    inspection.touch()

    await commit_or_conflict(db)
