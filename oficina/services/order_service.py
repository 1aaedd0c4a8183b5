"""
Oficina Server - Order Service
Abertura, edição, listagem e indicadores das Ordens de Serviço
"""
import logging
import math
from datetime import datetime, timedelta
from typing import List, Optional

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from oficina.core.config import settings
from oficina.core.context import CallerContext
from oficina.core.exceptions import (
    NotFoundError,
    InvalidDiscountError,
    TotalBelowPaidError,
    OrderClosedError,
)
from oficina.database import commit_or_conflict
from oficina.models import ServiceOrder, OrderItem, OrderStatus, DiscountType, Vehicle, User
from oficina.services.order_state_machine import load_order
from oficina.services.payment_service import paid_amount

logger = logging.getLogger(__name__)


def calculate_totals(
    items: List[dict],
    discount_type: Optional[str] = None,
    discount_value: Optional[float] = None,
) -> tuple:
    """
    Calcula (subtotal, total) da OS.

    total = max(0, subtotal - desconto). Desconto fixo não pode passar do
    subtotal e percentual não pode passar de 100.
    """
    subtotal = sum(float(item["price"]) * int(item["quantity"]) for item in items)
    total = subtotal

    if discount_type and discount_value:
        if discount_value < 0:
            raise InvalidDiscountError("O desconto não pode ser negativo")
        if discount_type == DiscountType.PERCENTAGE.value:
            if discount_value > 100:
                raise InvalidDiscountError("Desconto percentual deve estar entre 0 e 100")
            total -= subtotal * (discount_value / 100)
        elif discount_type == DiscountType.FIXED.value:
            if discount_value > subtotal:
                raise InvalidDiscountError(
                    f"Desconto de R$ {discount_value:.2f} maior que o subtotal de R$ {subtotal:.2f}"
                )
            total -= discount_value
        else:
            raise InvalidDiscountError(f"Tipo de desconto inválido: {discount_type}")

    return round(subtotal, 2), round(max(0.0, total), 2)


def _build_items(items: List[dict]) -> List[OrderItem]:
    return [
        OrderItem(
            position=index,
            service_id=item.get("service_id"),
            custom_name=item.get("custom_name"),
            price=item["price"],
            quantity=item.get("quantity", 1),
            notes=item.get("notes"),
        )
        for index, item in enumerate(items)
    ]


async def _ensure_tenant_user(db: AsyncSession, ctx: CallerContext, user_id: str):
    result = await db.execute(
        select(User.id).where(User.id == user_id, User.tenant_id == ctx.tenant_id)
    )
    if not result.scalar_one_or_none():
        raise NotFoundError("Responsável não encontrado")


async def create_order(
    db: AsyncSession,
    ctx: CallerContext,
    vehicle_id: str,
    scheduled_at: datetime,
    assigned_to_id: str,
    items: List[dict],
    discount_type: Optional[str] = None,
    discount_value: Optional[float] = None,
) -> ServiceOrder:
    """Abre uma OS em AGENDADO"""
    subtotal, total = calculate_totals(items, discount_type, discount_value)

    result = await db.execute(
        select(Vehicle).where(Vehicle.id == vehicle_id, Vehicle.tenant_id == ctx.tenant_id)
    )
    vehicle = result.scalar_one_or_none()
    if not vehicle:
        raise NotFoundError("Veículo não encontrado")

    await _ensure_tenant_user(db, ctx, assigned_to_id)

    order = ServiceOrder(
        tenant_id=ctx.tenant_id,
        code=ServiceOrder.generate_code(),
        vehicle_id=vehicle.id,
        vehicle=vehicle,
        customer_id=vehicle.customer_id,
        assigned_to_id=assigned_to_id,
        created_by_id=ctx.user_id,
        scheduled_at=scheduled_at,
        status=OrderStatus.AGENDADO.value,
        subtotal=subtotal,
        discount_type=discount_type,
        discount_value=discount_value,
        total=total,
        items=_build_items(items),
    )
    db.add(order)
    await commit_or_conflict(db)

    logger.info(f"OS {order.code} aberta (total R$ {total:.2f})")
    return order


async def get_order(db: AsyncSession, ctx: CallerContext, order_id: str) -> tuple:
    """Retorna (order, paid_amount)"""
    order = await load_order(db, ctx, order_id)
    return order, await paid_amount(db, order.id)


async def list_orders(
    db: AsyncSession,
    ctx: CallerContext,
    page: int = 1,
    limit: int = 10,
    status: Optional[List[str]] = None,
    date_from: Optional[datetime] = None,
    date_to: Optional[datetime] = None,
) -> dict:
    """Lista paginada, ordenada pela data agendada"""
    filters = [ServiceOrder.tenant_id == ctx.tenant_id]
    if ctx.is_restricted:
        filters.append(ServiceOrder.assigned_to_id == ctx.user_id)
    if status:
        filters.append(ServiceOrder.status.in_(status))
    if date_from:
        filters.append(ServiceOrder.scheduled_at >= date_from)
    if date_to:
        filters.append(ServiceOrder.scheduled_at <= date_to)

    count_result = await db.execute(select(func.count(ServiceOrder.id)).where(*filters))
    count = count_result.scalar_one()

    result = await db.execute(
        select(ServiceOrder)
        .where(*filters)
        .order_by(ServiceOrder.scheduled_at.asc())
        .offset((page - 1) * limit)
        .limit(limit)
    )
    orders = result.scalars().all()

    return {
        "orders": [o.to_dict() for o in orders],
        "total": count,
        "pages": math.ceil(count / limit) if limit else 0,
    }


async def update_order(
    db: AsyncSession,
    ctx: CallerContext,
    order_id: str,
    changes: dict,
) -> ServiceOrder:
    """
    Edita agenda, responsável, desconto e itens, recalculando os totais.

    OS encerradas não podem ser editadas, e o novo total não pode ficar abaixo
    do que já foi pago.
    """
    order = await load_order(db, ctx, order_id, for_update=True)

    if order.is_terminal:
        raise OrderClosedError(order.status)

    if changes.get("assigned_to_id"):
        await _ensure_tenant_user(db, ctx, changes["assigned_to_id"])

    items = changes.get("items")
    items_to_calc = items if items is not None else [
        {"price": i.price, "quantity": i.quantity} for i in order.items
    ]

    if "discount_type" in changes:
        discount_type = changes["discount_type"]
    else:
        discount_type = order.discount_type
    discount_value = (
        changes["discount_value"] if changes.get("discount_value") is not None
        else order.discount_value
    )
    # discount_type null remove o desconto
    if discount_type is None:
        discount_value = None

    subtotal, total = calculate_totals(items_to_calc, discount_type, discount_value)

    already_paid = await paid_amount(db, order.id)
    if already_paid - total > settings.PAYMENT_EPSILON:
        raise TotalBelowPaidError(total, already_paid)

    if items is not None:
        order.items = _build_items(items)
    if changes.get("scheduled_at"):
        order.scheduled_at = changes["scheduled_at"]
    if changes.get("assigned_to_id"):
        order.assigned_to_id = changes["assigned_to_id"]

    order.discount_type = discount_type
    order.discount_value = discount_value
    order.subtotal = subtotal
    order.total = total
    order.touch()

    await commit_or_conflict(db)

    logger.info(f"OS {order.code} atualizada (total R$ {total:.2f})")
    return order


async def get_stats(db: AsyncSession, ctx: CallerContext) -> dict:
    """Indicadores do painel: OS do dia, em andamento e faturamento do mês"""
    filters = [ServiceOrder.tenant_id == ctx.tenant_id]
    if ctx.is_restricted:
        filters.append(ServiceOrder.assigned_to_id == ctx.user_id)

    today = datetime.utcnow().replace(hour=0, minute=0, second=0, microsecond=0)
    tomorrow = today + timedelta(days=1)
    month_start = today.replace(day=1)

    today_orders = await db.execute(
        select(func.count(ServiceOrder.id)).where(
            *filters,
            ServiceOrder.scheduled_at >= today,
            ServiceOrder.scheduled_at < tomorrow,
        )
    )
    in_progress = await db.execute(
        select(func.count(ServiceOrder.id)).where(
            *filters,
            ServiceOrder.status.in_([OrderStatus.EM_VISTORIA.value, OrderStatus.EM_EXECUCAO.value]),
        )
    )
    month_revenue = await db.execute(
        select(func.coalesce(func.sum(ServiceOrder.total), 0.0)).where(
            *filters,
            ServiceOrder.status == OrderStatus.CONCLUIDO.value,
            ServiceOrder.completed_at >= month_start,
        )
    )

    return {
        "today_orders": today_orders.scalar_one(),
        "in_progress": in_progress.scalar_one(),
        "month_revenue": round(float(month_revenue.scalar_one()), 2),
    }


async def recent_orders(db: AsyncSession, ctx: CallerContext, limit: int = 5) -> List[ServiceOrder]:
    query = select(ServiceOrder).where(ServiceOrder.tenant_id == ctx.tenant_id)
    if ctx.is_restricted:
        query = query.where(ServiceOrder.assigned_to_id == ctx.user_id)

    result = await db.execute(query.order_by(ServiceOrder.created_at.desc()).limit(limit))
    return list(result.scalars().all())
