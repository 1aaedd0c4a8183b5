"""
Oficina Server - Orders API
Ordens de Serviço: abertura, edição, transições de status e pagamentos
"""
from datetime import datetime
from typing import List, Optional
from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from oficina.database import get_db
from oficina.models import OrderStatus
from oficina.schemas import (
    OrderCreate,
    OrderUpdate,
    OrderStatusUpdate,
    PaymentCreate,
    OrderResponse,
    OrderListResponse,
    OrderStatsResponse,
    PaymentResponse
)
from oficina.core import limiter, settings
from oficina.core.context import CallerContext
from oficina.api.deps import get_caller_context
from oficina.services import order_service, order_state_machine, payment_service

router = APIRouter(prefix="/orders", tags=["Orders"])


@router.post("", response_model=OrderResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit(settings.RATE_LIMIT_DEFAULT)
async def create_order(
    request: Request,
    data: OrderCreate,
    db: AsyncSession = Depends(get_db),
    ctx: CallerContext = Depends(get_caller_context)
):
    """Abre uma nova OS (status AGENDADO)"""
    order = await order_service.create_order(
        db,
        ctx,
        vehicle_id=data.vehicle_id,
        scheduled_at=data.scheduled_at,
        assigned_to_id=data.assigned_to_id,
        items=[i.model_dump() for i in data.items],
        discount_type=data.discount_type.value if data.discount_type else None,
        discount_value=data.discount_value,
    )
    return order.to_dict(paid_amount=0.0)


@router.get("", response_model=OrderListResponse)
async def list_orders(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    status_filter: Optional[List[OrderStatus]] = Query(None, alias="status"),
    date_from: Optional[datetime] = Query(None),
    date_to: Optional[datetime] = Query(None),
    db: AsyncSession = Depends(get_db),
    ctx: CallerContext = Depends(get_caller_context)
):
    """Lista as OS do tenant (MEMBER vê apenas as atribuídas a ele)"""
    return await order_service.list_orders(
        db,
        ctx,
        page=page,
        limit=limit,
        status=[s.value for s in status_filter] if status_filter else None,
        date_from=date_from,
        date_to=date_to,
    )


@router.get("/stats", response_model=OrderStatsResponse)
async def get_stats(
    db: AsyncSession = Depends(get_db),
    ctx: CallerContext = Depends(get_caller_context)
):
    """Indicadores do painel"""
    return await order_service.get_stats(db, ctx)


@router.get("/recent", response_model=List[OrderResponse])
async def get_recent(
    limit: int = Query(5, ge=1, le=50),
    db: AsyncSession = Depends(get_db),
    ctx: CallerContext = Depends(get_caller_context)
):
    """OS abertas mais recentemente"""
    orders = await order_service.recent_orders(db, ctx, limit=limit)
    return [o.to_dict() for o in orders]


@router.get("/{order_id}", response_model=OrderResponse)
async def get_order(
    order_id: str,
    db: AsyncSession = Depends(get_db),
    ctx: CallerContext = Depends(get_caller_context)
):
    """Retorna a OS com valor pago e saldo"""
    order, paid = await order_service.get_order(db, ctx, order_id)
    return order.to_dict(paid_amount=paid)


@router.put("/{order_id}", response_model=OrderResponse)
@limiter.limit(settings.RATE_LIMIT_DEFAULT)
async def update_order(
    request: Request,
    order_id: str,
    data: OrderUpdate,
    db: AsyncSession = Depends(get_db),
    ctx: CallerContext = Depends(get_caller_context)
):
    """Atualiza dados da OS e recalcula os totais"""
    changes = data.model_dump(exclude_unset=True)
    if data.discount_type is not None:
        changes["discount_type"] = data.discount_type.value
    if data.items is not None:
        changes["items"] = [i.model_dump() for i in data.items]

    order = await order_service.update_order(db, ctx, order_id, changes)
    paid = await payment_service.paid_amount(db, order.id)
    return order.to_dict(paid_amount=paid)


@router.patch("/{order_id}/status", response_model=OrderResponse)
@limiter.limit(settings.RATE_LIMIT_DEFAULT)
async def update_status(
    request: Request,
    order_id: str,
    data: OrderStatusUpdate,
    db: AsyncSession = Depends(get_db),
    ctx: CallerContext = Depends(get_caller_context)
):
    """
    Muda o status da OS seguindo a tabela de transições.
    CONCLUIDO exige a vistoria de saída concluída.
    """
    order = await order_state_machine.request_transition(db, ctx, order_id, data.status.value)
    return order.to_dict()


@router.post("/{order_id}/payments", response_model=PaymentResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit(settings.RATE_LIMIT_DEFAULT)
async def add_payment(
    request: Request,
    order_id: str,
    data: PaymentCreate,
    db: AsyncSession = Depends(get_db),
    ctx: CallerContext = Depends(get_caller_context)
):
    """
    Registra um pagamento.
    Ao quitar a OS, conclui automaticamente se a vistoria de saída estiver concluída.
    """
    payment, order = await payment_service.add_payment(
        db,
        ctx,
        order_id,
        amount=data.amount,
        method=data.method.value,
        paid_at=data.paid_at,
        notes=data.notes,
    )
    return {**payment.to_dict(), "order_status": order.status}


@router.get("/{order_id}/payments", response_model=List[PaymentResponse])
async def list_payments(
    order_id: str,
    db: AsyncSession = Depends(get_db),
    ctx: CallerContext = Depends(get_caller_context)
):
    """Pagamentos da OS"""
    payments = await payment_service.list_payments(db, ctx, order_id)
    return [p.to_dict() for p in payments]
