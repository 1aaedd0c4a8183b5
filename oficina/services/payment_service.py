"""
Oficina Server - Payment Reconciliation
Saldo da OS, validação de novos pagamentos e conclusão automática ao quitar.
"""
import logging
from datetime import datetime
from typing import List, Optional

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from oficina.core.config import settings
from oficina.core.context import CallerContext
from oficina.core.exceptions import AmountExceedsBalanceError, OrderClosedError
from oficina.database import commit_or_conflict
from oficina.models import Payment, OrderStatus
from oficina.services.order_state_machine import load_order, try_complete

logger = logging.getLogger(__name__)


def compute_balance(total: float, paid: float) -> float:
    """Saldo devedor = total - soma dos pagamentos"""
    return (total or 0) - (paid or 0)


def is_paid_in_full(total: float, paid: float) -> bool:
    return compute_balance(total, paid) < settings.PAYMENT_EPSILON


async def paid_amount(db: AsyncSession, order_id: str) -> float:
    """Soma dos pagamentos registrados na OS"""
    result = await db.execute(
        select(func.coalesce(func.sum(Payment.amount), 0.0)).where(Payment.order_id == order_id)
    )
    return float(result.scalar_one())


async def add_payment(
    db: AsyncSession,
    ctx: CallerContext,
    order_id: str,
    amount: float,
    method: str,
    paid_at: Optional[datetime] = None,
    notes: Optional[str] = None,
) -> tuple:
    """
    Registra um pagamento.

    Rejeita valores acima do saldo (com tolerância de 1 centavo). Se o saldo
    chegar a zero, tenta concluir a OS pelo mesmo caminho da transição
    explícita; sem vistoria de saída concluída a OS fica como está, sem erro
    para quem pagou.

    Retorna (payment, order).
    """
    order = await load_order(db, ctx, order_id, for_update=True)

    if order.status == OrderStatus.CANCELADO.value:
        raise OrderClosedError(order.status)

    current_paid = await paid_amount(db, order.id)
    current_balance = compute_balance(order.total, current_paid)

    if amount - current_balance > settings.PAYMENT_EPSILON:
        logger.warning(
            f"Pagamento de R$ {amount:.2f} rejeitado na OS {order.code}: "
            f"saldo R$ {current_balance:.2f}"
        )
        raise AmountExceedsBalanceError(current_balance)

    payment = Payment(
        order_id=order.id,
        method=method,
        amount=amount,
        paid_at=paid_at or datetime.utcnow(),
        received_by=ctx.user_id,
        notes=notes,
    )
    db.add(payment)

    # Grava a OS junto para que dois pagamentos simultâneos não passem ambos
    # pela checagem de saldo (checagem de versão no UPDATE)
    order.touch()

    completed = False
    if is_paid_in_full(order.total, current_paid + amount):
        completed = await try_complete(db, order, raise_on_block=False)

    await commit_or_conflict(db)

    logger.info(
        f"Pagamento R$ {amount:.2f} ({method}) registrado na OS {order.code}"
        + (" - OS concluída automaticamente" if completed else "")
    )
    return payment, order


async def list_payments(db: AsyncSession, ctx: CallerContext, order_id: str) -> List[Payment]:
    """Pagamentos da OS em ordem cronológica"""
    order = await load_order(db, ctx, order_id)
    result = await db.execute(
        select(Payment)
        .where(Payment.order_id == order.id)
        .order_by(Payment.paid_at, Payment.created_at)
    )
    return list(result.scalars().all())
