"""
Oficina Server - Order State Machine
Transições de status da OS e a trava de conclusão pela vistoria de saída.

A conclusão (CONCLUIDO) tem dois caminhos: o pedido explícito do usuário e o
pagamento que quita a OS. Os dois passam por `try_complete`, que aplica a mesma
trava: a vistoria `final` precisa existir e estar `concluida`.
"""
import logging
from datetime import datetime
from typing import Dict, List

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from oficina.core.context import CallerContext
from oficina.core.exceptions import (
    NotFoundError,
    IllegalTransitionError,
    CompletionBlockedError,
)
from oficina.database import commit_or_conflict
from oficina.models import (
    ServiceOrder,
    OrderStatus,
    Inspection,
    InspectionType,
    InspectionStatus,
)

logger = logging.getLogger(__name__)

# Transições válidas (origem -> destinos permitidos)
VALID_TRANSITIONS: Dict[str, List[str]] = {
    OrderStatus.AGENDADO.value: [OrderStatus.EM_VISTORIA.value, OrderStatus.CANCELADO.value],
    OrderStatus.EM_VISTORIA.value: [OrderStatus.EM_EXECUCAO.value, OrderStatus.CANCELADO.value],
    OrderStatus.EM_EXECUCAO.value: [OrderStatus.AGUARDANDO_PAGAMENTO.value, OrderStatus.CANCELADO.value],
    OrderStatus.AGUARDANDO_PAGAMENTO.value: [OrderStatus.CONCLUIDO.value],
    OrderStatus.CONCLUIDO.value: [],
    OrderStatus.CANCELADO.value: [],
}


def allowed_transitions(current: str) -> List[str]:
    """Destinos permitidos a partir do status atual"""
    return list(VALID_TRANSITIONS.get(current, []))


def can_transition(current: str, target: str) -> bool:
    return target in VALID_TRANSITIONS.get(current, [])


async def load_order(
    db: AsyncSession,
    ctx: CallerContext,
    order_id: str,
    for_update: bool = False,
) -> ServiceOrder:
    """
    Busca a OS no tenant do chamador.

    MEMBER só enxerga OS atribuídas a ele. Tenant errado, OS de outro usuário e
    OS inexistente geram o mesmo NotFoundError.
    """
    query = select(ServiceOrder).where(
        ServiceOrder.id == order_id,
        ServiceOrder.tenant_id == ctx.tenant_id,
    )
    if ctx.is_restricted:
        query = query.where(ServiceOrder.assigned_to_id == ctx.user_id)
    if for_update:
        query = query.with_for_update()

    result = await db.execute(query.execution_options(populate_existing=True))
    order = result.scalar_one_or_none()

    if not order:
        raise NotFoundError("Ordem de serviço não encontrada")

    return order


async def final_inspection_concluded(db: AsyncSession, order_id: str) -> bool:
    """Verifica se a vistoria de saída da OS está concluída"""
    result = await db.execute(
        select(Inspection.status).where(
            Inspection.order_id == order_id,
            Inspection.type == InspectionType.FINAL.value,
        )
    )
    status = result.scalar_one_or_none()
    return status == InspectionStatus.CONCLUIDA.value


async def try_complete(db: AsyncSession, order: ServiceOrder, raise_on_block: bool = True) -> bool:
    """
    Leva a OS para CONCLUIDO se a tabela de transições e a vistoria de saída
    permitirem.

    Com raise_on_block=False (caminho do pagamento) a OS fica exatamente como
    estava e a função retorna False.
    """
    target = OrderStatus.CONCLUIDO.value

    if not can_transition(order.status, target):
        if raise_on_block:
            raise IllegalTransitionError(order.status, target, allowed_transitions(order.status))
        logger.info(f"OS {order.code} em {order.status}: conclusão automática não se aplica")
        return False

    if not await final_inspection_concluded(db, order.id):
        if raise_on_block:
            raise CompletionBlockedError()
        logger.info(f"OS {order.code} quitada, aguardando vistoria de saída para concluir")
        return False

    order.status = target
    order.completed_at = datetime.utcnow()
    return True


async def request_transition(
    db: AsyncSession,
    ctx: CallerContext,
    order_id: str,
    target_status: str,
) -> ServiceOrder:
    """
    Transição solicitada pelo usuário.

    Lê, valida e grava sob lock da linha da OS; se outra requisição alterou a
    OS no meio do caminho, a checagem de versão gera um 409 reenviável.
    """
    order = await load_order(db, ctx, order_id, for_update=True)
    current = order.status

    if not can_transition(current, target_status):
        logger.warning(
            f"Transição rejeitada na OS {order.code}: {current} -> {target_status}"
        )
        raise IllegalTransitionError(current, target_status, allowed_transitions(current))

    if target_status == OrderStatus.CONCLUIDO.value:
        await try_complete(db, order, raise_on_block=True)
    else:
        order.status = target_status
        # started_at só é gravado na primeira entrada em execução
        if target_status == OrderStatus.EM_EXECUCAO.value and not order.started_at:
            order.started_at = datetime.utcnow()

    await commit_or_conflict(db)

    logger.info(f"OS {order.code}: {current} -> {order.status} (por {ctx.user_id})")
    return order
