"""
Oficina Server - Unit of Work
Commit atômico das sequências ler-validar-escrever.

As operações que dependem de uma pré-condição (saldo, itens obrigatórios,
status atual) carregam a linha com SELECT ... FOR UPDATE e gravam com a
checagem de versão do SQLAlchemy (version_id_col). Se outra requisição venceu a
corrida, o commit falha com StaleDataError, a sessão é revertida e o cliente
recebe um 409 "concurrent_modification" que pode ser reenviado.
"""
import logging
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from oficina.core.exceptions import ConcurrentModificationError, ConflictError

logger = logging.getLogger(__name__)


async def commit_or_conflict(db: AsyncSession, conflict_message: str = None):
    """
    Faz commit da unidade de trabalho.

    StaleDataError vira ConcurrentModificationError; IntegrityError vira
    ConflictError quando `conflict_message` é informado (constraints únicas).
    """
    try:
        await db.commit()
    except StaleDataError as e:
        await db.rollback()
        logger.warning(f"Conflito de concorrência detectado: {e}")
        raise ConcurrentModificationError() from e
    except IntegrityError as e:
        await db.rollback()
        if conflict_message is None:
            raise
        logger.warning(f"Violação de unicidade: {e.orig}")
        raise ConflictError(conflict_message) from e
