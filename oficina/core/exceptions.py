"""
Oficina Server - Domain Errors
Erros do motor de ciclo de vida da OS.

Cada erro é um HTTPException cujo `detail` é um dicionário com `kind`,
`message` e os campos estruturados necessários para o cliente montar uma
mensagem precisa (saldo exato, quantidade de itens pendentes, próximos status
permitidos).
"""
from typing import List, Optional
from fastapi import HTTPException, status


class OrderEngineError(HTTPException):
    """Base dos erros de domínio"""
    kind = "error"
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str, **fields):
        self.message = message
        self.fields = fields
        detail = {"kind": self.kind, "message": message, **fields}
        super().__init__(status_code=self.status_code, detail=detail)


class NotFoundError(OrderEngineError):
    """Entidade inexistente ou de outro tenant (mesma resposta nos dois casos)"""
    kind = "not_found"
    status_code = status.HTTP_404_NOT_FOUND


class ConflictError(OrderEngineError):
    kind = "conflict"
    status_code = status.HTTP_409_CONFLICT


class ConcurrentModificationError(OrderEngineError):
    """Outro request alterou a mesma OS/vistoria entre a leitura e a escrita"""
    kind = "concurrent_modification"
    status_code = status.HTTP_409_CONFLICT

    def __init__(self, message: str = "Registro alterado por outra operação. Tente novamente."):
        super().__init__(message, retryable=True)


class IllegalTransitionError(OrderEngineError):
    kind = "illegal_transition"

    def __init__(self, current: str, target: str, allowed: List[str]):
        super().__init__(
            f"Não é possível mudar de {current} para {target}",
            current=current,
            target=target,
            allowed=allowed,
        )


class CompletionBlockedError(OrderEngineError):
    kind = "completion_blocked"

    def __init__(self, message: Optional[str] = None):
        super().__init__(
            message or (
                "A OS só pode ser concluída após finalizar a Vistoria de Saída. "
                "Complete todos os itens obrigatórios da vistoria antes de concluir."
            )
        )


class AmountExceedsBalanceError(OrderEngineError):
    kind = "amount_exceeds_balance"

    def __init__(self, balance: float):
        balance = round(balance, 2)
        super().__init__(
            f"Valor excede o saldo devedor de R$ {balance:.2f}",
            balance=balance,
        )


class InspectionLockedError(OrderEngineError):
    kind = "inspection_locked"

    def __init__(self):
        super().__init__("Vistoria já concluída não pode ser alterada")


class IncompleteInspectionError(OrderEngineError):
    kind = "incomplete"

    def __init__(self, missing_count: int):
        super().__init__(
            f"Existem {missing_count} itens obrigatórios pendentes",
            missing_count=missing_count,
        )


class InvalidDiscountError(OrderEngineError):
    kind = "invalid_discount"


class TotalBelowPaidError(OrderEngineError):
    kind = "total_below_paid"

    def __init__(self, total: float, paid: float):
        super().__init__(
            f"O novo total (R$ {total:.2f}) é menor que o valor já pago (R$ {paid:.2f})",
            total=round(total, 2),
            paid=round(paid, 2),
        )


class OrderClosedError(OrderEngineError):
    kind = "order_closed"

    def __init__(self, status_value: str):
        super().__init__(
            f"Ordem de serviço com status {status_value} não aceita esta operação",
            status=status_value,
        )


class InvalidItemError(OrderEngineError):
    kind = "invalid_item"


class ForbiddenError(OrderEngineError):
    kind = "forbidden"
    status_code = status.HTTP_403_FORBIDDEN


class UnauthorizedError(OrderEngineError):
    kind = "unauthorized"
    status_code = status.HTTP_401_UNAUTHORIZED
