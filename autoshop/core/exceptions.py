# autoshop/core/exceptions.py

"""
Иерархия ошибок ядра.

- ValidationError: некорректные входные данные, не повторяется.
- BusinessDenial: бизнес-отказ (например, не хватает монет).
- NotFound: нет рекомендации, товара или пользователя.
- StorageUnavailable: упали и основное, и резервное хранилище.
- UpstreamPaymentFailure: ошибка платежного шлюза.
"""

from typing import Any, Dict


class AutoshopError(Exception):
    """Базовая ошибка. `message` можно показывать пользователю."""

    def __init__(self, message: str, details: Dict[str, Any] | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)


class ValidationError(AutoshopError):
    pass


class InvalidAmount(ValidationError):
    def __init__(self, amount: Any):
        super().__init__(f"Amount must be a positive integer, got {amount!r}", {"amount": amount})


class InvalidKind(ValidationError):
    def __init__(self, kind: Any, allowed):
        super().__init__(
            f"Invalid transaction kind for credit: {kind!r}. Must be one of: {', '.join(sorted(allowed))}",
            {"kind": kind},
        )


class BusinessDenial(AutoshopError):
    pass


class InsufficientFunds(BusinessDenial):
    def __init__(self, user_id: int, balance: int, required: int):
        self.user_id = user_id
        self.balance = balance
        self.required = required
        super().__init__(
            f"Insufficient balance. User has {balance} coins, attempting to spend {required}",
            {"user_id": user_id, "balance": balance, "required": required},
        )


class NotFound(AutoshopError):
    pass


class StorageUnavailable(AutoshopError):
    def __init__(self, operation: str, cause: BaseException | None = None):
        self.operation = operation
        message = f"Storage unavailable during '{operation}'"
        if cause is not None:
            message = f"{message}: {cause}"
        super().__init__(message, {"operation": operation})


class UpstreamPaymentFailure(AutoshopError):
    pass
