"""Domain errors raised by service functions and turned into HTTP 400 by views"""


class DomainError(Exception):
    """Base class for business-rule violations"""

    def __init__(self, message):
        super().__init__(message)
        self.message = message


class StockError(DomainError):
    """Stock arithmetic would break an invariant (e.g. negative stock)"""


class TransferError(DomainError):
    """Invalid transfer request or status transition"""


class LedgerError(DomainError):
    """Invalid financial movement"""


class NotaFiscalError(DomainError):
    """Invalid NF-e import or status transition"""
