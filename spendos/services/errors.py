"""
Domain errors raised by the budget ledger and the spend workflow
The API layer turns them into the standard error envelope (see api/errors.py)
"""


class DomainError(Exception):
    """Base for business rule violations"""
    status_code = 409
    error = "Conflict"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class BudgetError(DomainError):
    """Reservation refused by the budget ledger"""


class InvalidAmountError(BudgetError):
    status_code = 400
    error = "Bad Request"


class AccountNotActiveError(BudgetError):
    pass


class PerTxLimitExceededError(BudgetError):
    pass


class PeriodBudgetExceededError(BudgetError):
    pass


class DailyLimitExceededError(BudgetError):
    pass


class InvalidTransitionError(DomainError):
    """Spend request status change not allowed by the workflow"""


class RetryableExecutionError(Exception):
    """Execution hit a transient error and should be retried by the queue"""


class BurnOutcomeUnknownError(Exception):
    """Gateway may have accepted the burn intent but the response was lost"""
