"""Exceptions raised by the service layer and mapped to HTTP responses in routes.py"""


class InvalidExpenseError(ValueError):
    """Missing or malformed input. Maps to 400."""

    def __init__(self, message: str, errors: list | None = None):
        super().__init__(message)
        self.message = message
        self.errors = errors or []


class ExpenseNotFoundError(LookupError):
    """No expense owned by the requester matched. Maps to 404."""

    def __init__(self, message: str = "Expense not found"):
        super().__init__(message)
        self.message = message
