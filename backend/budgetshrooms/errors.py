"""Domain errors raised by the service layer and translated by the routers."""


class InvalidInputError(ValueError):
    """Malformed amount, note, month or credentials."""


class InvalidMonthError(InvalidInputError):
    pass


class InvalidCredentialsError(InvalidInputError):
    pass


class UnauthorizedError(Exception):
    """No session, or the session has expired."""


class NotFoundError(LookupError):
    pass


class ExpenseNotFoundError(NotFoundError):
    pass


class ConflictError(Exception):
    pass
