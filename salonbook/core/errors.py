"""Domain errors raised by the services and mapped to HTTP in ``salonbook.main``."""


class DomainError(Exception):
    """Erro de regra de negócio genérico."""

    status_code = 400

    def __init__(self, detail: str):
        self.detail = detail
        super().__init__(detail)


class NotFoundError(DomainError):
    status_code = 404


class ForbiddenError(DomainError):
    status_code = 403


class ValidationFailure(DomainError):
    status_code = 400


class ConflictError(DomainError):
    status_code = 409


class BookingCodeConflict(ConflictError):
    def __init__(self, code: str):
        self.code = code
        super().__init__(f"Booking code {code} is already taken")
