class ServiceError(ValueError):
    """Base for every error a service reports back to the caller.

    Raised before any balance is touched, or inside ``atomic()`` so the whole
    operation is rolled back.
    """

    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(ServiceError):
    status_code = 400


class NotFoundError(ServiceError):
    status_code = 404


class BusinessRuleError(ServiceError):
    status_code = 409


class AuthorizationError(ServiceError):
    status_code = 403
