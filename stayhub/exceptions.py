"""Errors raised by the service layer and rendered by the API error handler"""


class APIError(Exception):
    status_code = 400

    def __init__(self, message, status_code=None, errors=None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        self.errors = errors


class ValidationError(APIError):
    status_code = 400


class PermissionDeniedError(APIError):
    status_code = 403


class NotFoundError(APIError):
    status_code = 404


class ConflictError(APIError):
    status_code = 409


class PaymentGatewayError(APIError):
    status_code = 502
