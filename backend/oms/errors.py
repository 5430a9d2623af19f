# Overview: Service error taxonomy shared by services and routes.

"""
Service errors.

Every service raises one of these; routes translate them into a JSON body
of the form {"error": message, "details": {...}} with the class status code.
"""


class ServiceError(Exception):
    """Base class for order-management service failures."""
    status_code = 400

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}

    def to_dict(self) -> dict:
        body = {"error": str(self)}
        if self.details:
            body["details"] = self.details
        return body


class InvalidInputError(ServiceError):
    """Missing required field, empty item list, non-positive quantity."""
    status_code = 400


class AuthFailedError(ServiceError):
    """Confirmation credential mismatch on a destructive action."""
    status_code = 401


class ForbiddenError(ServiceError):
    """Role or ownership violation."""
    status_code = 403


class NotFoundError(ServiceError):
    """Referenced customer, order, product or user is absent."""
    status_code = 404


class ConflictError(ServiceError):
    """Natural-key collision (e.g. duplicate phone on create)."""
    status_code = 409
