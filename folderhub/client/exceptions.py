"""Exceptions raised by the collaborator clients."""


class ApiException(Exception):
    """Error talking to a collaborator service."""


class UnauthorizedException(ApiException):
    """The collaborator rejected our credentials."""


class ForbiddenException(ApiException):
    """The collaborator refused the request."""


class NotFoundException(ApiException):
    """The requested resource does not exist on the collaborator."""
