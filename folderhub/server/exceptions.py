"""Exceptions raised by the folder services."""


class FolderServiceException(Exception):
    """Base exception raised by the folder services."""

    error_code = "E500"
    status = 500


class InvalidRequestException(FolderServiceException):
    """The request is malformed or has invalid values."""

    error_code = "E400"
    status = 400


class ForbiddenException(FolderServiceException):
    """The caller is not allowed to perform the action."""

    error_code = "E403"
    status = 403


class NotFoundException(FolderServiceException):
    """A folder, share or user does not exist or is not owned by the caller."""

    error_code = "E404"
    status = 404


class ConflictException(FolderServiceException):
    """The action would break a tree or sharing invariant."""

    error_code = "E409"
    status = 409


class ServiceUnavailableException(FolderServiceException):
    """A collaborator service could not be reached."""

    error_code = "E503"
    status = 503
