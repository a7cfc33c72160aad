# connectsphere/core/exceptions.py
"""
Domain exceptions raised by the services.

They subclass the built-in types the routes already catch, so a handler
written against ValueError or PermissionError keeps working.
"""


class NotFoundError(ValueError):
    """A referenced document (user, post, comment, request, group) does not exist."""


class ConflictError(Exception):
    """The requested transition is not valid from the current state."""


class AuthenticationError(Exception):
    """The identity provider rejected the credentials."""

    def __init__(self, code: str, message: str = None):
        self.code = code
        super().__init__(message or code)


class PartialDeleteError(RuntimeError):
    """
    A cascade delete stopped part-way.

    The store is left partially mutated; ``deleted`` and ``remaining`` report
    how many child documents were removed before the failure.
    """

    def __init__(self, message: str, deleted: int, remaining: int):
        self.deleted = deleted
        self.remaining = remaining
        super().__init__(message)
