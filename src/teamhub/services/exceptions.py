# src/teamhub/services/exceptions.py

class ServiceException(Exception):
    """Base exception for all service layer errors."""
    def __init__(self, message: str):
        self.message = message
        super().__init__(self.message)

class NotAuthenticatedError(ServiceException):
    """Raised when an operation needs an actor but no identity is present."""
    pass

class NotFoundError(ServiceException):
    """Raised when a team, member or invitation lookup misses."""
    pass

class PermissionDeniedError(ServiceException):
    """Raised when the actor's team role does not allow the operation."""
    pass

class DuplicateMemberError(ServiceException):
    """Raised when (team_id, user_id) already has a membership row."""
    pass

class OwnershipError(ServiceException):
    """Raised when an operation would leave a team without its owner of record."""
    pass

class InvitationExpiredError(ServiceException):
    pass

class InvitationStateError(ServiceException):
    """Raised when an invitation is no longer pending."""
    pass

class StorageError(ServiceException):
    """Opaque passthrough of an underlying storage/network failure."""
    pass
