"""Domain exceptions raised by services.

Every exception carries the HTTP status it maps to, so the API layer
renders all of them with a single exception handler.
"""


class DomainError(Exception):
    """Base exception for business rule violations."""
    status_code = 400
    default_message = "request could not be processed"

    def __init__(self, message: str = None):
        super().__init__(message or self.default_message)

    @property
    def message(self) -> str:
        return str(self)


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""
    status_code = 400
    default_message = "invalid request"


class AuthenticationError(DomainError):
    """Raised when credentials or device keys are invalid."""
    status_code = 401
    default_message = "invalid credentials"


class PermissionDeniedError(DomainError):
    """Raised when the caller lacks permission for an action."""
    status_code = 403
    default_message = "permission denied"


class NotFoundError(DomainError):
    status_code = 404
    default_message = "the requested entity was not found"


class ConflictError(DomainError):
    status_code = 409
    default_message = "conflicting state"


class RoomNotFoundError(NotFoundError):
    default_message = "room not found"


class GroupNotFoundError(NotFoundError):
    default_message = "group not found"


class ActivityNotFoundError(NotFoundError):
    default_message = "activity not found"


class CategoryNotFoundError(NotFoundError):
    default_message = "category not found"


class ActiveGroupNotFoundError(NotFoundError):
    default_message = "active group not found"


class SupervisionNotFoundError(NotFoundError):
    default_message = "supervision not found"


class VisitNotFoundError(NotFoundError):
    default_message = "visit not found"


class StudentNotFoundError(NotFoundError):
    default_message = "student not found"


class StaffNotFoundError(NotFoundError):
    default_message = "staff member not found"


class PersonNotFoundError(NotFoundError):
    default_message = "person not found"


class EntryNotFoundError(NotFoundError):
    default_message = "feedback entry not found"


class DeviceNotFoundError(NotFoundError):
    default_message = "device not found"


class DuplicateRoomError(ConflictError):
    default_message = "room with this name already exists"


class DuplicateNameError(ConflictError):
    default_message = "name already exists"


class DuplicateTagError(ConflictError):
    default_message = "RFID tag is already assigned to another person"


class DuplicateEmailError(ConflictError):
    default_message = "account with this email already exists"


class RoomConflictError(ConflictError):
    default_message = "room already has an active group"


class AlreadySupervisingError(ConflictError):
    default_message = "staff member is already supervising this group"


class NotSupervisingError(ConflictError):
    default_message = "user is not currently supervising the Schulhof"


class StudentAlreadyCheckedInError(ConflictError):
    default_message = "student already has an active visit"


class CapacityExceededError(ConflictError):
    default_message = "capacity exceeded"
