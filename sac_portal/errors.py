"""Exceptions raised by the scheduling and grading services.

Validation errors are raised before anything is written. Persistence errors
wrap failures of the underlying document store.
"""


class PortalError(Exception):
    """Base class for every error the services raise on purpose."""


class ValidationError(PortalError):
    field = None

    def __init__(self, message, field=None):
        super().__init__(message)
        if field is not None:
            self.field = field


class InvalidRoundError(ValidationError):
    field = "round"


class SchedulingError(ValidationError):
    pass


class InvalidDateError(SchedulingError):
    field = "date"


class SlotUnavailableError(SchedulingError):
    field = "slot"


class MissingRoomError(SchedulingError):
    field = "room"


class PanelTooSmallError(SchedulingError):
    field = "panel"


class UnknownCandidateError(SchedulingError):
    field = "candidate"


class PersistenceError(PortalError):
    pass


class DocumentNotFound(PersistenceError):
    def __init__(self, collection, doc_id):
        super().__init__(f"{collection}/{doc_id} does not exist")
        self.collection = collection
        self.doc_id = doc_id


class VersionConflict(PersistenceError):
    def __init__(self, collection, doc_id, expected, actual):
        super().__init__(f"{collection}/{doc_id}: expected version {expected}, found {actual}")
        self.expected = expected
        self.actual = actual


class ConcurrentUpdateError(PersistenceError):
    """A read-modify-write kept losing to other writers."""
