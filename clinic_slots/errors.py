"""
Slot engine exceptions

Configuration errors end the current cycle only; persistence timeouts are
retried by the next cycle. Duplicate-key conflicts never surface here, the
slot repository absorbs them.
"""


class SlotServiceError(Exception):
    """Base class for slot engine errors"""

    pass


class NoResponsibleStaffError(SlotServiceError):
    """Raised when no active doctor/admin user exists to own generated slots"""

    pass


class PersistenceTimeoutError(SlotServiceError):
    """Raised when a repository call exceeds DB_CALL_TIMEOUT"""

    pass


class SlotUnavailableError(SlotServiceError):
    """Raised when booking a slot that is already booked or disabled"""

    pass
