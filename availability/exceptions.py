from common.exceptions import CommonError


class AvailabilityError(CommonError):
    """Base exception for availability errors"""

    pass


# Creation-time conflicts
class ConflictError(AvailabilityError):
    """Raised when a new entity overlaps an existing one it may not overlap"""

    pass


class AvailabilityWindowConflictError(ConflictError):
    default_message = "Availability window overlaps an existing active window for this resource."


class ScheduleConflictError(ConflictError):
    def __init__(self, schedule_type: str, conflicting_type: str, conflicting_name: str):
        super().__init__(
            f"{schedule_type} schedule cannot overlap {conflicting_type} schedule "
            f"'{conflicting_name}'"
        )
        self.schedule_type = schedule_type
        self.conflicting_type = conflicting_type


class ReservationConflictError(ConflictError):
    def __init__(self, conflicting_reservation_ids: list[int]):
        super().__init__(
            f"Conflicts with {len(conflicting_reservation_ids)} existing reservation(s)"
        )
        self.conflicting_reservation_ids = conflicting_reservation_ids


class RestrictionViolationError(AvailabilityError):
    """Raised when a reservation breaks an advance-notice or user-type restriction"""

    def __init__(self, restrictions: list[str]):
        super().__init__("; ".join(restrictions))
        self.restrictions = restrictions
