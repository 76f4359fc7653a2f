"""Errors raised by the assessment layer."""


class AssessmentError(Exception):
    """Base class for assessment failures that callers can report."""


class EquipmentNotFoundError(AssessmentError, LookupError):
    def __init__(self, equipment_id: str) -> None:
        super().__init__(f"Equipment {equipment_id!r} does not exist")
        self.equipment_id = equipment_id


class NoDataInRangeError(AssessmentError, LookupError):
    def __init__(self, equipment_id: str, start_ms: int, end_ms: int) -> None:
        super().__init__(
            f"No readings for equipment {equipment_id!r} between {start_ms} and {end_ms}"
        )
        self.equipment_id = equipment_id
        self.start_ms = start_ms
        self.end_ms = end_ms


class InvalidTimeRangeError(AssessmentError, ValueError):
    def __init__(self, start_ms: int, end_ms: int) -> None:
        super().__init__(f"Start time {start_ms} must be before end time {end_ms}")
        self.start_ms = start_ms
        self.end_ms = end_ms
