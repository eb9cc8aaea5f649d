"""Sync engine exception hierarchy."""

from typing import Any, Dict, List, Optional

from sheetsync.constants.sync import SyncPhase


class SyncError(Exception):
    """
    Base class for every failure the sync engine knows how to report.

    Carries a machine-readable ``code``, the executor ``phase`` it was raised in,
    and optional structured ``details`` that end up on the error SyncRun.
    """

    code = "sync_error"
    default_phase = SyncPhase.PREPARING

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        phase: Optional[SyncPhase] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        if code:
            self.code = code
        self.phase = phase or self.default_phase
        self.details = details or {}
        super().__init__(self.message)


class PreconditionError(SyncError):
    """Rejected before a SyncRun exists: mapping missing, inactive or already running."""

    MAPPING_NOT_FOUND = "mapping_not_found"
    MAPPING_INACTIVE = "mapping_inactive"
    ALREADY_RUNNING = "already_running"

    code = "precondition_failed"

    @classmethod
    def not_found(cls, mapping_id: int) -> "PreconditionError":
        return cls(f"Mapping {mapping_id} not found", code=cls.MAPPING_NOT_FOUND)

    @classmethod
    def inactive(cls, mapping_id: int) -> "PreconditionError":
        return cls(f"Mapping {mapping_id} is inactive", code=cls.MAPPING_INACTIVE)

    @classmethod
    def already_running(cls, mapping_id: int) -> "PreconditionError":
        return cls(f"Sync is already running for mapping {mapping_id}", code=cls.ALREADY_RUNNING)


class SourceReadError(SyncError):
    """The source range could not be read or held no data."""

    code = "source_read_failed"
    default_phase = SyncPhase.READING


class MappingValidationError(SyncError):
    """One or more transformed rows are missing a required target field."""

    code = "validation_failed"
    default_phase = SyncPhase.TRANSFORMING

    def __init__(self, violations: List[str]):
        self.violations = list(violations)
        super().__init__(
            f"Validation failed: {', '.join(self.violations)}",
            details={"violations": self.violations}
        )


class TargetWriteError(SyncError):
    """The target system rejected the batch."""

    code = "target_write_failed"
    default_phase = SyncPhase.WRITING
