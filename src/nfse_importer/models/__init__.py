"""
Models package - Data structures for the application.
"""
from .fields import (
    FieldKind,
    CANONICAL_FIELDS,
    DEFAULT_SCHEMA,
    MONEY_FIELDS,
    field_kind
)
from .document import (
    Job,
    JobStatus,
    Origin,
    Record
)
from .config import (
    Settings,
    EnvironmentSettings,
    ExportPreferences,
    PreferencesStore,
    MemoryPreferencesStore,
    JsonPreferencesStore,
    PreferencesManager
)
from .results import (
    SubmissionResult,
    JobOutcome,
    BatchSummary,
    ProgressUpdate
)

__all__ = [
    # Fields
    "FieldKind",
    "CANONICAL_FIELDS",
    "DEFAULT_SCHEMA",
    "MONEY_FIELDS",
    "field_kind",
    # Jobs and records
    "Job",
    "JobStatus",
    "Origin",
    "Record",
    # Configuration
    "Settings",
    "EnvironmentSettings",
    "ExportPreferences",
    "PreferencesStore",
    "MemoryPreferencesStore",
    "JsonPreferencesStore",
    "PreferencesManager",
    # Results
    "SubmissionResult",
    "JobOutcome",
    "BatchSummary",
    "ProgressUpdate",
]
