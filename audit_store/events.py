# ==============================================
# Events (Data Classes)
# ==============================================
#
# PURPOSE:
#   The read-only audit event model handed to the store by the
#   enclosing audit pipeline.
#
# CLASSES:
# --------
# - Field (dataclass, frozen)
#     name: str      → Field name
#     type: str      → Free-form type tag (kept opaque)
#     value: str     → Field value
#
# - AuditEvent (dataclass, frozen)
#     actor: str                 → Who performed the action
#     action: str                → What was done
#     origin: str | None         → Where it came from (IP, host, ...)
#     fields: tuple[Field, ...]  → Ordered event payload
#     identifier: str            → Unique id (fresh UUID by default)
#     timestamp: datetime        → When it happened (now by default)
#     repository: str | None     → Logical repository, drives table separation
#
# ==============================================

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, Tuple


@dataclass(frozen=True)
class Field:
    """One named, typed value of an audit event."""
    name: str
    type: str = "string"
    value: Optional[str] = None


def _new_identifier() -> str:
    return str(uuid.uuid4())


@dataclass(frozen=True)
class AuditEvent:
    """
    A single audit event.

    `fields` is stored as a tuple so the event cannot be mutated after it
    has been handed to the store; any iterable passed in is converted.
    """
    actor: str
    action: str
    origin: Optional[str] = None
    fields: Tuple[Field, ...] = ()
    identifier: str = field(default_factory=_new_identifier)
    timestamp: datetime = field(default_factory=datetime.now)
    repository: Optional[str] = None

    def __post_init__(self):
        if not isinstance(self.fields, tuple):
            object.__setattr__(self, "fields", tuple(self.fields))
