"""
Timeline Recorder - append-only audit trail of application lifecycle events.

Entries are never edited. They disappear only with their application.
"""

import logging
from uuid import UUID

from sqlalchemy.orm import Session

from bpm.core.status_rules import progress_for
from bpm.db.enums import ApplicationStatus
from bpm.db.models import ApplicationTimeline

logger = logging.getLogger(__name__)


def record_entry(
    db: Session,
    application_id: UUID,
    status: str | ApplicationStatus,
    note: str | None,
    author_id: UUID | None,
    progress: int | None = None,
) -> ApplicationTimeline:
    """
    Append one entry and commit.

    progress=None derives the value from the status table.
    """
    status_value = status.value if isinstance(status, ApplicationStatus) else status
    entry = ApplicationTimeline(
        application_id=application_id,
        status=status_value,
        note=note,
        progress=progress_for(status_value) if progress is None else progress,
        updated_by_id=author_id,
    )
    db.add(entry)
    db.commit()
    db.refresh(entry)
    return entry


def record_entry_safely(
    db: Session,
    application_id: UUID,
    status: str | ApplicationStatus,
    note: str | None,
    author_id: UUID | None,
    progress: int | None = None,
) -> ApplicationTimeline | None:
    """record_entry for use after the primary write: failures are logged, not raised."""
    try:
        return record_entry(db, application_id, status, note, author_id, progress)
    except Exception:
        db.rollback()
        logger.warning(
            "Failed to record timeline entry for application %s", application_id, exc_info=True
        )
        return None


def list_entries(db: Session, application_id: UUID) -> list[ApplicationTimeline]:
    """Entries for an application, newest first."""
    return (
        db.query(ApplicationTimeline)
        .filter(ApplicationTimeline.application_id == application_id)
        .order_by(ApplicationTimeline.created_at.desc())
        .all()
    )
