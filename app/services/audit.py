"""
Audit logger: best-effort append of AuditLog rows.

A failed write is logged for operators and rolled back; it never reaches the
caller. Handlers commit their own changes before recording.
"""
import json
import logging
from dataclasses import dataclass

from sqlalchemy.orm import Session

from models import AuditLog

logger = logging.getLogger(__name__)

ACTIONS = ("list", "upload", "download", "delete", "open")


@dataclass(frozen=True)
class RequestInfo:
    """Client details copied onto audit rows."""
    ip_address: str | None = None
    user_agent: str | None = None


class AuditLogger:
    def __init__(self, request_info: RequestInfo | None = None):
        self.request_info = request_info or RequestInfo()

    def record(
        self,
        db: Session,
        user_id: int,
        action: str,
        *,
        file_id: str | None = None,
        file_name: str | None = None,
        metadata: dict | None = None,
    ) -> None:
        if action not in ACTIONS:
            logger.error("Skipping audit entry with unknown action=%s file_id=%s", action, file_id)
            return
        try:
            db.add(
                AuditLog(
                    user_id=user_id,
                    action=action,
                    file_id=file_id,
                    file_name=file_name,
                    metadata_json=json.dumps(metadata, default=str) if metadata is not None else None,
                    ip_address=self.request_info.ip_address,
                    user_agent=self.request_info.user_agent,
                )
            )
            db.commit()
        except Exception:
            logger.exception("Failed to write audit entry action=%s file_id=%s", action, file_id)
            try:
                db.rollback()
            except Exception:
                logger.warning("Rollback after failed audit write also failed", exc_info=True)
