from __future__ import annotations

from ..extensions import db
from shopsync.time_utils import to_utc_z


STATUS_STARTED = "started"
STATUS_COMPLETED = "completed"
STATUS_FAILED = "failed"


class SyncLog(db.Model):
    """
    Append-only audit row for one sync invocation.

    LIFECYCLE:
    1. started: row created before any Shopify request
    2. completed | failed: written exactly once when the run ends

    records_processed reflects progress at the moment the run ended, so a
    failed run still shows how far it got.
    """
    __tablename__ = "sync_logs"
    __table_args__ = (
        db.Index("ix_sync_logs_tenant_started", "tenant_id", "started_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    tenant_id = db.Column(db.Integer, db.ForeignKey("tenants.id"), nullable=False, index=True)

    sync_type = db.Column(db.String(16), nullable=False)
    status = db.Column(db.String(16), nullable=False, default=STATUS_STARTED, index=True)
    # manual (API/CLI), scheduled (sweep)
    trigger = db.Column(db.String(16), nullable=False, default="manual")

    records_processed = db.Column(db.Integer, nullable=False, default=0)
    error_message = db.Column(db.Text, nullable=True)

    started_at = db.Column(db.DateTime(timezone=True), nullable=False)
    completed_at = db.Column(db.DateTime(timezone=True), nullable=True)

    tenant = db.relationship("Tenant", backref=db.backref("sync_logs", lazy=True))

    @property
    def is_terminal(self) -> bool:
        return self.status in (STATUS_COMPLETED, STATUS_FAILED)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "sync_type": self.sync_type,
            "status": self.status,
            "trigger": self.trigger,
            "records_processed": self.records_processed,
            "error_message": self.error_message,
            "started_at": to_utc_z(self.started_at),
            "completed_at": to_utc_z(self.completed_at) if self.completed_at else None,
        }
