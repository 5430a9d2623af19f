from __future__ import annotations

from ..extensions import db
from oms.time_utils import to_utc_z


class ReportLog(db.Model):
    """
    Append-only record of an export / dispatch action.

    IMMUTABLE: Records are never updated or deleted.
    """
    __tablename__ = "report_logs"
    __table_args__ = (
        db.Index("ix_report_logs_generated_at", "generated_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    generated_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    start_date = db.Column(db.DateTime(timezone=True), nullable=False)
    end_date = db.Column(db.DateTime(timezone=True), nullable=False)
    order_count = db.Column(db.Integer, nullable=False)

    status = db.Column(db.String(16), nullable=False, default="Success")  # Success, Failed
    payment_status = db.Column(db.String(16), nullable=False, default="All")
    agent_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    is_dispatch = db.Column(db.Boolean, nullable=False, default=False)

    generated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    generated_by = db.relationship("User", foreign_keys=[generated_by_user_id])
    agent = db.relationship("User", foreign_keys=[agent_id])

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "generated_by_user_id": self.generated_by_user_id,
            "generated_by_name": self.generated_by.name if self.generated_by else None,
            "start_date": to_utc_z(self.start_date),
            "end_date": to_utc_z(self.end_date),
            "order_count": self.order_count,
            "status": self.status,
            "payment_status": self.payment_status,
            "agent_id": self.agent_id,
            "is_dispatch": self.is_dispatch,
            "generated_at": to_utc_z(self.generated_at),
        }
