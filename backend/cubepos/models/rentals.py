from __future__ import annotations

from ..extensions import db
from cubepos.time_utils import to_utc_z


RENTAL_UPCOMING = "UPCOMING"
RENTAL_ACTIVE = "ACTIVE"
RENTAL_EXPIRED = "EXPIRED"

REMINDER_SEVEN_DAY_ADVANCE = "SEVEN_DAY_ADVANCE"
REMINDER_ONE_DAY_DUE = "ONE_DAY_DUE"
REMINDER_OVERDUE = "OVERDUE"
REMINDER_TYPES = (REMINDER_SEVEN_DAY_ADVANCE, REMINDER_ONE_DAY_DUE, REMINDER_OVERDUE)


class Rental(db.Model):
    """
    Lease of one cube by one tenant at a fixed daily rate.

    Status is derived once from the lease dates at allocation time.
    """
    __tablename__ = "rentals"
    __table_args__ = (
        db.Index("ix_rentals_status", "status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    tenant_id = db.Column(db.Integer, db.ForeignKey("tenants.id"), nullable=False, index=True)
    cube_id = db.Column(db.Integer, db.ForeignKey("cubes.id"), nullable=False, index=True)

    start_date = db.Column(db.DateTime(timezone=True), nullable=False)
    end_date = db.Column(db.DateTime(timezone=True), nullable=False)
    daily_rate = db.Column(db.Numeric(10, 2), nullable=False)

    status = db.Column(db.String(16), nullable=False, default=RENTAL_UPCOMING)
    allocated_by_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    tenant = db.relationship("Tenant", backref=db.backref("rentals", lazy=True))
    cube = db.relationship("Cube", backref=db.backref("rentals", lazy=True))
    allocated_by = db.relationship("User", foreign_keys=[allocated_by_id])

    def __repr__(self) -> str:
        return f"<Rental id={self.id} tenant_id={self.tenant_id} cube_id={self.cube_id} status={self.status}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "cube_id": self.cube_id,
            "start_date": to_utc_z(self.start_date),
            "end_date": to_utc_z(self.end_date),
            "daily_rate": f"{self.daily_rate:.2f}",
            "status": self.status,
            "allocated_by_id": self.allocated_by_id,
            "created_at": to_utc_z(self.created_at),
        }


class Payment(db.Model):
    """
    Rent payment received against a rental.

    Append-only: payments are never updated or deleted.
    """
    __tablename__ = "payments"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    rental_id = db.Column(db.Integer, db.ForeignKey("rentals.id"), nullable=False, index=True)
    amount = db.Column(db.Numeric(10, 2), nullable=False)
    method = db.Column(db.String(32), nullable=False)
    paid_at = db.Column(db.DateTime(timezone=True), nullable=False, index=True)
    received_by_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    note = db.Column(db.String(500), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    rental = db.relationship("Rental", backref=db.backref("payments", lazy=True, order_by="Payment.id"))
    received_by = db.relationship("User", foreign_keys=[received_by_id])

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "rental_id": self.rental_id,
            "amount": f"{self.amount:.2f}",
            "method": self.method,
            "paid_at": to_utc_z(self.paid_at),
            "received_by_id": self.received_by_id,
            "note": self.note,
            "created_at": to_utc_z(self.created_at),
        }


class PaymentReminder(db.Model):
    """
    Record of a reminder attempt.

    (rental_id, reminder_type, due_date) is the dedup key: an existing row
    suppresses re-sending, whether or not the email went out.
    """
    __tablename__ = "payment_reminders"
    __table_args__ = (
        db.UniqueConstraint("rental_id", "reminder_type", "due_date", name="uq_payment_reminders_dedup"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    rental_id = db.Column(db.Integer, db.ForeignKey("rentals.id"), nullable=False, index=True)
    reminder_type = db.Column(db.String(32), nullable=False)
    due_date = db.Column(db.Date, nullable=False)
    amount = db.Column(db.Numeric(10, 2), nullable=False)
    email_sent = db.Column(db.Boolean, nullable=False, default=False)
    message_id = db.Column(db.String(255), nullable=True)
    error = db.Column(db.String(500), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    rental = db.relationship("Rental", backref=db.backref("reminders", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "rental_id": self.rental_id,
            "reminder_type": self.reminder_type,
            "due_date": self.due_date.isoformat(),
            "amount": f"{self.amount:.2f}",
            "email_sent": self.email_sent,
            "message_id": self.message_id,
            "error": self.error,
            "created_at": to_utc_z(self.created_at),
        }
