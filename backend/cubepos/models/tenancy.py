from __future__ import annotations

from ..extensions import db
from cubepos.time_utils import to_utc_z


USER_ROLES = ("ADMIN", "TENANT", "CASHIER")

CUBE_AVAILABLE = "AVAILABLE"
CUBE_RENTED = "RENTED"
CUBE_MAINTENANCE = "MAINTENANCE"


class User(db.Model):
    """
    Accounts used for attribution and as notification contacts.

    A tenant's owning user receives billing reminders and stock alerts, and
    is the fallback actor on inventory logs when a sale has no cashier.
    """
    __tablename__ = "users"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False)
    email = db.Column(db.String(255), nullable=False, unique=True, index=True)
    phone = db.Column(db.String(32), nullable=True)
    role = db.Column(db.String(16), nullable=False, default="TENANT", index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def __repr__(self) -> str:
        return f"<User id={self.id} email={self.email!r} role={self.role}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "phone": self.phone,
            "role": self.role,
            "created_at": to_utc_z(self.created_at),
        }


class Tenant(db.Model):
    """
    A business renting one or more cubes and selling its own products.

    Tenant is the isolation boundary for products, variants and sales.
    """
    __tablename__ = "tenants"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, unique=True)
    business_name = db.Column(db.String(255), nullable=False, index=True)
    address = db.Column(db.String(255), nullable=True)
    notes = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    user = db.relationship("User", backref=db.backref("tenant", uselist=False, lazy=True))

    def __repr__(self) -> str:
        return f"<Tenant id={self.id} business_name={self.business_name!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "business_name": self.business_name,
            "address": self.address,
            "notes": self.notes,
            "created_at": to_utc_z(self.created_at),
        }


class Cube(db.Model):
    """Rentable display cube in the shared retail space."""
    __tablename__ = "cubes"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    code = db.Column(db.String(32), nullable=False, unique=True)
    size = db.Column(db.String(32), nullable=True)
    daily_rate = db.Column(db.Numeric(10, 2), nullable=False)
    status = db.Column(db.String(16), nullable=False, default=CUBE_AVAILABLE, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def __repr__(self) -> str:
        return f"<Cube id={self.id} code={self.code!r} status={self.status}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "code": self.code,
            "size": self.size,
            "daily_rate": f"{self.daily_rate:.2f}",
            "status": self.status,
        }
