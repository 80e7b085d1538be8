from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


CURRENT_SCHEMA_VERSION = 1


class User(db.Model):
    """
    Platform account: customer, franchise, webmaster or test.

    The primary key is a category-prefixed sequence ("cu000012", "fr000003").
    It never changes in place: moving a user to another category retires this
    row and creates a new one, linked through previous_id /
    previous_franchise_id (see migration_service).
    """
    __tablename__ = "users"
    __table_args__ = (
        db.Index("ix_users_category_active", "category", "is_active"),
    )

    id = db.Column(db.String(16), primary_key=True)
    category = db.Column(db.String(16), nullable=False, index=True)

    email = db.Column(db.String(255), nullable=False, unique=True, index=True)
    username = db.Column(db.String(20), nullable=True, unique=True, index=True)
    password_hash = db.Column(db.String(255), nullable=False)

    first_name = db.Column(db.String(120), nullable=False)
    last_name = db.Column(db.String(120), nullable=False)

    # Admin console access (webmaster only)
    permissions = db.Column(db.Boolean, nullable=False, default=False)

    # Contact details
    phone = db.Column(db.String(32), nullable=False, default="")
    primary_phone = db.Column(db.String(32), nullable=False, default="")
    secondary_phone = db.Column(db.String(32), nullable=False, default="")
    address = db.Column(db.String(255), nullable=False, default="")
    city = db.Column(db.String(120), nullable=False, default="")
    state = db.Column(db.String(120), nullable=False, default="")
    country = db.Column(db.String(120), nullable=False, default="")
    country_code = db.Column(db.String(8), nullable=False, default="")
    zip_code = db.Column(db.String(20), nullable=False, default="")

    is_active = db.Column(db.Boolean, nullable=False, default=True)
    is_online = db.Column(db.Boolean, nullable=False, default=False)
    schema_version = db.Column(db.Integer, nullable=True, default=CURRENT_SCHEMA_VERSION)

    # Lineage across category changes
    previous_id = db.Column(db.String(16), nullable=True)
    previous_franchise_id = db.Column(db.String(16), nullable=True)

    # Storefront (franchise only)
    store_name = db.Column(db.String(120), nullable=True)
    store_slug = db.Column(db.String(140), nullable=True)
    store_status = db.Column(db.String(16), nullable=True)  # building, active

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    last_login_at = db.Column(db.DateTime(timezone=True), nullable=True)
    last_active_at = db.Column(db.DateTime(timezone=True), nullable=True)

    # Copied verbatim when a user is re-created under a new identifier
    LINEAGE_EXCLUDED = {"id", "category", "previous_id", "previous_franchise_id"}

    def __repr__(self) -> str:
        return f"<User id={self.id} category={self.category}>"

    def copy_attributes(self) -> dict:
        """Column values to carry over to a successor record."""
        return {
            c.key: getattr(self, c.key)
            for c in self.__mapper__.columns
            if c.key not in self.LINEAGE_EXCLUDED
        }

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "category": self.category,
            "email": self.email,
            "username": self.username,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "permissions": self.permissions,
            "phone": self.phone,
            "primary_phone": self.primary_phone,
            "secondary_phone": self.secondary_phone,
            "address": self.address,
            "city": self.city,
            "state": self.state,
            "country": self.country,
            "country_code": self.country_code,
            "zip_code": self.zip_code,
            "is_active": self.is_active,
            "is_online": self.is_online,
            "schema_version": self.schema_version,
            "previous_id": self.previous_id,
            "previous_franchise_id": self.previous_franchise_id,
            "store_name": self.store_name,
            "store_slug": self.store_slug,
            "store_status": self.store_status,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
            "last_login_at": to_utc_z(self.last_login_at),
            "last_active_at": to_utc_z(self.last_active_at),
        }


class Counter(db.Model):
    """
    One monotonically increasing integer per identifier namespace.

    Only identifier_service touches this table, always through a single
    atomic UPDATE so concurrent allocations never reuse a value.
    """
    __tablename__ = "counters"

    name = db.Column(db.String(16), primary_key=True)
    current_count = db.Column(db.Integer, nullable=False, default=0)

    def __repr__(self) -> str:
        return f"<Counter {self.name}={self.current_count}>"
