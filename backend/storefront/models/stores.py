from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


class Store(db.Model):
    """A franchise's public storefront, addressed by its URL slug."""
    __tablename__ = "stores"

    slug = db.Column(db.String(140), primary_key=True)
    franchise_id = db.Column(db.String(16), nullable=False, index=True)
    store_name = db.Column(db.String(120), nullable=False)
    status = db.Column(db.String(16), nullable=False, default="active")

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def __repr__(self) -> str:
        return f"<Store slug={self.slug!r} franchise_id={self.franchise_id}>"

    def to_dict(self) -> dict:
        return {
            "slug": self.slug,
            "franchise_id": self.franchise_id,
            "store_name": self.store_name,
            "status": self.status,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
