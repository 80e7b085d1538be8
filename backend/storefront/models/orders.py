from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


class Order(db.Model):
    """
    One checkout: the items, where they ship, and where the order stands.

    Items and total are frozen at creation. Afterwards only the workflow
    fields change: status, follow_up, the submitted payment details and
    updated_at.

    order_code is derived from the order's inputs and is NOT unique;
    tracking_number is the opaque customer-facing identifier.
    """
    __tablename__ = "orders"
    __table_args__ = (
        db.Index("ix_orders_code_owner", "order_code", "user_id"),
        db.Index("ix_orders_franchise_created", "franchise_id", "created_at"),
        db.Index("ix_orders_owner_created", "user_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    # Owner and storefront. No FKs: a category migration retires user rows
    # while their historical orders keep the id they were placed under.
    user_id = db.Column(db.String(16), nullable=False, index=True)
    franchise_id = db.Column(db.String(16), nullable=False, index=True)
    store_slug = db.Column(db.String(140), nullable=False, default="")

    order_code = db.Column(db.String(255), nullable=False, index=True)
    order_number = db.Column(db.Integer, nullable=False)
    tracking_number = db.Column(db.String(16), nullable=False, index=True)

    # Shipping address
    shipping_street = db.Column(db.String(255), nullable=False, default="")
    shipping_city = db.Column(db.String(120), nullable=False, default="")
    shipping_state = db.Column(db.String(120), nullable=False, default="")
    shipping_postal_code = db.Column(db.String(20), nullable=False, default="")
    shipping_country_code = db.Column(db.String(8), nullable=False, default="")

    # Customer contact snapshot at checkout
    customer_first_name = db.Column(db.String(120), nullable=False, default="")
    customer_last_name = db.Column(db.String(120), nullable=False, default="")
    customer_email = db.Column(db.String(255), nullable=False, default="")
    customer_phone = db.Column(db.String(32), nullable=False, default="")
    customer_primary_phone = db.Column(db.String(32), nullable=False, default="")
    customer_secondary_phone = db.Column(db.String(32), nullable=False, default="")

    seller_message = db.Column(db.Text, nullable=False, default="")

    # Workflow
    status = db.Column(db.String(32), nullable=False, default="pending", index=True)
    follow_up = db.Column(db.Boolean, nullable=False, default=False)

    total_amount_cents = db.Column(db.Integer, nullable=False)

    # Payment details submitted by the customer from the tracking view
    payment_method = db.Column(db.String(32), nullable=True)
    payment_reference = db.Column(db.String(128), nullable=True)
    payment_amount_cents = db.Column(db.Integer, nullable=True)
    payment_submitted_at = db.Column(db.DateTime(timezone=True), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=True)

    lines = db.relationship(
        "OrderLine",
        order_by="OrderLine.position",
        backref="order",
        cascade="all, delete-orphan",
        lazy=True,
    )

    def __repr__(self) -> str:
        return f"<Order id={self.id} code={self.order_code!r} status={self.status!r}>"

    @property
    def shipping_address(self) -> dict:
        return {
            "street": self.shipping_street,
            "city": self.shipping_city,
            "state": self.shipping_state,
            "postal_code": self.shipping_postal_code,
            "country_code": self.shipping_country_code,
        }

    @property
    def customer_info(self) -> dict:
        return {
            "first_name": self.customer_first_name,
            "last_name": self.customer_last_name,
            "email": self.customer_email,
            "phone": self.customer_phone,
            "primary_phone": self.customer_primary_phone,
            "secondary_phone": self.customer_secondary_phone,
        }

    def to_dict(self) -> dict:
        payment = None
        if self.payment_method:
            payment = {
                "method": self.payment_method,
                "reference": self.payment_reference,
                "amount_cents": self.payment_amount_cents,
                "submitted_at": to_utc_z(self.payment_submitted_at),
            }
        return {
            "id": self.id,
            "user_id": self.user_id,
            "franchise_id": self.franchise_id,
            "store_slug": self.store_slug,
            "order_code": self.order_code,
            "order_number": self.order_number,
            "tracking_number": self.tracking_number,
            "items": [line.to_dict() for line in self.lines],
            "shipping_address": self.shipping_address,
            "customer_info": self.customer_info,
            "seller_message": self.seller_message,
            "status": self.status,
            "follow_up": self.follow_up,
            "total_amount_cents": self.total_amount_cents,
            "payment": payment,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class OrderLine(db.Model):
    """Item on an order, kept in checkout order via position."""
    __tablename__ = "order_lines"
    __table_args__ = (
        db.UniqueConstraint("order_id", "position", name="uq_order_lines_order_position"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=False, index=True)
    position = db.Column(db.Integer, nullable=False)

    item_id = db.Column(db.String(64), nullable=False, default="")
    name = db.Column(db.String(255), nullable=False)
    price_cents = db.Column(db.Integer, nullable=False)
    quantity = db.Column(db.Integer, nullable=False)

    @property
    def line_total_cents(self) -> int:
        return self.price_cents * self.quantity

    def to_dict(self) -> dict:
        return {
            "id": self.item_id,
            "name": self.name,
            "price_cents": self.price_cents,
            "quantity": self.quantity,
            "line_total_cents": self.line_total_cents,
        }
