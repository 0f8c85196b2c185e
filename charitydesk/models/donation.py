from datetime import datetime
from ..extensions import db


DONATION_STATUSES = ("pending", "completed", "failed")
TERMINAL_STATUSES = ("completed", "failed")


class Donation(db.Model):
    """A mobile-money donation; created pending when the STK push is accepted."""
    __tablename__ = "donation"

    id = db.Column(db.Integer, primary_key=True)
    donor = db.Column(db.String(120), nullable=False, default="M-Pesa Donor")
    phone = db.Column(db.String(20), nullable=False)
    amount = db.Column(db.Integer, nullable=False)          # whole KES
    currency = db.Column(db.String(10), default="KES")
    anonymous = db.Column(db.Boolean, default=False, nullable=False)
    # pending|completed|failed
    status = db.Column(db.String(20), default="pending", nullable=False, index=True)
    payment_method = db.Column(db.String(20), default="mpesa", nullable=False)

    user_id = db.Column(db.Integer, db.ForeignKey("user.id"), index=True)
    cause_id = db.Column(db.Integer, db.ForeignKey("cause.id", ondelete="SET NULL"), index=True)

    # gateway correlation; indexed for the callback lookup, not unique-constrained
    checkout_request_id = db.Column(db.String(100), index=True)
    merchant_request_id = db.Column(db.String(100))
    receipt_number = db.Column(db.String(100))
    transaction_date = db.Column(db.String(20))              # raw YYYYMMDDHHMMSS from metadata

    created_at = db.Column(db.DateTime, default=datetime.utcnow, index=True)
    completed_at = db.Column(db.DateTime)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    user = db.relationship("User", back_populates="donations")
    cause = db.relationship("Cause", back_populates="donations")
    events = db.relationship(
        "PaymentEvent",
        back_populates="donation",
        lazy="dynamic",
        order_by="PaymentEvent.id",
    )

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "donor": "Anonymous" if self.anonymous else self.donor,
            "phone": self.phone,
            "amount": self.amount,
            "currency": self.currency,
            "anonymous": self.anonymous,
            "status": self.status,
            "payment_method": self.payment_method,
            "user_id": self.user_id,
            "cause_id": self.cause_id,
            "checkout_request_id": self.checkout_request_id,
            "merchant_request_id": self.merchant_request_id,
            "receipt_number": self.receipt_number,
            "transaction_date": self.transaction_date,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
        }
