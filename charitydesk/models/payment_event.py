from datetime import datetime
from ..extensions import db


class PaymentEvent(db.Model):
    """Append-only audit trail of everything that touched a donation's status."""
    __tablename__ = "payment_event"

    id = db.Column(db.Integer, primary_key=True)
    donation_id = db.Column(db.Integer, db.ForeignKey("donation.id"), index=True, nullable=True)
    checkout_request_id = db.Column(db.String(100), index=True)

    # initiated|callback_applied|callback_duplicate|callback_rejected|callback_unmatched|override
    kind = db.Column(db.String(30), nullable=False, index=True)
    from_status = db.Column(db.String(20))
    to_status = db.Column(db.String(20))
    actor = db.Column(db.String(120))                # user id for overrides, "gateway" for callbacks
    payload = db.Column(db.JSON)                     # raw callback / gateway response
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False, index=True)

    donation = db.relationship("Donation", back_populates="events")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "donation_id": self.donation_id,
            "checkout_request_id": self.checkout_request_id,
            "kind": self.kind,
            "from_status": self.from_status,
            "to_status": self.to_status,
            "actor": self.actor,
            "payload": self.payload,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
