from datetime import datetime
from ..extensions import db


BUDGET_PARTS = ("transportation", "food", "supplies", "gifts", "other")


class Visitation(db.Model):
    """A planned or completed visit to a children's home."""
    __tablename__ = "visitation"

    id = db.Column(db.Integer, primary_key=True)
    home_name = db.Column(db.String(200), nullable=False)
    visit_date = db.Column(db.Date, nullable=False, index=True)
    number_of_children = db.Column(db.Integer, nullable=False, default=0)
    status = db.Column(db.String(30), nullable=False, default="planned")  # planned|completed|cancelled, free text
    notes = db.Column(db.Text, default="")

    # total is kept in sync with the breakdown on every write
    budget = db.Column(db.Float, nullable=False, default=0.0)
    budget_breakdown = db.Column(db.JSON, nullable=False, default=dict)
    images = db.Column(db.JSON, default=list)

    created_by = db.Column(db.String(64), index=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, index=True)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def set_budget(self, breakdown: dict):
        self.budget_breakdown = {part: float(breakdown[part]) for part in BUDGET_PARTS}
        self.budget = sum(self.budget_breakdown.values())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "home_name": self.home_name,
            "visit_date": self.visit_date.isoformat() if self.visit_date else None,
            "number_of_children": self.number_of_children,
            "status": self.status,
            "notes": self.notes or "",
            "budget": self.budget,
            "budget_breakdown": dict(self.budget_breakdown or {}),
            "images": list(self.images or []),
            "created_by": self.created_by,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
