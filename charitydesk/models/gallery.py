from datetime import datetime
from ..extensions import db


class GalleryImage(db.Model):
    __tablename__ = "gallery_image"

    id = db.Column(db.Integer, primary_key=True)
    url = db.Column(db.String(512), nullable=False)
    public_id = db.Column(db.String(255), nullable=False)   # CDN handle, needed to delete upstream
    uploaded_by = db.Column(db.String(64), index=True)
    uploaded_at = db.Column(db.DateTime, default=datetime.utcnow, index=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "url": self.url,
            "public_id": self.public_id,
            "uploaded_by": self.uploaded_by,
            "uploaded_at": self.uploaded_at.isoformat() if self.uploaded_at else None,
        }
