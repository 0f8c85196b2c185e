import logging
from flask import jsonify, request
from flask_login import login_required
from sqlalchemy import desc

from ...extensions import db
from ...models.gallery import GalleryImage
from ...security import current_user_id
from ..utils import json_body, images, get_or_404

from . import content_bp

log = logging.getLogger(__name__)


@content_bp.route("/gallery", methods=["POST"])
@login_required
def gallery_upload():
    # files are already on the CDN; we only keep the references
    refs = images(json_body(), required=True)
    uploader = current_user_id()
    rows = [GalleryImage(url=r["url"], public_id=r["public_id"], uploaded_by=uploader) for r in refs]
    db.session.add_all(rows)
    db.session.commit()
    log.info("Gallery: %s images added by %s", len(rows), uploader)
    return jsonify({
        "success": True,
        "image_ids": [r.id for r in rows],
        "message": f"{len(rows)} images uploaded successfully",
    }), 201


@content_bp.route("/gallery")
def gallery_list():
    qry = GalleryImage.query.order_by(desc(GalleryImage.uploaded_at), desc(GalleryImage.id))
    if "limit" in request.args:
        limit = request.args.get("limit", 20, type=int) or 20
        qry = qry.limit(max(limit, 1))
    return jsonify([img.to_dict() for img in qry.all()])


@content_bp.route("/gallery/<int:image_id>", methods=["DELETE"])
@login_required
def gallery_delete(image_id):
    img = get_or_404(GalleryImage, image_id, "Image")
    db.session.delete(img)
    db.session.commit()
    return jsonify({"success": True, "message": "Image deleted successfully"})
