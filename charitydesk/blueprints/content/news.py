from flask import jsonify, request
from flask_login import login_required
from sqlalchemy import desc

from ...extensions import db
from ...models.news import NewsPost
from ...security import current_user_id
from ..utils import json_body, required_str, optional_str, boolean, get_or_404

from . import content_bp


@content_bp.route("/news", methods=["POST"])
@login_required
def news_create():
    data = json_body()
    post = NewsPost(
        title=required_str(data, "title", 200),
        description=required_str(data, "description"),
        created_by=current_user_id(),
        published=True,
    )
    db.session.add(post)
    db.session.commit()
    return jsonify({"success": True, "data": post.to_dict()}), 201


@content_bp.route("/news")
def news_list():
    qry = NewsPost.query
    if boolean(request.args, "published_only", False):
        qry = qry.filter_by(published=True)
    rows = qry.order_by(desc(NewsPost.created_at), desc(NewsPost.id)).all()
    return jsonify({"success": True, "count": len(rows), "data": [n.to_dict() for n in rows]})


@content_bp.route("/news/<int:news_id>")
def news_detail(news_id):
    return jsonify({"success": True, "data": get_or_404(NewsPost, news_id, "News").to_dict()})


@content_bp.route("/news/<int:news_id>", methods=["PATCH", "PUT"])
@login_required
def news_update(news_id):
    post = get_or_404(NewsPost, news_id, "News")
    data = json_body()
    title = optional_str(data, "title")
    if title:
        post.title = title
    description = optional_str(data, "description")
    if description:
        post.description = description
    published = boolean(data, "published")
    if published is not None:
        post.published = published
    db.session.commit()
    return jsonify({"success": True, "data": post.to_dict()})


@content_bp.route("/news/<int:news_id>", methods=["DELETE"])
@login_required
def news_delete(news_id):
    post = get_or_404(NewsPost, news_id, "News")
    db.session.delete(post)
    db.session.commit()
    return jsonify({"success": True, "message": "News deleted successfully"})
