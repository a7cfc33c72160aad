# connectsphere/api/posts/routes.py
import logging
from flask import Blueprint, request, jsonify, current_app
from flask_jwt_extended import jwt_required, get_jwt_identity
from marshmallow import ValidationError

from connectsphere.api.posts.schemas import (
    PostCreateSchema,
    PostUpdateSchema,
    PostResponseSchema,
    CommentCreateSchema,
    CommentResponseSchema
)

posts_bp = Blueprint('posts_bp', __name__)


def _owner_only(owner_id: str):
    if owner_id != get_jwt_identity():
        return jsonify({"error_code": "FORBIDDEN", "message": "You can only modify your own posts."}), 403
    return None


@posts_bp.route('', methods=['POST'])
@jwt_required()
def create_post():
    """
    Creates a post for the signed-in user.
    Accepts JSON, or multipart form data with an optional 'photo' file.
    """
    post_service = current_app.services['posts']
    user_id = get_jwt_identity()

    image = None
    if request.mimetype == 'multipart/form-data':
        payload = request.form.to_dict()
        photo = request.files.get('photo')
        if photo and photo.filename:
            image = (photo.filename, photo.read(), photo.mimetype)
    else:
        payload = request.get_json(silent=True) or {}

    try:
        data = PostCreateSchema().load(payload)
    except ValidationError as err:
        return jsonify({"error_code": "VALIDATION_ERROR", "details": err.messages}), 400

    new_post = post_service.create_post(user_id, data['title'], data['content'], image=image)
    logging.info(f"Post created: {new_post['post_id']} by {user_id}")
    return jsonify(PostResponseSchema().dump(new_post)), 201


@posts_bp.route('/<string:owner_id>/<string:post_id>', methods=['PATCH'])
@jwt_required()
def update_post(owner_id: str, post_id: str):
    forbidden = _owner_only(owner_id)
    if forbidden:
        return forbidden
    post_service = current_app.services['posts']
    try:
        data = PostUpdateSchema().load(request.get_json())
    except ValidationError as err:
        return jsonify({"error_code": "VALIDATION_ERROR", "details": err.messages}), 400

    updated = post_service.update_post(owner_id, post_id, title=data.get('title'), content=data.get('content'))
    return jsonify(PostResponseSchema().dump(updated)), 200


@posts_bp.route('/<string:owner_id>/<string:post_id>', methods=['DELETE'])
@jwt_required()
def delete_post(owner_id: str, post_id: str):
    """Deletes the post and all of its comments."""
    forbidden = _owner_only(owner_id)
    if forbidden:
        return forbidden
    deleted_comments = current_app.services['posts'].delete_post(owner_id, post_id)
    return jsonify({"post_id": post_id, "deleted_comments": deleted_comments}), 200


@posts_bp.route('/<string:owner_id>/<string:post_id>/like', methods=['POST'])
@jwt_required()
def toggle_like(owner_id: str, post_id: str):
    user_id = get_jwt_identity()
    likes = current_app.services['posts'].toggle_like(owner_id, post_id, user_id)
    return jsonify({"likes": likes, "like_count": len(likes), "is_liked": user_id in likes}), 200


@posts_bp.route('/<string:owner_id>/<string:post_id>/comments', methods=['GET'])
@jwt_required()
def get_comments(owner_id: str, post_id: str):
    comments = current_app.services['posts'].list_comments(owner_id, post_id)
    return jsonify({"comments": CommentResponseSchema(many=True).dump(comments)}), 200


@posts_bp.route('/<string:owner_id>/<string:post_id>/comments', methods=['POST'])
@jwt_required()
def add_comment(owner_id: str, post_id: str):
    post_service = current_app.services['posts']
    try:
        data = CommentCreateSchema().load(request.get_json())
    except ValidationError as err:
        return jsonify({"error_code": "VALIDATION_ERROR", "details": err.messages}), 400

    comment = post_service.add_comment(owner_id, post_id, get_jwt_identity(), data['text'])
    return jsonify(CommentResponseSchema().dump(comment)), 201


@posts_bp.route('/<string:owner_id>/<string:post_id>/comments/<string:comment_id>', methods=['DELETE'])
@jwt_required()
def delete_comment(owner_id: str, post_id: str, comment_id: str):
    current_app.services['posts'].delete_comment(owner_id, post_id, comment_id, get_jwt_identity())
    return '', 204
