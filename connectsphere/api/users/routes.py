# connectsphere/api/users/routes.py
import logging
from flask import Blueprint, request, jsonify, current_app
from flask_jwt_extended import jwt_required, get_jwt_identity
from marshmallow import ValidationError

from connectsphere.api.feed.schemas import FeedPostSchema
from connectsphere.api.users.schemas import (
    ProfileUpdateSchema,
    ProfileImageSchema,
    UserPublicResponseSchema,
    UserSummarySchema
)

users_bp = Blueprint('users_bp', __name__)

@users_bp.route('/me', methods=['GET'])
@jwt_required()
def get_my_profile():
    """The signed-in user's own profile, created on first access."""
    user_service = current_app.services['users']
    user_id = get_jwt_identity()
    user_service.ensure_profile(user_id)
    profile = user_service.get_public_profile(user_id)
    profile['relationship'] = 'own_profile'
    return jsonify(UserPublicResponseSchema().dump(profile)), 200


@users_bp.route('/me', methods=['PATCH'])
@jwt_required()
def update_my_profile():
    user_service = current_app.services['users']
    user_id = get_jwt_identity()
    try:
        changes = ProfileUpdateSchema().load(request.get_json())
        profile = user_service.update_profile(user_id, changes)
        return jsonify(UserPublicResponseSchema().dump(profile)), 200
    except ValidationError as err:
        return jsonify({"error_code": "VALIDATION_ERROR", "details": err.messages}), 400


def _update_image(kind: str):
    user_service = current_app.services['users']
    user_id = get_jwt_identity()
    try:
        data = ProfileImageSchema().load(request.get_json())
        profile = user_service.update_profile_image(user_id, kind, data['file_path'])
        return jsonify(UserPublicResponseSchema().dump(profile)), 200
    except ValidationError as err:
        return jsonify({"error_code": "VALIDATION_ERROR", "details": err.messages}), 400
    except PermissionError as e:
        return jsonify({"error_code": "FORBIDDEN", "message": str(e)}), 403
    except FileNotFoundError as e:
        return jsonify({"error_code": "FILE_NOT_FOUND", "message": str(e)}), 404


@users_bp.route('/me/avatar', methods=['PATCH'])
@jwt_required()
def update_my_avatar():
    return _update_image('avatar')


@users_bp.route('/me/cover-image', methods=['PATCH'])
@jwt_required()
def update_my_cover_image():
    return _update_image('cover_image')


@users_bp.route('/suggestions', methods=['GET'])
@jwt_required()
def get_friend_suggestions():
    """Every other user."""
    user_service = current_app.services['users']
    users = user_service.list_suggestions(get_jwt_identity())
    return jsonify({"users": UserSummarySchema(many=True).dump(users)}), 200


@users_bp.route('/<string:user_id>', methods=['GET'])
@jwt_required()
def get_user_profile(user_id: str):
    """Another user's public profile with the viewer's relationship to them."""
    user_service = current_app.services['users']
    friend_service = current_app.services['friends']
    viewer_id = get_jwt_identity()
    try:
        profile = user_service.get_public_profile(user_id)
        if not profile:
            return jsonify({"error_code": "USER_NOT_FOUND", "message": "User not found."}), 404
        if viewer_id != user_id:
            profile.pop('email', None)
        profile['relationship'] = friend_service.get_relationship(viewer_id, user_id).value
        return jsonify(UserPublicResponseSchema().dump(profile)), 200
    except Exception as e:
        logging.error(f"Profile fetch failed (user_id: {user_id}): {e}", exc_info=True)
        return jsonify({"error_code": "PROFILE_FETCH_FAILED", "message": "Failed to load the profile."}), 500


@users_bp.route('/<string:user_id>/posts', methods=['GET'])
@jwt_required()
def get_user_posts(user_id: str):
    """A user's posts with comments, newest first."""
    feed_service = current_app.services['feed']
    posts = feed_service.get_user_posts(user_id)
    return jsonify({"posts": FeedPostSchema(many=True).dump(posts)}), 200
