# connectsphere/api/feed/routes.py
from flask import Blueprint, jsonify, current_app
from flask_jwt_extended import jwt_required, get_jwt_identity

from connectsphere.api.feed.schemas import FeedPostSchema

feed_bp = Blueprint('feed_bp', __name__)

@feed_bp.route('', methods=['GET'])
@jwt_required()
def get_feed():
    """The signed-in user's posts and their friends' posts, newest first."""
    posts = current_app.services['feed'].get_feed(get_jwt_identity())
    return jsonify({"posts": FeedPostSchema(many=True).dump(posts)}), 200
