# connectsphere/api/friends/routes.py
from flask import Blueprint, jsonify, current_app
from flask_jwt_extended import jwt_required, get_jwt_identity

from connectsphere.api.friends.schemas import FriendSchema, FriendRequestSchema
from connectsphere.utils.sse import snapshot_stream, sse_response

friends_bp = Blueprint('friends_bp', __name__)

@friends_bp.route('', methods=['GET'])
@jwt_required()
def list_friends():
    friends = current_app.services['friends'].list_friends(get_jwt_identity())
    return jsonify({"friends": FriendSchema(many=True).dump(friends)}), 200


@friends_bp.route('/requests', methods=['GET'])
@jwt_required()
def list_incoming_requests():
    """Pending requests addressed to the signed-in user."""
    requests = current_app.services['friends'].list_incoming_requests(get_jwt_identity())
    return jsonify({"requests": FriendRequestSchema(many=True).dump(requests)}), 200


@friends_bp.route('/requests/stream', methods=['GET'])
@jwt_required()
def stream_incoming_requests():
    """Live pending-request list for the notifications page."""
    friend_service = current_app.services['friends']
    user_id = get_jwt_identity()
    stream = snapshot_stream(
        lambda callback: friend_service.subscribe_incoming_requests(user_id, callback),
        FriendRequestSchema(many=True).dump
    )
    return sse_response(stream)


@friends_bp.route('/requests/<string:request_id>/accept', methods=['POST'])
@jwt_required()
def accept_request(request_id: str):
    edge = current_app.services['friends'].accept_request(get_jwt_identity(), request_id)
    return jsonify({"relationship": "friends", "friend": FriendSchema().dump(edge)}), 200


@friends_bp.route('/requests/<string:request_id>/decline', methods=['POST'])
@jwt_required()
def decline_request(request_id: str):
    current_app.services['friends'].decline_request(get_jwt_identity(), request_id)
    return jsonify({"relationship": "none"}), 200


# --- by subject uid (profile page buttons) ---

@friends_bp.route('/users/<string:user_id>/relationship', methods=['GET'])
@jwt_required()
def get_relationship(user_id: str):
    relationship = current_app.services['friends'].get_relationship(get_jwt_identity(), user_id)
    return jsonify({"relationship": relationship.value}), 200


@friends_bp.route('/users/<string:user_id>/request', methods=['POST'])
@jwt_required()
def send_request(user_id: str):
    request_data = current_app.services['friends'].send_request(get_jwt_identity(), user_id)
    return jsonify({"relationship": "sent", "request": FriendRequestSchema().dump(request_data)}), 201


@friends_bp.route('/users/<string:user_id>/request', methods=['DELETE'])
@jwt_required()
def cancel_request(user_id: str):
    current_app.services['friends'].cancel_request(get_jwt_identity(), user_id)
    return jsonify({"relationship": "none"}), 200


@friends_bp.route('/users/<string:user_id>/accept', methods=['POST'])
@jwt_required()
def accept_from_user(user_id: str):
    edge = current_app.services['friends'].respond_to_user(get_jwt_identity(), user_id, accept=True)
    return jsonify({"relationship": "friends", "friend": FriendSchema().dump(edge)}), 200


@friends_bp.route('/users/<string:user_id>/decline', methods=['POST'])
@jwt_required()
def decline_from_user(user_id: str):
    current_app.services['friends'].respond_to_user(get_jwt_identity(), user_id, accept=False)
    return jsonify({"relationship": "none"}), 200
