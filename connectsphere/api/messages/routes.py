# connectsphere/api/messages/routes.py
from flask import Blueprint, request, jsonify, current_app
from flask_jwt_extended import jwt_required, get_jwt_identity
from marshmallow import ValidationError

from connectsphere.api.messages.schemas import (
    MessageCreateSchema,
    GroupCreateSchema,
    DirectMessageSchema,
    GroupMessageSchema,
    GroupSchema
)
from connectsphere.api.messages.services import conversation_id
from connectsphere.utils.sse import snapshot_stream, sse_response

messages_bp = Blueprint('messages_bp', __name__)
groups_bp = Blueprint('groups_bp', __name__)


# --- 1:1 conversations (/api/messages) ---

@messages_bp.route('/<string:peer_id>', methods=['GET'])
@jwt_required()
def list_direct_messages(peer_id: str):
    messages = current_app.services['messages'].list_direct_messages(get_jwt_identity(), peer_id)
    return jsonify({"messages": DirectMessageSchema(many=True).dump(messages)}), 200


@messages_bp.route('/<string:peer_id>', methods=['POST'])
@jwt_required()
def send_direct_message(peer_id: str):
    try:
        data = MessageCreateSchema().load(request.get_json())
    except ValidationError as err:
        return jsonify({"error_code": "VALIDATION_ERROR", "details": err.messages}), 400

    message = current_app.services['messages'].send_direct_message(get_jwt_identity(), peer_id, data['text'])
    return jsonify(DirectMessageSchema().dump(message)), 201


@messages_bp.route('/<string:peer_id>/stream', methods=['GET'])
@jwt_required()
def stream_direct_messages(peer_id: str):
    """Live conversation: every change re-sends the whole ordered list."""
    message_service = current_app.services['messages']
    user_id = get_jwt_identity()
    conversation_id(user_id, peer_id)
    stream = snapshot_stream(
        lambda callback: message_service.subscribe_direct_messages(user_id, peer_id, callback),
        DirectMessageSchema(many=True).dump
    )
    return sse_response(stream)


# --- groups (/api/groups) ---

@groups_bp.route('', methods=['GET'])
@jwt_required()
def list_groups():
    groups = current_app.services['messages'].list_groups()
    return jsonify({"groups": GroupSchema(many=True).dump(groups)}), 200


@groups_bp.route('', methods=['POST'])
@jwt_required()
def create_group():
    try:
        data = GroupCreateSchema().load(request.get_json())
    except ValidationError as err:
        return jsonify({"error_code": "VALIDATION_ERROR", "details": err.messages}), 400

    group = current_app.services['messages'].create_group(data['name'], get_jwt_identity())
    return jsonify(GroupSchema().dump(group)), 201


@groups_bp.route('/stream', methods=['GET'])
@jwt_required()
def stream_groups():
    message_service = current_app.services['messages']
    return sse_response(snapshot_stream(message_service.subscribe_groups, GroupSchema(many=True).dump))


@groups_bp.route('/<string:group_id>', methods=['GET'])
@jwt_required()
def get_group(group_id: str):
    group = current_app.services['messages'].get_group(group_id)
    return jsonify(GroupSchema().dump(group)), 200


@groups_bp.route('/<string:group_id>/messages', methods=['GET'])
@jwt_required()
def list_group_messages(group_id: str):
    messages = current_app.services['messages'].list_group_messages(group_id)
    return jsonify({"messages": GroupMessageSchema(many=True).dump(messages)}), 200


@groups_bp.route('/<string:group_id>/messages', methods=['POST'])
@jwt_required()
def send_group_message(group_id: str):
    try:
        data = MessageCreateSchema().load(request.get_json())
    except ValidationError as err:
        return jsonify({"error_code": "VALIDATION_ERROR", "details": err.messages}), 400

    message = current_app.services['messages'].send_group_message(group_id, get_jwt_identity(), data['text'])
    return jsonify(GroupMessageSchema().dump(message)), 201


@groups_bp.route('/<string:group_id>/stream', methods=['GET'])
@jwt_required()
def stream_group_messages(group_id: str):
    message_service = current_app.services['messages']
    message_service.get_group(group_id)
    stream = snapshot_stream(
        lambda callback: message_service.subscribe_group_messages(group_id, callback),
        GroupMessageSchema(many=True).dump
    )
    return sse_response(stream)
