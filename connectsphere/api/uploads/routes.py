# connectsphere/api/uploads/routes.py

import logging
from flask import request, jsonify, Blueprint, current_app
from flask_jwt_extended import jwt_required, get_jwt_identity
from marshmallow import Schema, fields, validate, ValidationError

from connectsphere.services.storage_service import StorageService

# Every route here is mounted under '/api/uploads'.
uploads_bp = Blueprint('uploads', __name__)

class UploadUrlRequestSchema(Schema):
    upload_type = fields.Str(required=True, validate=validate.OneOf(list(StorageService.UPLOAD_FOLDERS)))
    filename = fields.Str(required=True, validate=validate.Length(min=1))
    content_type = fields.Str(required=True)


@uploads_bp.route('/url', methods=['POST'])
@jwt_required()
def get_upload_url():
    """
    Issues a pre-signed upload URL.
    The client PUTs the file there, then hands the returned file_path to
    PATCH /api/users/me/avatar or /api/users/me/cover-image.
    """
    user_id = get_jwt_identity()
    try:
        data = UploadUrlRequestSchema().load(request.get_json(silent=True) or {})
    except ValidationError as err:
        logging.warning(f"Upload URL request rejected: {err.messages}")
        return jsonify({"error_code": "INVALID_PARAMETERS", "details": err.messages}), 400

    storage_service = current_app.services['storage']
    try:
        url_info = storage_service.generate_upload_url(user_id, data['upload_type'], data['filename'], data['content_type'])
        return jsonify(url_info), 200
    except Exception as e:
        logging.error(f"Signed URL generation failed: {e}", exc_info=True)
        return jsonify({"error_code": "URL_GENERATION_FAILED", "message": "Could not create an upload URL."}), 500
