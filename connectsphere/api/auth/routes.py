# connectsphere/api/auth/routes.py

import logging
import jwt
from flask import Blueprint, request, jsonify, current_app
from flask_jwt_extended import (
    create_access_token,
    create_refresh_token,
    jwt_required,
    get_jwt_identity
)
from marshmallow import ValidationError

from connectsphere.api.auth.schemas import PasswordSignInSchema, SignUpSchema, SocialLoginSchema, LogoutRequestSchema
from connectsphere.core.exceptions import AuthenticationError
from .services import auth_service

auth_bp = Blueprint('auth_bp', __name__)


def _issue_tokens(uid: str, profile: dict, is_new_user: bool):
    return jsonify({
        "access_token": create_access_token(identity=uid),
        "refresh_token": create_refresh_token(identity=uid),
        "user_id": uid,
        "is_new_user": is_new_user,
        "user_info": {
            "uid": uid,
            "email": profile.get('email'),
            "name": profile.get('name'),
            "avatar": profile.get('avatar')
        }
    }), 200


def _auth_failed(e: AuthenticationError):
    return jsonify({"error_code": "AUTHENTICATION_FAILED", "message": e.code}), 401


@auth_bp.route('/login', methods=['POST'])
def password_login():
    """Email/password sign-in."""
    identity = current_app.services['identity']
    try:
        data = PasswordSignInSchema().load(request.get_json())
        session = identity.sign_in_with_password(data['email'], data['password'])
        profile = auth_service.start_session(session)
        return _issue_tokens(session.uid, profile, session.is_new_user)
    except ValidationError as err:
        return jsonify({"error_code": "VALIDATION_ERROR", "details": err.messages}), 400
    except AuthenticationError as e:
        return _auth_failed(e)


@auth_bp.route('/signup', methods=['POST'])
def signup():
    """Creates an email/password account and its profile."""
    identity = current_app.services['identity']
    try:
        data = SignUpSchema().load(request.get_json())
        session = identity.sign_up(data['email'], data['password'], data.get('display_name'))
        profile = auth_service.start_session(session)
        return _issue_tokens(session.uid, profile, True)
    except ValidationError as err:
        return jsonify({"error_code": "VALIDATION_ERROR", "details": err.messages}), 400
    except AuthenticationError as e:
        return _auth_failed(e)


@auth_bp.route('/social', methods=['POST'])
def social_login():
    """Federated sign-in with Google or GitHub."""
    identity = current_app.services['identity']
    try:
        data = SocialLoginSchema().load(request.get_json())
        credential = data.get('credential')
        if not credential:
            credential = identity.exchange_google_code(data['auth_code'])
        session = identity.sign_in_with_idp(data['provider'], credential)
        profile = auth_service.start_session(session)
        return _issue_tokens(session.uid, profile, session.is_new_user)
    except ValidationError as err:
        return jsonify({"error_code": "VALIDATION_ERROR", "details": err.messages}), 400
    except AuthenticationError as e:
        return _auth_failed(e)
    except Exception as e:
        logging.error(f"Social login failed: {e}", exc_info=True)
        return jsonify({"error_code": "SOCIAL_LOGIN_FAILED", "message": "Social login failed."}), 500


@auth_bp.route('/session', methods=['POST'])
def session_from_id_token():
    """Exchanges a Firebase ID token (signed in on the client) for app tokens."""
    identity = current_app.services['identity']
    auth_header = request.headers.get("Authorization", "")
    if not auth_header.startswith("Bearer "):
        return jsonify({"error_code": "MISSING_ID_TOKEN", "message": "Authorization: Bearer <id_token> is required."}), 401
    try:
        claims = identity.verify_id_token(auth_header.split(" ", 1)[1].strip())
        existed = auth_service.user_service.get_profile(claims['uid']) is not None
        profile = auth_service.start_session_from_claims(claims)
        return _issue_tokens(claims['uid'], profile, not existed)
    except AuthenticationError as e:
        return _auth_failed(e)


@auth_bp.route('/token/refresh', methods=['POST'])
@jwt_required(refresh=True)
def refresh_token():
    """Issues a new access token from a valid refresh token."""
    current_user_id = get_jwt_identity()
    new_access_token = create_access_token(identity=current_user_id)
    return jsonify(access_token=new_access_token), 200


@auth_bp.route('/logout', methods=['POST'])
def logout():
    """Revokes the given access and refresh tokens."""
    identity = current_app.services['identity']
    try:
        data = LogoutRequestSchema().load(request.get_json())
        secret_key = current_app.config['JWT_SECRET_KEY']
        algorithm = current_app.config.get('JWT_ALGORITHM', 'HS256')

        # Expired tokens can still be revoked.
        decoded_access = jwt.decode(data['access_token'], secret_key, algorithms=[algorithm], options={"verify_exp": False})
        decoded_refresh = jwt.decode(data['refresh_token'], secret_key, algorithms=[algorithm], options={"verify_exp": False})

        auth_service.logout_user(decoded_access['jti'], decoded_access['exp'],
                                 decoded_refresh['jti'], decoded_refresh['exp'])
        identity.sign_out(decoded_access.get('sub'))
        return jsonify({"message": "Logged out."}), 200

    except ValidationError as e:
        return jsonify({"error_code": "VALIDATION_ERROR", "details": e.messages}), 400
    except jwt.PyJWTError as e:
        logging.error(f"JWT decode failed: {e}", exc_info=True)
        return jsonify({"error_code": "INVALID_TOKEN", "message": "Invalid token."}), 422
    except Exception as e:
        logging.error(f"Logout failed: {e}", exc_info=True)
        return jsonify({"error_code": "LOGOUT_FAILED", "message": "Logout failed."}), 500
