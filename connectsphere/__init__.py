# connectsphere/__init__.py

# =====================================================================================
# 1. Environment (loaded first)
# =====================================================================================
from dotenv import load_dotenv
load_dotenv()

# =====================================================================================
# 2. Module imports
# =====================================================================================
import os
import logging
from flask import Flask, jsonify
from marshmallow import ValidationError
from flask_jwt_extended import JWTManager
from werkzeug.exceptions import HTTPException
import firebase_admin
from firebase_admin import credentials, firestore

# - config
from connectsphere.core.config import config_by_name
from connectsphere.core.exceptions import AuthenticationError, ConflictError, NotFoundError, PartialDeleteError

# - API blueprints
from connectsphere.api.auth.routes import auth_bp
from connectsphere.api.uploads.routes import uploads_bp
from connectsphere.api.users.routes import users_bp
from connectsphere.api.friends.routes import friends_bp
from connectsphere.api.posts.routes import posts_bp
from connectsphere.api.feed.routes import feed_bp
from connectsphere.api.messages.routes import messages_bp, groups_bp

# - services
from connectsphere.services.storage_service import StorageService
from connectsphere.services.identity_service import IdentityService
from connectsphere.api.auth.services import auth_service
from connectsphere.api.users.services import UserService
from connectsphere.api.friends.services import FriendService
from connectsphere.api.feed.services import FeedService
from connectsphere.api.posts.services import PostService
from connectsphere.api.messages.services import MessageService

def create_app(config_name=None, db=None, bucket=None, identity=None):
    """
    Flask application factory.

    ``db``, ``bucket`` and ``identity`` replace the Firestore client, the
    Storage bucket and the identity client; when ``db`` is given Firebase
    is not initialized at all.
    """
    # =====================================================================================
    # 3. Flask app and base config
    # =====================================================================================
    config_name = config_name or os.getenv('FLASK_ENV', 'development')

    app = Flask(__name__)
    app.config.from_object(config_by_name[config_name])
    app.json.ensure_ascii = False

    # =====================================================================================
    # 4. Extensions and external services
    # =====================================================================================
    jwt = JWTManager(app)

    if db is None:
        if not firebase_admin._apps:
            cred_path = app.config['FIREBASE_CREDENTIALS_PATH']
            if not cred_path or not os.path.exists(cred_path):
                raise FileNotFoundError(f"Firebase credentials file not found: {cred_path}")
            cred = credentials.Certificate(cred_path)
            firebase_admin.initialize_app(cred, {
                'storageBucket': app.config['FIREBASE_STORAGE_BUCKET']
            })
        db = firestore.client()

    # =====================================================================================
    # 5. Service instances in 'app.services' (dependency injection)
    # =====================================================================================
    app.services = {}

    # 5-1. Shared services the domain services build on
    try:
        storage_instance = StorageService(bucket=bucket)
        storage_instance.init_app(app)
        app.services['storage'] = storage_instance
        logging.info("Storage service initialized successfully")
    except Exception as e:
        logging.error(f"Failed to initialize storage service: {e}")
        raise

    identity_instance = identity or IdentityService()
    identity_instance.init_app(app)
    app.services['identity'] = identity_instance

    # 5-2. Domain services
    app.services['friends'] = FriendService(db=db)
    app.services['users'] = UserService(
        storage_service=app.services['storage'],
        db=db,
        friend_service=app.services['friends']
    )
    app.services['feed'] = FeedService(
        friend_service=app.services['friends'],
        db=db,
        max_workers=app.config.get('FEED_MAX_WORKERS')
    )
    app.services['posts'] = PostService(storage_service=app.services['storage'], db=db)
    app.services['messages'] = MessageService(db=db)

    auth_service.init_app(app, user_service=app.services['users'], db=db)
    app.services['auth'] = auth_service
    identity_instance.on_auth_state_changed(auth_service.log_auth_state)

    @jwt.token_in_blocklist_loader
    def check_if_token_revoked(jwt_header, jwt_payload):
        return auth_service.is_token_revoked(jwt_payload)

    # =====================================================================================
    # 6. Blueprints
    # =====================================================================================
    app.register_blueprint(auth_bp, url_prefix='/api/auth')
    app.register_blueprint(uploads_bp, url_prefix='/api/uploads')
    app.register_blueprint(users_bp, url_prefix='/api/users')
    app.register_blueprint(friends_bp, url_prefix='/api/friends')
    app.register_blueprint(posts_bp, url_prefix='/api/posts')
    app.register_blueprint(feed_bp, url_prefix='/api/feed')
    app.register_blueprint(messages_bp, url_prefix='/api/messages')
    app.register_blueprint(groups_bp, url_prefix='/api/groups')

    # =====================================================================================
    # 7. Global error handlers
    # =====================================================================================
    @app.errorhandler(ValidationError)
    def handle_marshmallow_validation(err):
        response = {"error_code": "VALIDATION_ERROR", "details": err.messages}
        return jsonify(response), 400

    @app.errorhandler(NotFoundError)
    def handle_not_found(err):
        return jsonify({"error_code": "NOT_FOUND", "message": str(err)}), 404

    @app.errorhandler(ValueError)
    def handle_bad_input(err):
        return jsonify({"error_code": "INVALID_INPUT", "message": str(err)}), 400

    @app.errorhandler(PermissionError)
    def handle_forbidden(err):
        return jsonify({"error_code": "FORBIDDEN", "message": str(err)}), 403

    @app.errorhandler(ConflictError)
    def handle_conflict(err):
        return jsonify({"error_code": "CONFLICT", "message": str(err)}), 409

    @app.errorhandler(AuthenticationError)
    def handle_authentication(err):
        return jsonify({"error_code": "AUTHENTICATION_FAILED", "message": err.code}), 401

    @app.errorhandler(PartialDeleteError)
    def handle_partial_delete(err):
        logging.error(f"Partial delete: {err} (deleted={err.deleted}, remaining={err.remaining})")
        response = {
            "error_code": "PARTIAL_DELETE",
            "message": str(err),
            "deleted": err.deleted,
            "remaining": err.remaining
        }
        return jsonify(response), 500

    @app.errorhandler(Exception)
    def handle_generic_exception(err):
        # Werkzeug HTTP errors (404 route, 405 ...) keep their own status.
        if isinstance(err, HTTPException):
            return jsonify({"error_code": err.name.upper().replace(' ', '_'), "message": err.description}), err.code
        logging.error(f"An unhandled exception occurred: {err}", exc_info=True)
        response = {"error_code": "INTERNAL_SERVER_ERROR", "message": "An unexpected server error occurred."}
        return jsonify(response), 500

    # =====================================================================================
    # 8. Logging and return
    # =====================================================================================
    if not app.debug:
        logging.basicConfig(level=logging.INFO, format='%(asctime)s %(levelname)s: %(message)s [in %(pathname)s:%(lineno)d]')

    logging.info(f"Flask app created for '{config_name}' environment.")

    return app
