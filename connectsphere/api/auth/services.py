# connectsphere/api/auth/services.py
import logging
from datetime import datetime, timezone
from typing import Dict, Any, Optional
from firebase_admin import firestore
from flask import Flask

from connectsphere.api.users.services import UserService
from connectsphere.services.identity_service import Session
from connectsphere.utils.datetime_utils import DateTimeUtils

class AuthService:
    """
    App sessions on top of Firebase Authentication: first-session profile
    creation and the revoked-token list used by flask-jwt-extended.
    """
    def __init__(self):
        self.db = None
        self.revoked_tokens_ref = None
        self.user_service: Optional[UserService] = None
        self.app: Optional[Flask] = None

    def init_app(self, app: Flask, user_service: UserService, db=None):
        """Called from create_app to bind the store and the profile service."""
        self.db = db or firestore.client()
        self.revoked_tokens_ref = self.db.collection('revoked_tokens')
        self.user_service = user_service
        self.app = app

    def start_session(self, session: Session) -> Dict[str, Any]:
        """Ensures the signed-in user has a profile document and returns it."""
        return self.user_service.ensure_profile(
            session.uid,
            email=session.email,
            name=session.display_name,
            avatar=session.photo_url
        )

    def start_session_from_claims(self, claims: dict) -> Dict[str, Any]:
        """Same as start_session, for a verified Firebase ID token."""
        return self.user_service.ensure_profile(
            claims['uid'],
            email=claims.get('email'),
            name=claims.get('name'),
            avatar=claims.get('picture')
        )

    # --- session audit ---
    @staticmethod
    def log_auth_state(session: Optional[Session]):
        """Listener registered on the identity client by create_app."""
        if session is None:
            logging.info("Auth state: signed out.")
        else:
            logging.info(f"Auth state: {session.uid} signed in via {session.provider}"
                         f"{' (new user)' if session.is_new_user else ''}.")

    # --- blocklist ---

    def add_token_to_blocklist(self, jti: str, expires: datetime):
        """Stores the token's jti with its expiry."""
        try:
            token_data = {
                'revoked_at': DateTimeUtils.now(),
                'expires_at': expires
            }
            self.revoked_tokens_ref.document(jti).set(DateTimeUtils.for_firestore(token_data))
        except Exception as e:
            logging.error(f"Blocklist insert failed (jti: {jti}): {e}")
            raise

    def is_token_revoked(self, jwt_payload: dict) -> bool:
        jti = jwt_payload['jti']
        return self.revoked_tokens_ref.document(jti).get().exists

    def logout_user(self, access_jti: str, access_exp: int, refresh_jti: str, refresh_exp: int):
        """Revokes both the access and the refresh token."""
        self.add_token_to_blocklist(access_jti, datetime.fromtimestamp(access_exp, tz=timezone.utc))
        self.add_token_to_blocklist(refresh_jti, datetime.fromtimestamp(refresh_exp, tz=timezone.utc))
        logging.info(f"Logout complete. JTI: {access_jti[:8]}..., {refresh_jti[:8]}...")

auth_service = AuthService()
