# connectsphere/services/identity_service.py
"""
Firebase Authentication client.

Credential exchange (email/password and federated Google/GitHub sign-in)
goes through the Identity Toolkit REST API; ID-token verification goes
through the Admin SDK. Session changes are broadcast to listeners registered
with on_auth_state_changed.
"""

import logging
from dataclasses import dataclass
from typing import Callable, List, Optional
from urllib.parse import urlencode

import requests
from firebase_admin import auth as firebase_auth
from flask import Flask

from connectsphere.core.exceptions import AuthenticationError
from connectsphere.services.google_auth_service import GoogleAuthService

IDENTITY_TOOLKIT_URL = "https://identitytoolkit.googleapis.com/v1/accounts:{method}"

# Federated providers accepted by sign_in_with_idp, and the credential each one posts.
PROVIDERS = {
    "google": ("google.com", "id_token"),
    "github": ("github.com", "access_token"),
}


@dataclass
class Session:
    """An authenticated principal as returned by the identity provider."""
    uid: str
    email: Optional[str]
    display_name: Optional[str]
    photo_url: Optional[str]
    id_token: str
    refresh_token: Optional[str]
    provider: str = "password"
    is_new_user: bool = False


class IdentityService:
    def __init__(self, api_key: Optional[str] = None, timeout: int = 10):
        self.api_key = api_key
        self.timeout = timeout
        self.google_client_secrets_path = None
        self.google_redirect_uri = None
        self._listeners: List[Callable[[Optional[Session]], None]] = []

    def init_app(self, app: Flask):
        """Reads the Web API key and OAuth settings from the app config."""
        self.api_key = self.api_key or app.config.get('FIREBASE_WEB_API_KEY')
        self.timeout = app.config.get('IDENTITY_TIMEOUT_SECONDS', self.timeout)
        self.google_client_secrets_path = app.config.get('GOOGLE_CLIENT_SECRETS_PATH')
        self.google_redirect_uri = app.config.get('GOOGLE_REDIRECT_URI')
        if not self.api_key:
            logging.warning("IdentityService: FIREBASE_WEB_API_KEY is not set; credential exchange is disabled.")

    # --- session listeners ---
    def on_auth_state_changed(self, callback: Callable[[Optional[Session]], None]) -> Callable[[], None]:
        """
        Registers a listener for sign-in/sign-out. Returns the unsubscribe callable.

        Listeners are process-wide: one identity client serves every request,
        so a listener sees the sign-ins and sign-outs of all users.
        """
        self._listeners.append(callback)

        def unsubscribe():
            if callback in self._listeners:
                self._listeners.remove(callback)
        return unsubscribe

    def _notify(self, session: Optional[Session]):
        for listener in list(self._listeners):
            try:
                listener(session)
            except Exception as e:
                logging.error(f"Auth state listener failed: {e}", exc_info=True)

    # --- credential exchange ---
    def _call(self, method: str, payload: dict) -> dict:
        if not self.api_key:
            raise RuntimeError("FIREBASE_WEB_API_KEY is not configured.")
        response = requests.post(
            IDENTITY_TOOLKIT_URL.format(method=method),
            params={"key": self.api_key},
            json=payload,
            timeout=self.timeout
        )
        if response.status_code != 200:
            try:
                message = response.json().get("error", {}).get("message", "")
            except ValueError:
                message = response.text
            code = message.split(" : ")[0] if message else f"HTTP_{response.status_code}"
            logging.warning(f"Identity Toolkit {method} rejected: {code}")
            raise AuthenticationError(code, message or code)
        return response.json()

    @staticmethod
    def _session_from(data: dict, provider: str) -> Session:
        return Session(
            uid=data["localId"],
            email=data.get("email"),
            display_name=data.get("displayName") or None,
            photo_url=data.get("photoUrl") or None,
            id_token=data["idToken"],
            refresh_token=data.get("refreshToken"),
            provider=provider,
            is_new_user=bool(data.get("isNewUser", False))
        )

    def sign_in_with_password(self, email: str, password: str) -> Session:
        data = self._call("signInWithPassword", {
            "email": email, "password": password, "returnSecureToken": True
        })
        session = self._session_from(data, "password")
        logging.info(f"Password sign-in: {session.uid}")
        self._notify(session)
        return session

    def sign_up(self, email: str, password: str, display_name: Optional[str] = None) -> Session:
        data = self._call("signUp", {
            "email": email, "password": password, "returnSecureToken": True
        })
        if display_name:
            updated = self._call("update", {
                "idToken": data["idToken"], "displayName": display_name, "returnSecureToken": True
            })
            data = {**data, **updated}
        data["isNewUser"] = True
        session = self._session_from(data, "password")
        logging.info(f"Account created: {session.uid}")
        self._notify(session)
        return session

    def sign_in_with_idp(self, provider: str, credential: str, request_uri: str = "http://localhost") -> Session:
        """
        Federated sign-in. ``credential`` is a Google ID token for 'google' and
        an OAuth access token for 'github'.
        """
        if provider not in PROVIDERS:
            raise ValueError(f"Unsupported sign-in provider: {provider}")
        provider_id, credential_field = PROVIDERS[provider]
        data = self._call("signInWithIdp", {
            "postBody": urlencode({credential_field: credential, "providerId": provider_id}),
            "requestUri": request_uri,
            "returnSecureToken": True,
            "returnIdpCredential": True
        })
        session = self._session_from(data, provider)
        logging.info(f"{provider} sign-in: {session.uid} (new: {session.is_new_user})")
        self._notify(session)
        return session

    def exchange_google_code(self, auth_code: str) -> str:
        """Trades a Google authorization code for the Google ID token."""
        if not self.google_client_secrets_path:
            raise ValueError("GOOGLE_CLIENT_SECRETS_PATH is not configured.")
        return GoogleAuthService.exchange_code_for_id_token(
            auth_code=auth_code,
            client_secrets_path=self.google_client_secrets_path,
            redirect_uri=self.google_redirect_uri
        )

    def verify_id_token(self, id_token: str) -> dict:
        """Verifies a Firebase ID token and returns its claims."""
        try:
            return firebase_auth.verify_id_token(id_token)
        except (ValueError, firebase_auth.InvalidIdTokenError, firebase_auth.ExpiredIdTokenError) as e:
            raise AuthenticationError("INVALID_ID_TOKEN", str(e))

    def sign_out(self, uid: str):
        logging.info(f"Signed out: {uid}")
        self._notify(None)
