# connectsphere/services/google_auth_service.py

import logging
from typing import Optional
from google_auth_oauthlib.flow import Flow

class GoogleAuthService:
    """Google OAuth 2.0 authorization-code exchange."""

    SCOPES = [
        "openid",
        "https://www.googleapis.com/auth/userinfo.profile",
        "https://www.googleapis.com/auth/userinfo.email"
    ]

    @staticmethod
    def exchange_code_for_id_token(auth_code: str, client_secrets_path: str, redirect_uri: Optional[str] = None) -> str:
        """
        Exchanges an authorization code for tokens and returns the Google ID
        token, which Firebase accepts for federated sign-in.
        """
        try:
            flow = Flow.from_client_secrets_file(client_secrets_path, scopes=GoogleAuthService.SCOPES)
            # 'postmessage' is the redirect URI used by popup-based web clients.
            flow.redirect_uri = redirect_uri or "postmessage"

            flow.fetch_token(code=auth_code)

            id_token = flow.credentials.id_token
            if not id_token:
                raise ValueError("Google did not return an ID token for this authorization code.")
            return id_token

        except Exception as e:
            logging.error(f"Google OAuth code exchange failed: {e}", exc_info=True)
            raise
