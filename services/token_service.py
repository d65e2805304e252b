"""
token_service.py
Holt und speichert Zugangstokens des Ticketing-Anbieters pro Zugangscode.
Fetches and stores the ticketing provider's access tokens per access code.
"""

from datetime import timedelta
from typing import Optional

import requests
from flask import current_app

from datamanager.sql_data_manager import SQLDataManager
from utils import fetch_with_retry, utcnow

TOKEN_LIFETIME = timedelta(days=30)
REQUEST_TIMEOUT = 10  # Sekunden / seconds


class TokenServiceError(Exception):
    """Raised when a token cannot be fetched or stored."""


class TokenService:
    """
    TokenService
    Liefert ein gültiges Token: zuerst aus der Tabelle `tokens`, sonst frisch vom Anbieter.
    Returns a valid token: from the `tokens` table first, otherwise freshly from the provider.
    """

    _instance: Optional['TokenService'] = None

    def __init__(self, data_manager: Optional[SQLDataManager] = None):
        self.data_manager = data_manager or SQLDataManager()

    @classmethod
    def get_instance(cls) -> 'TokenService':
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    def _fetch_token(self, access_code: str) -> str:
        """
        Fragt ein neues Token beim Login-Endpunkt des Anbieters an.
        Requests a new token from the provider's login endpoint.
        """
        url = current_app.config.get('TICKETING_API_URL')
        if not url:
            raise TokenServiceError("TICKETING_API_URL is not configured.")

        current_app.logger.info(f"TokenService: Fetching token for access code: {access_code}")
        try:
            response = requests.post(url, json={
                'username': current_app.config.get('TICKETING_API_USERNAME'),
                'password': current_app.config.get('TICKETING_API_PASSWORD'),
                'accessCode': access_code,
            }, timeout=REQUEST_TIMEOUT)
            response.raise_for_status()
            data = response.json()
        except requests.exceptions.RequestException as e:
            current_app.logger.error(f"TokenService: API request failed: {e}")
            raise TokenServiceError(f"Failed to fetch token: {e}") from e
        except ValueError as e:
            raise TokenServiceError("Ticketing API returned invalid JSON.") from e

        token = data.get('token') if isinstance(data, dict) else None
        if not token:
            raise TokenServiceError("Ticketing API response did not contain a token.")
        return token

    def get_and_store_token(self, access_code: str) -> str:
        """
        Holt ein neues Token (mit Wiederholungen) und speichert es mit 30 Tagen Gültigkeit.
        Fetches a new token (with retries) and stores it with a 30-day expiry.
        """
        token = fetch_with_retry(
            lambda: self._fetch_token(access_code),
            retries=current_app.config.get('FETCH_RETRIES', 3),
            delay=current_app.config.get('FETCH_RETRY_DELAY', 1.0),
        )
        expiry = utcnow() + TOKEN_LIFETIME
        if self.data_manager.store_token(access_code, token, expiry) is None:
            raise TokenServiceError(f"Failed to store token for access code {access_code}.")
        current_app.logger.info(f"TokenService: Stored new token, expires {expiry.isoformat()}")
        return token

    def get_stored_token(self, access_code: str) -> Optional[str]:
        stored = self.data_manager.get_latest_token(access_code)
        if stored and stored.expired_date > utcnow():
            return stored.token
        if stored:
            current_app.logger.info("TokenService: Token not valid, reason: expired")
        return None

    def get_valid_token(self, access_code: str) -> str:
        """
        Liefert ein gespeichertes gültiges Token oder holt ein neues.
        Returns a stored valid token or fetches a new one.
        """
        stored = self.get_stored_token(access_code)
        if stored:
            current_app.logger.info("TokenService: Using stored token")
            return stored
        current_app.logger.info("TokenService: No valid stored token found, fetching new one")
        return self.get_and_store_token(access_code)


token_service = TokenService.get_instance()
