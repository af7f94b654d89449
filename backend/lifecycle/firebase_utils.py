"""
Firebase Admin SDK utilities: the identity boundary of the service.
"""
import os
import logging
from typing import Optional

import firebase_admin
from firebase_admin import auth, credentials
from firebase_admin import exceptions as firebase_exceptions

logger = logging.getLogger(__name__)


_app = None


class IdentityProviderError(Exception):
    """Firebase rejected or could not process an identity call."""


class IdentityAlreadyExists(IdentityProviderError):
    pass


def initialize_firebase() -> Optional[firebase_admin.App]:
    """
    Initialize Firebase Admin SDK.

    Returns:
        Firebase app instance or None if initialization fails
    """
    global _app

    if _app is not None:
        return _app

    cred_path = os.environ.get('FIREBASE_CREDENTIALS')

    if not cred_path:
        logger.warning("FIREBASE_CREDENTIALS environment variable not set")
        return None

    if not os.path.exists(cred_path):
        logger.error(f"Firebase credentials file not found at: {cred_path}")
        return None

    try:
        cred = credentials.Certificate(cred_path)
        _app = firebase_admin.initialize_app(cred)
        logger.info("Firebase Admin SDK initialized successfully")
        return _app
    except (ValueError, IOError) as e:
        logger.error(f"Failed to initialize Firebase: {e}")
        return None


def verify_firebase_token(id_token: str) -> Optional[dict]:
    """
    Verify a Firebase ID token.

    Args:
        id_token: Firebase ID token from client

    Returns:
        Decoded token claims or None if verification fails
    """
    if initialize_firebase() is None:
        return None

    try:
        return auth.verify_id_token(id_token)
    except (ValueError, auth.InvalidIdTokenError, auth.ExpiredIdTokenError,
            auth.RevokedIdTokenError, auth.CertificateFetchError) as e:
        logger.error(f"Token verification failed: {e}")
        return None


def create_firebase_user(email: str, password: str, display_name: Optional[str] = None) -> dict:
    """
    Create a new Firebase user.

    Raises:
        IdentityAlreadyExists: the email is already registered
        IdentityProviderError: Firebase is unavailable or refused the call
    """
    if initialize_firebase() is None:
        raise IdentityProviderError('Authentication service is not available.')

    try:
        user = auth.create_user(
            email=email,
            password=password,
            display_name=display_name or None,
        )
    except auth.EmailAlreadyExistsError as e:
        raise IdentityAlreadyExists(str(e)) from e
    except (ValueError, firebase_exceptions.FirebaseError) as e:
        logger.error(f"Failed to create Firebase user: {e}")
        raise IdentityProviderError(str(e)) from e

    return {
        'uid': user.uid,
        'email': user.email,
        'display_name': user.display_name,
    }


def delete_firebase_user(uid: str) -> None:
    """Best-effort rollback of a Firebase user created during a failed sign-up."""
    if initialize_firebase() is None:
        return
    try:
        auth.delete_user(uid)
    except firebase_exceptions.FirebaseError as e:
        logger.warning(f"Failed to roll back Firebase user {uid}: {e}")


def get_firebase_user(uid: str) -> Optional[dict]:
    if initialize_firebase() is None:
        return None
    try:
        user = auth.get_user(uid)
    except (ValueError, firebase_exceptions.FirebaseError) as e:
        logger.error(f"Failed to get Firebase user {uid}: {e}")
        return None
    return {
        'uid': user.uid,
        'email': user.email,
        'display_name': user.display_name,
    }
