# file: services/account.py

import logging

import firebase_admin
from firebase_admin import auth, exceptions

from app.utils.errors import BadRequest, NotFound, ProviderError

logger = logging.getLogger(__name__)


def reset_password(email: str, new_password: str, firebase_app: firebase_admin.App = None) -> str:
    """Sets a new password for the Firebase user registered under `email`. Returns the uid."""
    try:
        user = auth.get_user_by_email(email, app=firebase_app)
        auth.update_user(user.uid, password=new_password, app=firebase_app)
    except auth.UserNotFoundError:
        raise NotFound("No account found for this email")
    except ValueError as e:
        raise BadRequest(str(e))
    except exceptions.FirebaseError as e:
        logger.error(f"Reset password error: {e}")
        raise ProviderError("Failed to update password")

    logger.info(f"Password updated for user {user.uid}")
    return user.uid
