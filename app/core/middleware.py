from fastapi import HTTPException, status, Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from app.core.firebase import verify_firebase_token
import logging

logger = logging.getLogger(__name__)

security = HTTPBearer()


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security)
) -> dict:
    """
    Dependency to get current authenticated user from Firebase token.
    Accounts are keyed by email, so tokens without an email are rejected.
    """
    logger.info("get_current_user: Entry")

    try:
        token = credentials.credentials
        decoded_token = verify_firebase_token(token)
        user_id = decoded_token.get('uid')
        email = decoded_token.get('email')

        if not user_id or not email:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid authentication credentials"
            )

        logger.info(f"get_current_user: Success - {user_id}")
        return {
            'uid': user_id,
            'email': email.strip().lower(),
            'name': decoded_token.get('name'),
            'token': decoded_token
        }
    except Exception as e:
        logger.error(f"get_current_user: Failure - {e}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )
