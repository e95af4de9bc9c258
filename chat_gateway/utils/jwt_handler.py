import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from fastapi import Depends, HTTPException
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt

from chat_gateway.config import ACCESS_TOKEN_EXPIRE_MINUTES, JWT_ALG, SECRET_KEY

# Logger setup
logger = logging.getLogger("jwt_handler")

# Tokens are issued by the external auth service; this side only verifies them.
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/users/login")


# ---------- Token helpers ----------
def create_access_token(data: Dict[str, Any], expires_delta: Optional[timedelta] = None) -> str:
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, SECRET_KEY, algorithm=JWT_ALG)


# --- verification of tokens----#
def verify_token(token: str) -> Dict[str, str]:
    try:
        payload = jwt.decode(token, SECRET_KEY, algorithms=[JWT_ALG])
    except JWTError as e:
        logger.warning(f"JWT error: {e}")
        raise HTTPException(status_code=401, detail="Invalid or expired token")

    user_id = payload.get("sub") or payload.get("user_id")
    if not user_id:
        raise HTTPException(status_code=401, detail="Invalid token payload")

    return {
        "user_id": str(user_id),
        "username": str(payload.get("username") or ""),
    }


# Dependency for protected routes---#
def require_user(token: str = Depends(oauth2_scheme)) -> Dict[str, str]:
    return verify_token(token)
