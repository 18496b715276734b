import logging
import os

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from app.lib.api_client import supabase_admin

logger = logging.getLogger(__name__)

# === Auth 核心配置 ===
# 中文注释:
# 1. 密钥来源于 Supabase Project Settings 中的 JWT Secret。
# 2. 本地/测试环境未配置时使用开发默认值，测试用例按同一默认值签发 token。
DEV_JWT_SECRET = "dev-secret-change-me"
ALGORITHM = "HS256"
AUDIENCE = "authenticated"

# auto_error=False：缺少 Authorization 头时由我们自己返回 401（而不是 403）
security = HTTPBearer(auto_error=False)


def _jwt_secret() -> str:
    return os.environ.get("SUPABASE_JWT_SECRET") or DEV_JWT_SECRET


def _unauthorized(detail: str = "Not authenticated") -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def decode_access_token(token: str) -> dict:
    """
    解码并验证 Supabase JWT，返回 {"id", "email"}。

    中文注释:
    - HS256 token 用本地密钥校验，减少一次 Auth API 往返。
    - 其他算法（Supabase JWT Signing Keys）回退到 supabase.auth.get_user。
    """
    try:
        header = jwt.get_unverified_header(token)
    except JWTError:
        raise _unauthorized("Invalid token")

    if header.get("alg") == ALGORITHM:
        try:
            payload = jwt.decode(token, _jwt_secret(), algorithms=[ALGORITHM], audience=AUDIENCE)
        except JWTError as e:
            logger.info("JWT verification failed: %s", e)
            raise _unauthorized("Token is invalid or expired")
        user_id = payload.get("sub")
        if not user_id:
            raise _unauthorized("Token has no subject")
        return {"id": str(user_id), "email": payload.get("email")}

    try:
        response = supabase_admin.auth.get_user(token)
        user = response.user if response else None
    except Exception as e:
        # 中文注释: Supabase 配置缺失/网络异常时统一视为鉴权失败，不泄露内部错误
        logger.warning("Supabase auth fallback failed: %s", e)
        raise _unauthorized("Token is invalid or expired")

    if not user:
        raise _unauthorized("Token is invalid or expired")
    return {"id": str(user.id), "email": user.email}


async def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
) -> dict:
    """
    当前调用者身份（未登录 → 401）
    """
    if credentials is None or not credentials.credentials:
        raise _unauthorized()
    return decode_access_token(credentials.credentials)
