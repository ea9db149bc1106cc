from fastapi import HTTPException, Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import jwt, JWTError
from datetime import datetime, timezone, timedelta
import os

SECRET_KEY = os.environ.get('JWT_SECRET', 'geofence-attendance-dev-secret')
ALGORITHM = "HS256"

# مدة الجلسة حسب الدور (بالساعات)
TOKEN_EXPIRE_HOURS = {
    "super_admin": 12,
    "manager": 8,
    "employee": 12   # يغطي يوم عمل كامل أثناء المتابعة
}
DEFAULT_TOKEN_EXPIRE = 4

security = HTTPBearer()


def create_access_token(data: dict, role: str = "employee") -> str:
    """إنشاء توكن مع مدة صلاحية حسب الدور"""
    to_encode = data.copy()
    to_encode.setdefault("role", role)
    expire_hours = TOKEN_EXPIRE_HOURS.get(role, DEFAULT_TOKEN_EXPIRE)
    to_encode["exp"] = datetime.now(timezone.utc) + timedelta(hours=expire_hours)
    to_encode["iat"] = datetime.now(timezone.utc)
    to_encode["jti"] = os.urandom(16).hex()
    return jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)


def decode_access_token(token: str) -> dict:
    try:
        return jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
    except JWTError:
        raise HTTPException(status_code=401, detail="Invalid or expired token")


async def get_current_user(credentials: HTTPAuthorizationCredentials = Depends(security)):
    """التحقق من التوكن"""
    payload = decode_access_token(credentials.credentials)
    if not payload.get("username"):
        raise HTTPException(status_code=401, detail="Token has no username")
    return payload


def require_roles(*roles):
    async def checker(user=Depends(get_current_user)):
        if user.get('role') not in roles:
            raise HTTPException(status_code=403, detail="Access denied for your role")
        return user
    return checker
