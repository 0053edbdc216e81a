import hmac

from fastapi import APIRouter, HTTPException, Response

from storefront.mockapi.core.auth import create_session_token
from storefront.mockapi.core.config import settings
from storefront.schemas import SignIn

router = APIRouter()  # main.py mounts at /api/auth


@router.post("/login")
def login(payload: SignIn, response: Response) -> dict:
    email_ok = hmac.compare_digest(payload.email.lower(), settings.RETAILER_EMAIL.lower())
    password_ok = hmac.compare_digest(payload.password, settings.RETAILER_PASSWORD)
    if not (email_ok and password_ok):
        raise HTTPException(status_code=401, detail="Invalid credentials")
    token = create_session_token(payload.email.lower(), "retailer")
    response.set_cookie(
        settings.SESSION_COOKIE,
        token,
        httponly=True,
        samesite="lax",
        max_age=settings.SESSION_EXPIRES_SECONDS,
    )
    return {"email": payload.email.lower(), "role": "retailer"}


@router.post("/logout")
def logout(response: Response) -> dict:
    response.delete_cookie(settings.SESSION_COOKIE)
    return {"status": "ok"}
