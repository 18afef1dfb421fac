import logging

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse, RedirectResponse
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.database import get_db
from app.errors import InvalidCredentials, ValidationFailed
from app.mail import Mailer, get_mailer
from app.oauth import GoogleOAuth, OAuthError, get_google_oauth
from app.schemas import LoginRequest, SendEmailRequest, SignupRequest
from app.security import clear_token_cookie, set_token_cookie
from app.services import user_service
from app.services.auth_service import google_strategy, password_strategy

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/signup", status_code=201)
async def signup(data: SignupRequest, db: AsyncSession = Depends(get_db)):
    try:
        return await user_service.create_user(db, data)
    except IntegrityError:
        raise ValidationFailed("A user with this email already exists")


@router.post("/login")
async def login(data: LoginRequest, db: AsyncSession = Depends(get_db)):
    user = await password_strategy.authenticate(db, (data.email, data.password))
    response = JSONResponse(
        {"message": "login success!", "user": user_service.user_to_dict(user)}
    )
    set_token_cookie(response, user.id)
    return response


@router.post("/logout")
async def logout():
    response = JSONResponse({"message": "logout success!"})
    clear_token_cookie(response)
    return response


@router.get("/login/google")
async def login_google(oauth: GoogleOAuth = Depends(get_google_oauth)):
    try:
        url = oauth.get_authorize_url()
    except OAuthError as exc:
        raise InvalidCredentials(str(exc))
    return RedirectResponse(url, status_code=302)


@router.get("/login/google/callback")
async def login_google_callback(
    code: str = Query(...),
    oauth: GoogleOAuth = Depends(get_google_oauth),
    db: AsyncSession = Depends(get_db),
):
    """Finish the Google handshake, set the cookie and send the browser home."""
    try:
        identity = await oauth.authenticate(code)
    except OAuthError as exc:
        logger.info("Google login failed: %s", exc)
        raise InvalidCredentials(str(exc))

    user = await google_strategy.authenticate(db, identity)
    response = RedirectResponse(settings.FRONTEND_REDIRECT_URL, status_code=302)
    set_token_cookie(response, user.id)
    return response


@router.post("/send-email")
async def send_email(data: SendEmailRequest, mailer: Mailer = Depends(get_mailer)):
    try:
        await mailer.send(data.to, data.subject, data.text)
    except Exception as exc:
        logger.warning("Mail delivery to %s failed: %s", data.to, exc)
        return JSONResponse(
            status_code=500, content={"success": False, "message": str(exc)}
        )
    return {"success": True}
