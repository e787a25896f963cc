from fastapi import APIRouter, BackgroundTasks, Depends
from fastapi.responses import JSONResponse

from crm.dependencies import get_auth_service, get_current_user_id
from crm.utils import success_response
from crm.utils.exceptions import InvalidOrExpiredToken
from .schemas import (
    ForgotPasswordRequest,
    LoginRequest,
    RegisterRequest,
    ResetPasswordRequest,
)
from .service import FORGOT_PASSWORD_MESSAGE, AuthService

auth_router = APIRouter()


@auth_router.post("/login")
async def login(
    body: LoginRequest,
    svc: AuthService = Depends(get_auth_service),
):
    """Authenticate user and return JWT + user + organization."""
    result = await svc.authenticate(email=body.email, password=body.password)
    return success_response(
        data=result.model_dump(by_alias=True, mode="json"),
        message="Login successful",
    )


@auth_router.post("/register")
async def register(
    body: RegisterRequest,
    background: BackgroundTasks,
    svc: AuthService = Depends(get_auth_service),
):
    """Create an organization and its admin user, then send a welcome email."""
    result = await svc.register(body)
    background.add_task(
        svc.send_welcome, body.email, f"{body.first_name} {body.last_name}"
    )
    return success_response(
        data=result.model_dump(by_alias=True, mode="json"),
        message="Registration successful",
        code=201,
    )


@auth_router.post("/forgot-password")
async def forgot_password(
    body: ForgotPasswordRequest,
    background: BackgroundTasks,
    svc: AuthService = Depends(get_auth_service),
):
    """
    Always answers with the same message. The account lookup, token issuance
    and email delivery run only after the response has been sent.
    """
    background.add_task(svc.request_password_reset, body.email)
    return success_response(message=FORGOT_PASSWORD_MESSAGE)


@auth_router.post("/reset-password")
async def reset_password(
    body: ResetPasswordRequest,
    svc: AuthService = Depends(get_auth_service),
):
    await svc.reset_password(body.token, body.password)
    return success_response(message="Password has been reset successfully")


@auth_router.get("/verify-reset-token/{token}")
async def verify_reset_token(
    token: str,
    svc: AuthService = Depends(get_auth_service),
):
    """Read-only validity check; the token is not consumed."""
    try:
        await svc.verify_reset_token(token)
    except InvalidOrExpiredToken as exc:
        return JSONResponse(status_code=400, content={"valid": False, "error": exc.detail})
    return {"valid": True}


@auth_router.get("/verify")
async def verify(
    user_id: str = Depends(get_current_user_id),
    svc: AuthService = Depends(get_auth_service),
):
    """Bearer token is valid and its user is still active."""
    session = await svc.get_session(user_id)
    return success_response(
        data=session.model_dump(by_alias=True, mode="json"),
        message="Token is valid",
    )


@auth_router.get("/profile")
async def profile(
    user_id: str = Depends(get_current_user_id),
    svc: AuthService = Depends(get_auth_service),
):
    """Fresh user + organization for the bearer of the token."""
    session = await svc.get_session(user_id)
    return success_response(data=session.model_dump(by_alias=True, mode="json"))
