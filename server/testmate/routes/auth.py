"""
Account routes: signup and email verification, login/logout and the
password reset flow.
"""
import logging

from fastapi import APIRouter, BackgroundTasks, Depends

from testmate.config import settings
from testmate.deps import (
    get_bearer_token,
    get_credentials,
    get_current_account,
    get_mailer,
    get_one_time_tokens,
    get_session_tokens,
    valid_reset_account,
)
from testmate.errors import ConflictError, NotFoundError
from testmate.models import Account, AccountRole, TokenPurpose
from testmate.schemas import (
    AccountResponse,
    AdminLoginRequest,
    ForgotPasswordRequest,
    LoginRequest,
    LoginResponse,
    MessageResponse,
    ResetPasswordRequest,
    SignupRequest,
    VerifyEmailRequest,
)
from testmate.services.credentials import CredentialStore
from testmate.services.mailer import (
    Mailer,
    generate_email_template,
    password_reset_template,
    plain_email_template,
)
from testmate.services.one_time_tokens import OneTimeTokenService
from testmate.services.session_tokens import SessionTokenRegistry

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Auth"])


@router.post("/signup", status_code=201)
def signup(
    request: SignupRequest,
    background_tasks: BackgroundTasks,
    store: CredentialStore = Depends(get_credentials),
    tokens: OneTimeTokenService = Depends(get_one_time_tokens),
    mailer: Mailer = Depends(get_mailer),
):
    """Register a provisional account and mail its verification code."""
    account = store.register(
        name=request.name,
        email=request.email,
        phone=request.phone,
        work=request.work,
        password=request.password,
        role=request.role,
        year_of_study=request.year_of_study,
    )
    otp = tokens.issue(account, TokenPurpose.VERIFICATION)
    background_tasks.add_task(
        mailer.deliver, account.email, "Verify your email account",
        generate_email_template(otp, account.name),
    )
    return {
        "message": "User registered succesfully",
        "user": AccountResponse.model_validate(account),
    }


@router.post("/verify-email")
def verify_email(
    request: VerifyEmailRequest,
    background_tasks: BackgroundTasks,
    store: CredentialStore = Depends(get_credentials),
    tokens: OneTimeTokenService = Depends(get_one_time_tokens),
    mailer: Mailer = Depends(get_mailer),
):
    account = store.get(request.user_id)
    if account.verified:
        raise ConflictError("This account is already verified!")

    tokens.validate(account, TokenPurpose.VERIFICATION, request.otp)
    background_tasks.add_task(
        mailer.deliver, account.email, "Welcome Email",
        plain_email_template(account.name, "Email Verified Successfully. Thanks for connecting with us!"),
    )
    return {
        "success": True,
        "message": "Your email is verified.",
        "user": AccountResponse.model_validate(account),
    }


def _login(
    email: str,
    password: str,
    role: AccountRole,
    store: CredentialStore,
    registry: SessionTokenRegistry,
) -> LoginResponse:
    account = store.authenticate(email, password, role)
    token = registry.issue(account.id)
    registry.record_and_prune(account, token)
    logger.info("%s %s logged in", role.value, account.email)
    return LoginResponse(token=token, user=AccountResponse.model_validate(account))


@router.post("/login", response_model=LoginResponse, status_code=201)
def login(
    request: LoginRequest,
    store: CredentialStore = Depends(get_credentials),
    registry: SessionTokenRegistry = Depends(get_session_tokens),
):
    return _login(request.email, request.password, request.role, store, registry)


@router.post("/admin/login", response_model=LoginResponse)
def admin_login(
    request: AdminLoginRequest,
    store: CredentialStore = Depends(get_credentials),
    registry: SessionTokenRegistry = Depends(get_session_tokens),
):
    return _login(request.email, request.password, AccountRole.ADMIN, store, registry)


@router.post("/logout", response_model=MessageResponse)
def logout(
    token: str = Depends(get_bearer_token),
    account: Account = Depends(get_current_account),
    registry: SessionTokenRegistry = Depends(get_session_tokens),
):
    registry.revoke(account, token)
    return MessageResponse(message="Signed-out successfully!")


@router.get("/me", response_model=AccountResponse)
def me(account: Account = Depends(get_current_account)):
    return account


@router.post("/forgot-password", response_model=MessageResponse)
def forgot_password(
    request: ForgotPasswordRequest,
    background_tasks: BackgroundTasks,
    store: CredentialStore = Depends(get_credentials),
    tokens: OneTimeTokenService = Depends(get_one_time_tokens),
    mailer: Mailer = Depends(get_mailer),
):
    """Mail a reset link; one link per account per cool-down window."""
    account = store.find_by_email(request.email)
    if account is None:
        raise NotFoundError("User not found, invalid request!")
    store.discard_if_unverified(account)

    secret = tokens.issue(account, TokenPurpose.RESET)
    url = f"{settings.reset_url_base}?token={secret}&id={account.id}"
    background_tasks.add_task(
        mailer.deliver, account.email, "Password Reset", password_reset_template(url)
    )
    return MessageResponse(message="Password reset link is sent to your email.")


@router.get("/reset-password", response_model=MessageResponse)
def check_reset_link(account: Account = Depends(valid_reset_account)):
    return MessageResponse(message="Reset token is valid.")


@router.post("/reset-password", response_model=MessageResponse)
def reset_password(
    request: ResetPasswordRequest,
    background_tasks: BackgroundTasks,
    account: Account = Depends(valid_reset_account),
    store: CredentialStore = Depends(get_credentials),
    tokens: OneTimeTokenService = Depends(get_one_time_tokens),
    mailer: Mailer = Depends(get_mailer),
):
    store.change_password(account, request.password)
    tokens.consume(account, TokenPurpose.RESET)
    background_tasks.add_task(
        mailer.deliver, account.email, "Password Reset Success",
        plain_email_template(
            account.name,
            "Password Reset Successfully. Now you can login to your account with your new password!",
        ),
    )
    return MessageResponse(message="Password reset successfully!")
