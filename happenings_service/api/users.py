import asyncio
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Header, status
from fastapi.responses import JSONResponse

from happenings_service.api.deps import AuthenticatedUser, Services, bearer_token, current_user, get_services
from happenings_service.errors import Forbidden, NotFound, UpstreamError, ValidationFailed
from happenings_service.models import (
  LoginResponse,
  MessageResponse,
  RegisterResponse,
  User,
  UserLogin,
  UserRegister,
  UserUpdate,
)
from happenings_service.providers import IdentityError
from happenings_service.storage.tables import UserRow

logger = logging.getLogger("happenings_service")

router = APIRouter(prefix="/api/users", tags=["users"])


def _to_model(row: UserRow) -> User:
  return User(
    userId=row.id,
    name=row.name,
    email=row.email,
    dateOfRegistration=row.registered_at,
    hasDeviceToken=bool(row.fcm_token),
  )


def _identity_failure(exc: IdentityError) -> Exception:
  if exc.status_code >= 500:
    return UpstreamError(exc.code)
  return ValidationFailed(exc.code)


@router.post("/register", status_code=status.HTTP_201_CREATED, response_model=RegisterResponse)
async def register_user(payload: UserRegister, services: Services = Depends(get_services)):
  if not payload.name or not payload.email or not payload.password:
    raise ValidationFailed("Missing required fields")

  try:
    session = await services.identity.sign_up(payload.email, payload.password, display_name=payload.name)
  except IdentityError as exc:
    if exc.code.startswith("EMAIL_EXISTS"):
      return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={
          "error": {
            "code": "auth/email-already-in-use",
            "message": "The email address is already in use by another account.",
          }
        },
      )
    logger.info("Registration rejected: %s", exc.code)
    raise _identity_failure(exc) from exc

  await asyncio.to_thread(services.repository.create_user, session.userId, payload.name, payload.email)
  return RegisterResponse(message="User registered successfully", userId=session.userId)


@router.post("/login", response_model=LoginResponse)
async def login_user(payload: UserLogin, services: Services = Depends(get_services)):
  if not payload.email or not payload.password:
    raise ValidationFailed("Missing required fields")
  try:
    session = await services.identity.sign_in(payload.email, payload.password)
  except IdentityError as exc:
    logger.info("Login rejected: %s", exc.code)
    return JSONResponse(
      status_code=status.HTTP_401_UNAUTHORIZED,
      content={"message": "Invalid credentials", "error": exc.code},
    )
  return LoginResponse(message="Login successful", userId=session.userId, token=session.idToken)


@router.post("/logout", response_model=MessageResponse)
async def logout_user(authorization: Optional[str] = Header(default=None)) -> MessageResponse:
  # id tokens are stateless; the client drops its copy and it expires upstream
  if bearer_token(authorization) is None:
    raise ValidationFailed("No session found")
  return MessageResponse(message="Logout successful")


@router.get("", response_model=List[User])
def get_all_users(
  user: AuthenticatedUser = Depends(current_user),
  services: Services = Depends(get_services),
) -> List[User]:
  return [_to_model(row) for row in services.repository.list_users()]


@router.get("/{user_id}", response_model=User)
def get_user_by_id(
  user_id: str,
  user: AuthenticatedUser = Depends(current_user),
  services: Services = Depends(get_services),
) -> User:
  row = services.repository.get_user(user_id)
  if row is None:
    raise NotFound("User not found")
  return _to_model(row)


@router.put("/{user_id}", response_model=MessageResponse)
async def update_user(
  user_id: str,
  payload: UserUpdate,
  user: AuthenticatedUser = Depends(current_user),
  services: Services = Depends(get_services),
) -> MessageResponse:
  if user.user_id != user_id:
    raise Forbidden("You are not authorized to update this account")
  if await asyncio.to_thread(services.repository.get_user, user_id) is None:
    raise NotFound("User not found")

  if payload.email or payload.password or payload.name:
    try:
      await services.identity.update_account(
        user.token,
        email=payload.email,
        password=payload.password,
        display_name=payload.name,
      )
    except IdentityError as exc:
      logger.info("Account update rejected for %s: %s", user_id, exc.code)
      raise _identity_failure(exc) from exc

  await asyncio.to_thread(
    services.repository.update_user,
    user_id,
    name=payload.name or None,
    email=payload.email or None,
    fcm_token=payload.fcmToken or None,
  )
  return MessageResponse(message="User updated successfully")


@router.delete("/{user_id}", response_model=MessageResponse)
async def delete_user(
  user_id: str,
  user: AuthenticatedUser = Depends(current_user),
  services: Services = Depends(get_services),
) -> MessageResponse:
  if user.user_id != user_id:
    raise Forbidden("You are not authorized to delete this account")
  try:
    await services.identity.delete_account(user.token)
  except IdentityError as exc:
    logger.info("Account deletion rejected for %s: %s", user_id, exc.code)
    raise _identity_failure(exc) from exc
  await asyncio.to_thread(services.repository.delete_user, user_id)
  logger.info("Deleted user %s", user_id)
  return MessageResponse(message="User deleted successfully")
