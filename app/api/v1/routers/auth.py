"""
API router for authentication endpoints.
"""
from fastapi import APIRouter, HTTPException, status

from app.api.dependencies import SyncCoordinatorDep
from app.domain.models import LoginCredentials, LoginResult, UserProfile


router = APIRouter(
    prefix="/auth",
    tags=["auth"],
)


@router.post(
    "/login",
    response_model=LoginResult,
    summary="Sign in",
    description="""
    Sign in against the remote service when the network is available,
    falling back to offline sign-in for users known to this device.
    A refused login answers 401 with the reason in ``message``.
    """,
    responses={401: {"description": "Authentication failed"}},
)
async def login(credentials: LoginCredentials, coordinator: SyncCoordinatorDep) -> LoginResult:
    result = await coordinator.login(credentials)
    if not result.success:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=result.message)
    return result


@router.post(
    "/logout",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Sign out",
    description="Forget the signed-in user and its cached offline token.",
)
async def logout(coordinator: SyncCoordinatorDep) -> None:
    await coordinator.logout()


@router.get(
    "/me",
    response_model=UserProfile,
    summary="Signed-in user",
    responses={401: {"description": "No valid session"}},
)
async def current_user(coordinator: SyncCoordinatorDep) -> UserProfile:
    if coordinator.current_user is None or not coordinator.validate_token():
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not signed in")
    return coordinator.current_user
