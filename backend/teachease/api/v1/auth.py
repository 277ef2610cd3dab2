"""
API endpoints for account sessions
"""

from fastapi import APIRouter, HTTPException, Depends, status
import logging

from teachease.api.deps import get_services
from teachease.core.container import Services
from teachease.schemas.requests import SignInRequest, SignUpRequest, SessionResponse
from teachease.services.auth import AuthenticationFailedError

logger = logging.getLogger(__name__)
router = APIRouter()


def _session_service(services: Services):
    if services.session is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Interactive sign-in is not available with the configured backend"
        )
    return services.session


@router.post("/sign-up", response_model=SessionResponse, status_code=status.HTTP_201_CREATED)
async def sign_up(body: SignUpRequest, services: Services = Depends(get_services)):
    session_service = _session_service(services)
    try:
        session = await session_service.sign_up(body.email, body.password, body.name)
    except AuthenticationFailedError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return SessionResponse(uid=session.uid, email=session.email, display_name=session.display_name)


@router.post("/sign-in", response_model=SessionResponse)
async def sign_in(body: SignInRequest, services: Services = Depends(get_services)):
    session_service = _session_service(services)
    try:
        session = await session_service.sign_in(body.email, body.password)
    except AuthenticationFailedError as e:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=str(e))
    return SessionResponse(uid=session.uid, email=session.email, display_name=session.display_name)


@router.post("/sign-out", status_code=status.HTTP_204_NO_CONTENT)
async def sign_out(clear_local: bool = True, services: Services = Depends(get_services)):
    await _session_service(services).sign_out(clear_local=clear_local)
