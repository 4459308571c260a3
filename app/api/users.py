"""
User Registration Endpoints.
Central admin creates franchise owner / stock manager logins.
"""

import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from app.config import Settings, get_settings
from app.services.user_registration_service import (
    UserRegistrationError,
    UserRegistrationService,
)

router = APIRouter()
logger = logging.getLogger(__name__)


class RegisterUserRequest(BaseModel):
    """Body posted by the registration screen."""

    email: Optional[str] = None
    password: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None


def get_user_registration_service(
    settings: Settings = Depends(get_settings),
) -> UserRegistrationService:
    return UserRegistrationService(settings.supabase_url, settings.supabase_service_role_key)


@router.post("/register-user")
async def register_user(
    request: RegisterUserRequest,
    service: UserRegistrationService = Depends(get_user_registration_service),
):
    """Create an auto-confirmed user with the given metadata."""
    if not request.email or not request.password or not request.metadata:
        return JSONResponse(
            status_code=400,
            content={"error": "Missing email, password, or metadata"},
        )

    try:
        user = await service.create_user(request.email, request.password, request.metadata)
    except UserRegistrationError as e:
        logger.error(f"User registration failed for {request.email}: {e}")
        return JSONResponse(status_code=400, content={"error": str(e)})

    return {"message": "User created successfully", "user": user}
