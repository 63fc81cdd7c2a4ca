"""
Sign-up, sign-in and sign-out.
"""

from __future__ import annotations

from fastapi import APIRouter, Request, Response

from cropmarket.api.dependencies import bearer_token, get_auth_service
from cropmarket.api.models import ProfileResponse, SessionResponse, SignInRequest, SignUpRequest
from cropmarket.exceptions import AuthenticationError

router = APIRouter(prefix="/v1/auth", tags=["auth"])


@router.post("/signup", response_model=ProfileResponse, status_code=201)
def sign_up(payload: SignUpRequest, request: Request, response: Response) -> dict:
    profile = get_auth_service(request).sign_up(
        payload.email,
        payload.password,
        role=payload.role,
        full_name=payload.full_name,
    )
    response.headers["Cache-Control"] = "no-store"
    return profile


@router.post("/signin", response_model=SessionResponse)
def sign_in(payload: SignInRequest, request: Request, response: Response) -> dict:
    session = get_auth_service(request).sign_in(payload.email, payload.password)
    response.headers["Cache-Control"] = "no-store"
    return session


@router.post("/signout")
def sign_out(request: Request, response: Response) -> dict:
    token = bearer_token(request)
    if token is None:
        raise AuthenticationError()
    get_auth_service(request).sign_out(token)
    response.headers["Cache-Control"] = "no-store"
    return {"ok": True}
