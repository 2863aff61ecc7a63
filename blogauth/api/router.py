from fastapi import APIRouter

from blogauth.api.routes import admin, auth, mfa, tokens

api_router = APIRouter()
api_router.include_router(auth.router, tags=["auth"])
api_router.include_router(mfa.router, tags=["mfa"])
api_router.include_router(tokens.router, tags=["tokens"])
api_router.include_router(admin.router, tags=["admin"])
