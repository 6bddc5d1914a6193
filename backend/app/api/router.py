from fastapi import APIRouter

from app.api.leaves import leaves_router
from app.api.users import users_router

api_router = APIRouter()
api_router.include_router(leaves_router)
api_router.include_router(users_router)
