from fastapi import APIRouter

from vkbridge.api.routes.system import router as system_router
from vkbridge.api.routes.vk import router as vk_router

api_router = APIRouter()
api_router.include_router(system_router)
api_router.include_router(vk_router)
