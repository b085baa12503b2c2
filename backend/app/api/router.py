from fastapi import APIRouter

from app.api.endpoints import commands, health, tables, users

router = APIRouter()
router.include_router(health.router, tags=['health'])
router.include_router(commands.router, tags=['commands'])
router.include_router(users.router, prefix='/user', tags=['users'])
router.include_router(tables.table_router, prefix='/table', tags=['tables'])
router.include_router(tables.data_router, prefix='/data', tags=['data'])
