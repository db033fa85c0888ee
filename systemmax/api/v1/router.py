# systemmax/api/v1/router.py
from fastapi import APIRouter
from systemmax.modules.emociograma.router import router as emociograma_router
from systemmax.modules.comites.router import router as comites_router
from systemmax.modules.organizacao.router import router as organizacao_router

api_router = APIRouter()

api_router.include_router(emociograma_router,  prefix="/emociograma",           tags=["emociograma"])
api_router.include_router(comites_router,      prefix="/boas-praticas/comites", tags=["boas-praticas"])
api_router.include_router(organizacao_router,  prefix="/organizacao",           tags=["organizacao"])
