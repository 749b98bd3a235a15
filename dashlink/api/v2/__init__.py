"""API v2 router initialization."""

from fastapi import APIRouter

from dashlink.api.v2.blobs import router as blobs_router
from dashlink.api.v2.commands import router as commands_router
from dashlink.api.v2.devices import router as devices_router
from dashlink.api.v2.edge import router as edge_router
from dashlink.api.v2.files import router as files_router

router = APIRouter()

router.include_router(devices_router, prefix="/devices", tags=["Devices"])
router.include_router(commands_router, prefix="/commands", tags=["Commands"])
router.include_router(files_router, prefix="/files", tags=["Files"])
router.include_router(edge_router, prefix="/edge", tags=["Edge"])
router.include_router(blobs_router, prefix="/blobs", tags=["Blobs"])
