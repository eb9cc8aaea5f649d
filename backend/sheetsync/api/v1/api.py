from fastapi import APIRouter

from sheetsync.api.v1.endpoints import auth, connectors, mappings, sync, scheduler, audit_logs

api_router = APIRouter()
api_router.include_router(connectors.router, prefix="/connectors", tags=["connectors"])
api_router.include_router(mappings.router, prefix="/mappings", tags=["mappings"])
api_router.include_router(sync.router, prefix="/sync", tags=["sync"])
api_router.include_router(scheduler.router, prefix="/scheduler", tags=["scheduler"])
api_router.include_router(audit_logs.router, prefix="/audit-logs", tags=["audit-logs"])
api_router.include_router(auth.router, tags=["auth"])
