from fastapi import APIRouter, Depends, Request

from p2p_exchange.db.dal import Database
from p2p_exchange.services.rates.cache_service import RateCacheService
from .deps import get_db, get_rate_service

router = APIRouter(tags=["health"])


@router.get("/health", summary="Liveness plus database reachability")
def health(
    request: Request,
    db: Database = Depends(get_db),
    svc: RateCacheService = Depends(get_rate_service),
):
    return {
        "status": "ok",
        "database": "ok" if db.ping() else "unavailable",
        "rate_provider": svc.provider_name,
        "version": request.app.version,
    }
