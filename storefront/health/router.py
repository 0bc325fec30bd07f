from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from storefront.health.service import health_backend_info
from storefront.utils.rate_limit import rate_limit_health_info

router = APIRouter(prefix="/health", tags=["Health"])

@router.get("")
def health_root(request: Request):
    return {"ok": True, "rate_limit": rate_limit_health_info(request)}

@router.get("/backend")
async def health_backend():
    info = await health_backend_info()
    return JSONResponse(info, status_code=200 if info["reachable"] else 503)
