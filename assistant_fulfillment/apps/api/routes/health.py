"""Health and readiness routes."""

from fastapi import APIRouter
from fastapi.responses import JSONResponse

router = APIRouter()


@router.get("/")
def read_root() -> dict[str, str]:
    """Health/info endpoint with a short usage message."""
    return {"message": "Assistant fulfillment webhooks. Refer to /docs for available endpoints."}


@router.get("/alive")
async def alive_check() -> JSONResponse:
    """Health check endpoint for load balancers and orchestrators."""
    return JSONResponse({"status": "ok", "message": "Fulfillment service is alive and healthy."})


__all__ = ["router"]
