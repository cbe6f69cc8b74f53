import logging
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from api.deps import get_gateway, forwarded_cookie
from api.envelope import relay
from clients.gateway import BackendGateway

router = APIRouter(prefix="/dashboard")
logger = logging.getLogger(__name__)

class CreateDashboardRequest(BaseModel):
    file_id: Optional[str] = None

@router.post("", summary="Generate a dashboard from a processed report")
async def create_dashboard(
    request_data: CreateDashboardRequest,
    cookie: Optional[str] = Depends(forwarded_cookie),
    gateway: BackendGateway = Depends(get_gateway)
):
    if not request_data.file_id:
        raise HTTPException(status_code=400, detail="file_id is required")

    logger.info(f"Creating dashboard for file_id: {request_data.file_id}")
    backend_response = await gateway.create_dashboard(request_data.file_id, cookie)
    return relay(backend_response, "Failed to create dashboard", success_status=201)

@router.get("", summary="Fetch an existing dashboard by file_id")
async def get_dashboard(
    file_id: Optional[str] = None,
    cookie: Optional[str] = Depends(forwarded_cookie),
    gateway: BackendGateway = Depends(get_gateway)
):
    if not file_id:
        raise HTTPException(status_code=400, detail="file_id is required")

    return relay(await gateway.get_dashboard(file_id, cookie), "Dashboard not found")
