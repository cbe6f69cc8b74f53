import logging
from typing import Optional
from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile

from api.deps import get_gateway, forwarded_cookie
from api.envelope import relay
from clients.gateway import BackendGateway

router = APIRouter(prefix="/upload")
logger = logging.getLogger(__name__)

@router.post("", summary="Forward a report file to the backend for processing")
async def upload_report(
    file: Optional[UploadFile] = File(None),
    report_type_id: Optional[str] = Form(None, alias="reportTypeId"),
    cookie: Optional[str] = Depends(forwarded_cookie),
    gateway: BackendGateway = Depends(get_gateway)
):
    """
    1. Requires both the file and the report type id.
    2. Re-posts them as `report_file` / `report_type_id` to /upload/upload-file.
    3. Returns {success, file_id, status, message}.
    """
    if file is None:
        raise HTTPException(status_code=400, detail="No file provided")
    if not report_type_id:
        raise HTTPException(status_code=400, detail="Report type not specified")

    try:
        content = await file.read()
        logger.info(f"Forwarding upload '{file.filename}' ({len(content)} bytes, type {report_type_id})")
        backend_response = await gateway.upload_file(
            filename=file.filename or "report",
            content=content,
            content_type=file.content_type or "application/octet-stream",
            report_type_id=report_type_id,
            cookie=cookie,
        )
    finally:
        await file.close()

    return relay(backend_response, "Failed to upload file", success_status=200)

@router.get("/status/{file_id}", summary="Processing status of an uploaded report")
async def upload_status(
    file_id: str,
    cookie: Optional[str] = Depends(forwarded_cookie),
    gateway: BackendGateway = Depends(get_gateway)
):
    return relay(await gateway.upload_status(file_id, cookie), "Failed to check processing status")

@router.post("/analyze/{file_id}", summary="Run analysis on a processed report")
async def analyze_report(
    file_id: str,
    cookie: Optional[str] = Depends(forwarded_cookie),
    gateway: BackendGateway = Depends(get_gateway)
):
    return relay(await gateway.analyze(file_id, cookie), "Failed to analyze report")
