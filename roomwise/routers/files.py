"""
Signed download route for stored objects
"""
from fastapi import APIRouter, Depends, HTTPException, Query, Response, status

from roomwise.core.exceptions import StorageError
from roomwise.services.auth_service import auth_service
from roomwise.services.storage_service import LocalObjectStorage, get_storage

router = APIRouter()


@router.get("/{storage_id}")
async def download_file(
    storage_id: str,
    token: str = Query(...),
    storage: LocalObjectStorage = Depends(get_storage),
):
    if not auth_service.verify_object_token(token, storage_id):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Invalid or expired link")
    try:
        data, content_type = await storage.read(storage_id)
    except StorageError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="File not found")
    return Response(content=data, media_type=content_type, headers={"Cache-Control": "private, max-age=300"})
