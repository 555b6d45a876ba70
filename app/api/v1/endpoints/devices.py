from fastapi import APIRouter, Depends, HTTPException, Query, Response

from app.api.deps import get_device_service
from app.models.device import DeviceStatus
from app.schemas.device import DeviceCreate, DeviceRead, DeviceUpdate
from app.services.device_service import DeviceService
from app.services.errors import DeviceNotFoundError


router = APIRouter(prefix="/devices")


@router.get("", response_model=list[DeviceRead], summary="List devices")
async def list_devices(
    status: DeviceStatus | None = Query(default=None, description="Filter by cached status"),
    model_id: str | None = Query(default=None, description="Filter by device model"),
    service: DeviceService = Depends(get_device_service),
):
    return await service.list_devices(status=status, device_model_id=model_id)


@router.get("/{device_id}", response_model=DeviceRead, summary="Get a device")
async def get_device(device_id: str, service: DeviceService = Depends(get_device_service)):
    try:
        return await service.get_device(device_id)
    except DeviceNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.post("", response_model=DeviceRead, status_code=201, summary="Create a device")
async def create_device(body: DeviceCreate, service: DeviceService = Depends(get_device_service)):
    return await service.create_device(body)


@router.put("/{device_id}", response_model=DeviceRead, summary="Update a device")
async def update_device(device_id: str, body: DeviceUpdate, service: DeviceService = Depends(get_device_service)):
    try:
        return await service.update_device(device_id, body)
    except DeviceNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.delete("/{device_id}", status_code=204, summary="Delete a device")
async def delete_device(device_id: str, service: DeviceService = Depends(get_device_service)):
    await service.delete_device(device_id)
    return Response(status_code=204)
