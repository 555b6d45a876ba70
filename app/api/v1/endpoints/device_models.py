from fastapi import APIRouter, Depends, HTTPException, Query, Response

from app.api.deps import get_device_model_service
from app.models.device_model import DeviceCategory
from app.schemas.device_model import (
    DeviceModelCreate,
    DeviceModelFilters,
    DeviceModelRead,
    DeviceModelSort,
    DeviceModelUpdate,
)
from app.services.device_model_service import DeviceModelService
from app.services.errors import DeviceModelNotFoundError


router = APIRouter(prefix="/device-models")


@router.get("", response_model=list[DeviceModelRead], summary="List device models")
async def list_device_models(
    category: DeviceCategory | None = Query(default=None),
    search: str | None = Query(default=None, description="Matches brand, model, category or description"),
    sort: DeviceModelSort | None = Query(default=None),
    service: DeviceModelService = Depends(get_device_model_service),
):
    return await service.list_device_models_with_filters(DeviceModelFilters(category=category, search=search, sort=sort))


@router.get("/{model_id}", response_model=DeviceModelRead, summary="Get a device model")
async def get_device_model(model_id: str, service: DeviceModelService = Depends(get_device_model_service)):
    try:
        return await service.get_device_model(model_id)
    except DeviceModelNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.post("", response_model=DeviceModelRead, status_code=201, summary="Create a device model")
async def create_device_model(body: DeviceModelCreate,
                              service: DeviceModelService = Depends(get_device_model_service)):
    return await service.create_device_model(body)


@router.put("/{model_id}", response_model=DeviceModelRead, summary="Update a device model")
async def update_device_model(model_id: str, body: DeviceModelUpdate,
                              service: DeviceModelService = Depends(get_device_model_service)):
    try:
        return await service.update_device_model(model_id, body)
    except DeviceModelNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.delete("/{model_id}", status_code=204, summary="Delete a device model")
async def delete_device_model(model_id: str, service: DeviceModelService = Depends(get_device_model_service)):
    await service.delete_device_model(model_id)
    return Response(status_code=204)
