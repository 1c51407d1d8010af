from __future__ import annotations

from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile, status
from fastapi.responses import Response

from filterchain.application.dtos.filter_dto import (
    AppliedFilterItem,
    ApplyFilterResponse,
    FilterInfo,
    FilterRequest,
    PathResponse,
    ResetRequest,
    UploadResponse,
)
from filterchain.application.use_cases.apply_filter import ApplyFilterUseCase
from filterchain.application.use_cases.preview_filter import PreviewFilterUseCase
from filterchain.application.use_cases.reset_image import ResetImageUseCase
from filterchain.application.use_cases.upload_image import UploadImageUseCase
from filterchain.domain.errors import FilterApplicationFailed, PathNotFound, UnknownFilter
from filterchain.domain.services import path_naming
from filterchain.domain.services.derivation_store import DerivationStore
from filterchain.domain.services.filter_registry import FilterRegistry
from filterchain.infrastructure.api.dependencies import get_registry, get_storage, get_store
from filterchain.infrastructure.storage.blob_storage import (
    BlobStorage,
    content_type_for,
    format_for,
)

router = APIRouter(
    prefix="/api/image",
    tags=["Image Editing"],
    responses={
        400: {"description": "Bad Request - Unknown filter or invalid image"},
        404: {"description": "Not Found - Image does not exist in storage"},
        422: {"description": "Unprocessable - Filter failed or invalid request"},
    },
)


_STATUS_BY_ERROR = {UnknownFilter: 400, PathNotFound: 404, FilterApplicationFailed: 422}


def _http_error(exc: Exception) -> HTTPException:
    return HTTPException(status_code=_STATUS_BY_ERROR[type(exc)], detail=str(exc))


@router.post(
    "/upload",
    response_model=UploadResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Upload Image",
    description="Store a new image. Uploads are always original (root) images.",
)
def upload_image(
    file: UploadFile = File(..., description="Image file to upload"),
    storage: BlobStorage = Depends(get_storage),
):
    uc = UploadImageUseCase(storage=storage)
    try:
        uploaded = uc.execute(file.file.read(), file.filename)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return UploadResponse(path=uploaded.path, width=uploaded.width, height=uploaded.height)


@router.get(
    "/file",
    summary="Download Image",
    response_class=Response,
    responses={200: {"content": {"image/png": {}, "image/jpeg": {}}}},
)
def download_image(
    image_path: str = Query(..., description="Storage path of the image"),
    storage: BlobStorage = Depends(get_storage),
):
    try:
        data = storage.read_bytes(path_naming.ensure_leading_slash(image_path))
    except PathNotFound as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    return Response(content=data, media_type=content_type_for(format_for(image_path)))


@router.post(
    "/apply",
    response_model=ApplyFilterResponse,
    summary="Apply Filter",
    description="""
    Apply a filter and save the result.

    The whole chain recorded for the image, plus the new filter, is replayed
    on the original upload. The first application writes `<name>_filtered.<ext>`;
    later applications to that path overwrite it in place.
    """,
)
def apply_filter(
    body: FilterRequest,
    storage: BlobStorage = Depends(get_storage),
    store: DerivationStore = Depends(get_store),
    registry: FilterRegistry = Depends(get_registry),
):
    uc = ApplyFilterUseCase(storage=storage, store=store, registry=registry)
    try:
        new_path = uc.execute(body.image_path, body.filter_name, body.parameters)
    except (UnknownFilter, PathNotFound, FilterApplicationFailed) as exc:
        raise _http_error(exc) from exc
    return ApplyFilterResponse(
        path=new_path,
        original_path=store.resolve_root(new_path),
        applied_filters=[AppliedFilterItem.from_entity(f) for f in store.chain_for(new_path)],
    )


@router.post(
    "/preview",
    summary="Preview Filter",
    description="Render the image with the filter added, without saving anything.",
    response_class=Response,
    responses={200: {"content": {"image/png": {}, "image/jpeg": {}}}},
)
def preview_filter(
    body: FilterRequest,
    storage: BlobStorage = Depends(get_storage),
    store: DerivationStore = Depends(get_store),
    registry: FilterRegistry = Depends(get_registry),
):
    uc = PreviewFilterUseCase(storage=storage, store=store, registry=registry)
    try:
        result = uc.execute(body.image_path, body.filter_name, body.parameters)
    except (UnknownFilter, PathNotFound, FilterApplicationFailed) as exc:
        raise _http_error(exc) from exc
    return Response(content=result.data, media_type=result.content_type)


@router.post(
    "/reset",
    response_model=PathResponse,
    summary="Reset Image",
    description="Return the original of an image and forget the filters applied to it. Never fails.",
)
def reset_image(
    body: ResetRequest,
    storage: BlobStorage = Depends(get_storage),
    store: DerivationStore = Depends(get_store),
):
    if not body.image_path.strip():
        raise HTTPException(status_code=400, detail="No image to reset")
    uc = ResetImageUseCase(storage=storage, store=store)
    return PathResponse(path=uc.execute(body.image_path))


@router.get(
    "/applied-filters",
    response_model=list[AppliedFilterItem],
    summary="List Applied Filters",
)
def applied_filters(
    image_path: str = Query(..., description="Storage path of the image"),
    store: DerivationStore = Depends(get_store),
):
    path = path_naming.ensure_leading_slash(image_path)
    return [AppliedFilterItem.from_entity(f) for f in store.chain_for(path)]


@router.get(
    "/filters",
    response_model=list[FilterInfo],
    summary="List Available Filters",
)
def available_filters(registry: FilterRegistry = Depends(get_registry)):
    return [FilterInfo.from_entity(spec) for spec in registry.list()]
