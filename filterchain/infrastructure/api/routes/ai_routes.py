from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException

from filterchain.application.dtos.filter_dto import AIEditRequest, AIGenerateRequest, PathResponse
from filterchain.application.use_cases.ai_image import EditImageUseCase, GenerateImageUseCase
from filterchain.domain.errors import ExternalProviderError, ExternalProviderTimeout, PathNotFound
from filterchain.domain.services.derivation_store import DerivationStore
from filterchain.infrastructure.ai.image_api_client import ImageApiClient
from filterchain.infrastructure.api.dependencies import get_ai_client, get_storage, get_store
from filterchain.infrastructure.storage.blob_storage import BlobStorage

router = APIRouter(
    prefix="/api/image",
    tags=["AI Images"],
    responses={
        502: {"description": "Bad Gateway - The image provider reported an error"},
        504: {"description": "Gateway Timeout - The image provider did not finish in time"},
    },
)

# Both handlers block while the provider is polled, so they are plain `def`
# endpoints and run in the threadpool.


@router.post("/ai-generate", response_model=PathResponse, summary="Generate Image From Prompt")
def ai_generate(
    body: AIGenerateRequest,
    storage: BlobStorage = Depends(get_storage),
    client: ImageApiClient = Depends(get_ai_client),
):
    uc = GenerateImageUseCase(storage=storage, client=client)
    try:
        return PathResponse(path=uc.execute(body.prompt))
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except ExternalProviderTimeout as exc:
        raise HTTPException(status_code=504, detail=str(exc)) from exc
    except ExternalProviderError as exc:
        raise HTTPException(status_code=502, detail=str(exc)) from exc


@router.post("/ai-edit", response_model=PathResponse, summary="Edit Image With A Command")
def ai_edit(
    body: AIEditRequest,
    storage: BlobStorage = Depends(get_storage),
    store: DerivationStore = Depends(get_store),
    client: ImageApiClient = Depends(get_ai_client),
):
    uc = EditImageUseCase(storage=storage, store=store, client=client)
    try:
        return PathResponse(path=uc.execute(body.image_path, body.command))
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except PathNotFound as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except ExternalProviderTimeout as exc:
        raise HTTPException(status_code=504, detail=str(exc)) from exc
    except ExternalProviderError as exc:
        raise HTTPException(status_code=502, detail=str(exc)) from exc
