import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status

from stylist.outfit.schemas import GenerateOutfitsResponse, GenerationRequest
from stylist.outfit.service import OutfitGenerationService, get_outfit_service

router = APIRouter(prefix="/v1/outfits", tags=["outfit"])
logger = logging.getLogger(__name__)


@router.post(
    "/generate", response_model=GenerateOutfitsResponse, status_code=status.HTTP_200_OK
)
async def generate_outfits(
    request: GenerationRequest,
    service: Annotated[OutfitGenerationService, Depends(get_outfit_service)],
) -> GenerateOutfitsResponse:
    logger.info(
        "Received outfit generation request for userId: %s (%d items)",
        request.user_id,
        len(request.wardrobe),
    )

    try:
        result = await service.generate(request)

    except Exception as err:
        logger.exception("Unexpected error during outfit generation: %s", err)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Outfit generation failed unexpectedly.",
        ) from err

    if result.error is not None:
        logger.info(
            "Cannot generate outfits for userId: %s (%s)",
            request.user_id,
            result.error.kind.value,
        )
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail={"errorCode": result.error.kind.value, "message": result.error.message},
        )

    return GenerateOutfitsResponse.from_result(result)
