"""Model listing endpoint."""

import logging

from fastapi import APIRouter, Depends

from app.core.dependencies import get_current_user, validate_token
from app.domains.llm.service import LLMService
from app.schemas.settings import ModelInfo
from models.user import User

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/models",
    tags=["models"],
    dependencies=[Depends(validate_token)],
)

MISSING_KEY_MESSAGE = "API key not configured. Please save your settings first."


@router.post("", response_model=list[ModelInfo])
async def list_models(current_user: User = Depends(get_current_user)):
    """Fetch the models available on the user's provider, sorted by id.

    Returns 400 without contacting the provider when no API key is stored.
    """
    service = LLMService.for_user(current_user, missing_key_message=MISSING_KEY_MESSAGE)
    try:
        model_ids = await service.list_models()
    finally:
        await service.close()

    logger.info("Listed %d models for user %s", len(model_ids), current_user.id)
    return [ModelInfo(id=model_id) for model_id in model_ids]
