"""
Handles image upload and background removal.

Responsibilities:
- Accept the multipart `image` field
- Validate and store it through the intake gate
- Run background removal through the processing coordinator
- Return the public URL of the processed image
"""

from typing import Optional

from fastapi import APIRouter, Depends, File, Request, UploadFile

from app.core.exceptions import ValidationError
from app.models.response_models import ErrorResponse, RemoveBackgroundResponse
from app.services.intake import IntakeGate
from app.services.processing import ProcessingCoordinator

router = APIRouter(tags=["Remove Background"])


def get_intake_gate(request: Request) -> IntakeGate:
    return request.app.state.intake


def get_coordinator(request: Request) -> ProcessingCoordinator:
    return request.app.state.coordinator


@router.post(
    "/remove-bg",
    response_model=RemoveBackgroundResponse,
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def remove_background(
    image: Optional[UploadFile] = File(None),
    intake: IntakeGate = Depends(get_intake_gate),
    coordinator: ProcessingCoordinator = Depends(get_coordinator),
):
    """
    Removes the background of an uploaded image.

    The processed PNG is kept in the storage area until it is downloaded
    once through /download/{filename}.
    """
    if image is None:
        raise ValidationError("No image uploaded")

    try:
        uploaded = await intake.accept(image.filename, image.content_type, image.file)
    finally:
        await image.close()

    processed = await coordinator.process(uploaded)
    return RemoveBackgroundResponse(imageUrl=f"/uploads/{processed.download_id}")
