"""
One-time download of processed images.

The file is deleted from the storage area once it has been sent, so a
second request for the same name answers 404.
"""

from fastapi import APIRouter, Depends, Request

from app.models.response_models import ErrorResponse
from app.services.retrieval import RetrievalGate

router = APIRouter(tags=["Download"])


def get_retrieval_gate(request: Request) -> RetrievalGate:
    return request.app.state.retrieval


@router.get("/download/{filename}", responses={404: {"model": ErrorResponse}})
async def download_file(filename: str, gate: RetrievalGate = Depends(get_retrieval_gate)):
    """Streams a processed image as an attachment, then deletes it."""
    return await gate.retrieve(filename)
