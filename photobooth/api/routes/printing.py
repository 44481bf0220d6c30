from fastapi import APIRouter, Depends

from photobooth.api.dependencies import get_bridge, get_session_state
from photobooth.models.result import Failure
from photobooth.models.session import PrintPdfRequest, PrintRequest
from photobooth.services.bridge import PhotoboothBridge
from photobooth.services.session import SessionState

router = APIRouter(prefix="/print", tags=["print"])


@router.post("")
async def print_photo(
        request: PrintRequest,
        bridge: PhotoboothBridge = Depends(get_bridge),
        session: SessionState = Depends(get_session_state),
):
    if session.print_lock.locked():
        return Failure(error="A print job is already in progress")

    async with session.print_lock:
        return await bridge.print(request.path)


@router.post("/pdf")
async def print_pdf(request: PrintPdfRequest, bridge: PhotoboothBridge = Depends(get_bridge)):
    return await bridge.print_pdf(request.image)
