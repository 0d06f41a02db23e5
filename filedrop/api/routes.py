from __future__ import annotations

from fastapi import APIRouter, HTTPException, Request, status
from fastapi.responses import FileResponse, HTMLResponse

from ..domain.files import ServedFile
from ..domain.tokens import tokens_match
from ..logging_conf import get_logger
from .pages import render_info_page

router = APIRouter()
logger = get_logger(__name__)


def _served_file(request: Request, token: str) -> ServedFile:
    """Return the served file when `token` is its access token, else 404."""
    served: ServedFile = request.app.state.served_file
    if not tokens_match(token, served.access_token):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND)
    return served


# Registered before the info route so `/download/<token>` is never read as
# an info request.
@router.api_route("/download/{token}", methods=["GET", "HEAD"], include_in_schema=False)
async def download_file(token: str, request: Request) -> FileResponse:
    """Stream the file bytes as an attachment."""
    served = _served_file(request, token)
    st = served.current_stat()
    if st.st_size != served.size_bytes:
        logger.warning(
            "%s changed size since startup (%d -> %d bytes)",
            served.display_name,
            served.size_bytes,
            st.st_size,
            extra={"event": "file_size_changed"},
        )
    logger.debug("sending %s", served.display_name, extra={"event": "download", "size": st.st_size})
    return FileResponse(
        served.absolute_path,
        media_type="application/octet-stream",
        filename=served.display_name,
        stat_result=st,
    )


@router.api_route("/{token}", methods=["GET", "HEAD"], include_in_schema=False)
async def info_page(token: str, request: Request) -> HTMLResponse:
    """Landing page with the file name, its size and a download button."""
    served = _served_file(request, token)
    return HTMLResponse(render_info_page(served))
