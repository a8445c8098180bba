# inkwell/routes/links.py - link preview metadata for the issue editor
from fastapi import APIRouter, Depends, HTTPException
import httpx
import logging
from inkwell.auth.dependencies import AuthenticatedUser, get_current_user
from inkwell.models.newsletter import ExtractUrlRequest
from inkwell.newsletter.link_metadata import LinkFetchError, extract_link_metadata

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api", tags=["links"])

@router.post("/extract-url")
async def extract_url(
    request: ExtractUrlRequest,
    user: AuthenticatedUser = Depends(get_current_user)
):
    url = request.url.strip()
    if not url.startswith(("http://", "https://")):
        raise HTTPException(status_code=400, detail="Invalid URL format")

    try:
        metadata = await extract_link_metadata(url)
    except httpx.TimeoutException:
        raise HTTPException(status_code=408, detail="Request timed out while fetching URL")
    except LinkFetchError as e:
        raise HTTPException(status_code=400 if e.status_code else 500, detail=str(e))
    except Exception as e:
        logger.error(f"Extract URL error: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to extract URL metadata")

    return {"success": True, "metadata": metadata.model_dump(by_alias=True)}
