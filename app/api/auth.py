"""OAuth consent flow endpoints.

``/auth/login`` sends the browser to Google's consent screen;
``/auth/callback`` exchanges the returned code, resolves the signed-in user
and upserts their credential record.
"""

from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import JSONResponse, RedirectResponse
from sqlalchemy.exc import SQLAlchemyError

from app.api.deps import get_credential_store, get_youtube_auth
from app.api.schemas import AuthCallbackResponse, ErrorResponse
from app.core.exceptions import ReelayError
from app.core.logging import get_logger
from app.infrastructure.youtube_auth import YouTubeAuthClient
from app.services.credential_store import CredentialStore

logger = get_logger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


@router.get("/login")
async def login(auth: YouTubeAuthClient = Depends(get_youtube_auth)) -> RedirectResponse:
    """Redirect to the consent screen."""
    url, state = auth.authorization_url()
    logger.info("Redirecting to consent screen", state=state)
    return RedirectResponse(url, status_code=status.HTTP_302_FOUND)


@router.get(
    "/callback",
    response_model=AuthCallbackResponse,
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def callback(
    code: str | None = Query(default=None),
    auth: YouTubeAuthClient = Depends(get_youtube_auth),
    store: CredentialStore = Depends(get_credential_store),
):
    """Complete the consent flow and store the user's credential."""
    if not code:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"error": "Authorization code is required"},
        )

    try:
        user = await auth.exchange_code(code)
        await store.upsert(user.subject_id, user.credential_fields())
    except (ReelayError, SQLAlchemyError) as e:
        logger.error("Auth callback failed", error=str(e), exc_info=True)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": "Authentication failed"},
        )

    return AuthCallbackResponse(user_id=user.subject_id)
