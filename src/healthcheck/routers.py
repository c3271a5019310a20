from fastapi import APIRouter, Request

router = APIRouter()


@router.get("/health/", response_model=dict)
@router.head("/health/", include_in_schema=False)
async def check_health(request: Request) -> dict[str, str]:
    """Health check endpoint to verify the service is running."""
    store = getattr(request.app.state, "refresh_token_store", None)
    return {
        "status": "ok",
        "refresh_store": type(store).__name__ if store is not None else "none",
    }
