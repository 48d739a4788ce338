"""FastAPI authentication dependency."""

import secrets

from fastapi import HTTPException, Request


async def verify_api_key(request: Request) -> None:
    """Verify the X-API-Key header against API_SERVER_API_KEY.

    Raises:
        HTTPException: If the API key is missing or invalid (401).
    """
    expected_key = request.app.state.helper_config.get_string_val("API_SERVER_API_KEY")
    provided_key = request.headers.get("X-API-Key")
    if not provided_key or not secrets.compare_digest(provided_key.encode("utf-8"), expected_key.encode("utf-8")):
        raise HTTPException(status_code=401, detail="Invalid or missing API key.")
