from __future__ import annotations

import logging
from typing import Optional

from pydantic import ValidationError

from .client_base import BaseAPIClient, APIClientError, APIClientHTTPError
from .errors import AuthError, describe_status
from .schema import AccessToken


logger = logging.getLogger(__name__)

DEFAULT_TOKEN_URL = "https://zoom.us/oauth/token"


def acquire_token(
    account_id: str,
    client_id: str,
    client_secret: str,
    client: Optional[BaseAPIClient] = None,
    token_url: Optional[str] = None,
) -> str:
    """
    Exchange Server-to-Server OAuth app credentials for a bearer token.

    A new token is requested on every call; nothing is cached.
    """
    url = token_url or DEFAULT_TOKEN_URL
    http = client or BaseAPIClient(base_url=url)

    try:
        data = http.post_json(
            url,
            params={"grant_type": "account_credentials", "account_id": account_id},
            auth=(client_id, client_secret),
        )
    except APIClientHTTPError as e:
        raise AuthError(
            describe_status(e.status_code, e.body), status_code=e.status_code
        ) from e
    except APIClientError as e:
        raise AuthError(f"Zoom token exchange failed: {e}") from e
    finally:
        # Only a client created here is ours to close.
        if client is None:
            http.close()

    try:
        token = AccessToken.model_validate(data)
    except ValidationError as e:
        raise AuthError("Zoom token exchange returned no access_token.") from e

    logger.debug("Zoom access token acquired for account %s", account_id)
    return token.access_token
