from fastapi import HTTPException
from fastapi.security import HTTPAuthorizationCredentials
from fastapi.security import HTTPBearer

from gitboard.services.contributions import validate_token
from gitboard.services.errors import InvalidCredentialError


bearer_scheme = HTTPBearer(auto_error=False)

MISSING_TOKEN_DETAIL = "Authorization Bearer GitHub token is required"


def extract_github_token(
    credentials: HTTPAuthorizationCredentials | None,
    prefixes: tuple[str, ...],
) -> str:
    """Extract a GitHub token from Bearer credentials and check its prefix.

    Raises:
        HTTPException: If credentials are missing, malformed, or the token
            does not look like a GitHub personal access token.
    """

    if credentials is None or credentials.scheme.lower() != "bearer":
        raise HTTPException(status_code=401, detail=MISSING_TOKEN_DETAIL)

    try:
        return validate_token(credentials.credentials, prefixes)
    except InvalidCredentialError as exc:
        raise HTTPException(status_code=401, detail=exc.message) from exc
