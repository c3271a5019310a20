from typing import Literal, NotRequired, TypedDict


class JWTPayload(TypedDict):
    """Type definition for JWT token payload"""

    sub: str  # Subject (opaque principal identifier)
    iss: str
    iat: int  # Issued-at, epoch seconds
    exp: int  # Expiration, epoch seconds
    type: Literal["access", "refresh"]
    roles: NotRequired[list[str]]
    jti: NotRequired[str]  # Refresh tokens only, store lookup key
