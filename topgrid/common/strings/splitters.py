from typing import List


def csv_to_list(v: str | List[str] | None) -> List[str]:
    """Accept "a, b,c" or ["a", "b"] (env or code) and return trimmed, non-empty entries."""
    if v is None:
        return []
    if isinstance(v, (list, tuple)):
        return [str(s).strip() for s in v if s and str(s).strip()]
    return [s.strip() for s in str(v).split(",") if s.strip()]


def bearer_from_header(value: str | None) -> str | None:
    """Extract the token from an `Authorization: Bearer <token>` header value."""
    if not value:
        return None
    scheme, _, token = value.strip().partition(" ")
    if scheme.lower() != "bearer":
        return None
    token = token.strip()
    return token or None
