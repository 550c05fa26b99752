from dataclasses import dataclass
from typing import Any


@dataclass(slots=True)
class Principal:
    username: str
    is_admin: bool = False

    def require_admin(self) -> None:
        if not self.is_admin:
            raise PermissionError("admin privileges required")


def principal_from_claims(claims: dict[str, Any]) -> Principal | None:
    username = claims.get("username") or claims.get("sub")
    if not isinstance(username, str) or not username:
        return None
    return Principal(username=username, is_admin=claims.get("isAdmin") is True)
