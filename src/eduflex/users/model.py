from __future__ import annotations

from dataclasses import dataclass

from ..core.enums import Role


@dataclass(frozen=True)
class Caller:
    """Authenticated user attached to the request by the login layer."""

    user_id: str
    role: Role

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN


@dataclass(frozen=True)
class UserSummary:
    """Display fields embedded into records sent to the UI."""

    user_id: str
    user_code: str
    first_name: str
    last_name: str

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    def to_dict(self) -> dict:
        return {
            "_id": self.user_id,
            "userId": self.user_code,
            "firstName": self.first_name,
            "lastName": self.last_name,
        }

    @classmethod
    def from_row(cls, r: dict) -> "UserSummary":
        return cls(
            user_id=r["id"],
            user_code=r.get("user_code") or "",
            first_name=r.get("first_name") or "",
            last_name=r.get("last_name") or "",
        )
