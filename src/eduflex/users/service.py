from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable, Optional

from ..classes.model import SchoolClass
from ..classes.repository import ClassRepository
from .model import UserSummary
from .repository import UserRepository


@dataclass(frozen=True)
class References:
    users: dict[str, UserSummary] = field(default_factory=dict)
    classes: dict[str, SchoolClass] = field(default_factory=dict)

    def user(self, user_id: Optional[str]) -> Any:
        if not user_id:
            return None
        summary = self.users.get(user_id)
        return summary.to_dict() if summary else user_id

    def school_class(self, class_id: Optional[str]) -> Any:
        if not class_id:
            return None
        c = self.classes.get(class_id)
        return c.to_summary() if c else class_id


class ReferenceResolver:
    """Loads the display fields of users and classes referenced by records."""

    def __init__(self, users: UserRepository, classes: ClassRepository):
        self._users = users
        self._classes = classes

    def resolve(self, *, user_ids: Iterable[Optional[str]] = (), class_ids: Iterable[Optional[str]] = ()) -> References:
        class_map: dict[str, SchoolClass] = {}
        for class_id in {c for c in class_ids if c}:
            c = self._classes.get_by_id(class_id)
            if c:
                class_map[class_id] = c
        return References(users=self._users.get_summaries(u for u in user_ids if u), classes=class_map)
