"""Storage interface consumed by the timer and stats engines."""

from __future__ import annotations

from typing import Iterable, Optional, Protocol

from .config import UserConfig
from .models import Activity, Session


class Repository(Protocol):
    """Whole-collection get/save over activities, sessions and user config.

    Reads return independent copies; saves replace the whole collection.
    """

    def get_activities(self) -> list[Activity]: ...

    def save_activities(self, activities: Iterable[Activity]) -> None: ...

    def get_sessions(self) -> list[Session]: ...

    def save_sessions(self, sessions: Iterable[Session]) -> None: ...

    def get_user_config(self) -> UserConfig: ...

    def save_user_config(self, config: UserConfig) -> None: ...


def find_activity(repository: Repository, activity_id: str) -> Optional[Activity]:
    for activity in repository.get_activities():
        if activity.id == activity_id:
            return activity
    return None


class InMemoryRepository:
    """Process-local repository, used for tests and throwaway runs."""

    def __init__(
        self,
        activities: Iterable[Activity] = (),
        sessions: Iterable[Session] = (),
        config: Optional[UserConfig] = None,
    ) -> None:
        self._activities = [a.copy() for a in activities]
        self._sessions = [s.copy() for s in sessions]
        self._config = UserConfig.from_mapping(config.to_mapping() if config else None)
        self.session_saves = 0

    def get_activities(self) -> list[Activity]:
        return [a.copy() for a in self._activities]

    def save_activities(self, activities: Iterable[Activity]) -> None:
        self._activities = [a.copy() for a in activities]

    def get_sessions(self) -> list[Session]:
        return [s.copy() for s in self._sessions]

    def save_sessions(self, sessions: Iterable[Session]) -> None:
        self._sessions = [s.copy() for s in sessions]
        self.session_saves += 1

    def get_user_config(self) -> UserConfig:
        return UserConfig.from_mapping(self._config.to_mapping())

    def save_user_config(self, config: UserConfig) -> None:
        self._config = UserConfig.from_mapping(config.to_mapping())
