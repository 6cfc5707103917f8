"""Visitor context providers for click analytics."""

from abc import ABC, abstractmethod
from typing import Optional

from .models import GeoInfo


class ClickContextProvider(ABC):
    """Supplies visitor metadata for a click. Either method may return None."""

    @abstractmethod
    def user_agent(self) -> Optional[str]:
        pass

    @abstractmethod
    def geo(self) -> Optional[GeoInfo]:
        pass


class StaticContextProvider(ClickContextProvider):
    """Provider returning fixed values, e.g. taken from request headers."""

    def __init__(self, user_agent: Optional[str] = None, geo: Optional[GeoInfo] = None):
        self._user_agent = user_agent
        self._geo = geo

    def user_agent(self) -> Optional[str]:
        return self._user_agent

    def geo(self) -> Optional[GeoInfo]:
        return self._geo
