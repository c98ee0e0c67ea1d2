"""Base service."""

from typing import Callable, Dict, Optional

from requests import Session

from cloudnotes.config import ClientConfig


class BaseService:
    """The base class for all remote services."""

    def __init__(
        self,
        service_root: str,
        session: Session,
        params: Optional[Dict[str, object]] = None,
        *,
        config: Optional[ClientConfig] = None,
        token_provider: Optional[Callable[[], Optional[str]]] = None,
    ) -> None:
        self._service_root: str = service_root.rstrip("/")
        self._session: Session = session
        self.params: Dict[str, object] = dict(params or {})
        self._config: ClientConfig = config or ClientConfig()
        self._token_provider = token_provider

    @property
    def session(self) -> Session:
        """Get the session object."""
        return self._session

    @property
    def service_root(self) -> str:
        """Get the service root URL."""
        return self._service_root

    @property
    def config(self) -> ClientConfig:
        return self._config
