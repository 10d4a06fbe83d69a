"""
Состояние сессии просмотра рекламы (на процесс, на аккаунт).
"""

from datetime import datetime
from typing import Callable, Dict, Iterable, Optional

from ad_rewards.schemas.watch import Notification
from ad_rewards.services.provider_adapter import ProviderIntegration, ProviderRegistry
from ad_rewards.utils.clock import utcnow
from ad_rewards.utils.logger import get_logger

logger = get_logger(__name__)

IntegrationFactory = Callable[[str], Iterable[ProviderIntegration]]


class SessionState:
    """
    Single-flight guard, provider integrations and readiness of one account.

    The lock is process local: it keeps one process from running two
    attempts for the same account, it does not coordinate processes.
    """

    def __init__(self, account_id: str, integrations: Iterable[ProviderIntegration] = ()):
        self.account_id = account_id
        self.locked: bool = False
        self.in_flight_provider: Optional[str] = None
        self.providers = ProviderRegistry()
        self.started_at: Optional[datetime] = None
        self.last_notification: Optional[Notification] = None
        for integration in integrations:
            self.attach(integration)

    def attach(self, integration: ProviderIntegration) -> None:
        self.providers.register(integration)

    def integration(self, provider_id: str) -> Optional[ProviderIntegration]:
        return self.providers.get(provider_id)

    def is_ready(self, provider_id: str) -> bool:
        """Точка входа провайдера подключена и вызываема прямо сейчас."""
        integration = self.providers.get(provider_id)
        return integration is not None and integration.is_available()

    def another_in_flight(self, provider_id: str) -> bool:
        return self.locked and self.in_flight_provider != provider_id

    def is_watching(self, provider_id: str) -> bool:
        return self.locked and self.in_flight_provider == provider_id

    def acquire(self, provider_id: str, now: datetime = None) -> bool:
        if self.locked:
            return False
        self.locked = True
        self.in_flight_provider = provider_id
        self.started_at = now or utcnow()
        return True

    def release(self, provider_id: str) -> None:
        if self.in_flight_provider != provider_id:
            logger.warning(
                f"Session {self.account_id}: release for {provider_id} ignored, "
                f"in flight is {self.in_flight_provider}"
            )
            return
        self.locked = False
        self.in_flight_provider = None
        self.started_at = None

    def notify(self, kind: str, message: str, now: datetime = None) -> Notification:
        self.last_notification = Notification(type=kind, message=message, created_at=now or utcnow())
        return self.last_notification


class SessionRegistry:
    """Owns one SessionState per account for the lifetime of the process."""

    def __init__(self, integrations: IntegrationFactory = lambda account_id: ()):
        self._integrations = integrations
        self._sessions: Dict[str, SessionState] = {}

    def get(self, account_id: str) -> SessionState:
        session = self._sessions.get(account_id)
        if session is None:
            session = SessionState(account_id, integrations=self._integrations(account_id))
            self._sessions[account_id] = session
        return session

    def __len__(self) -> int:
        return len(self._sessions)
