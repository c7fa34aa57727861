import threading
import logging
from datetime import datetime, timezone
from typing import Callable, Optional

from credential_shim.core.config import RefreshMode, Settings
from credential_shim.core.exceptions import ConfigurationError, CredentialFetchError
from credential_shim.services.credential_fetcher import CredentialFetcher

logger = logging.getLogger(__name__)


class RefreshContext:
    """Cancellable lifetime token for the background refresh loop"""

    def __init__(self):
        self._event = threading.Event()

    def cancel(self) -> None:
        """Request shutdown and wake any waiter"""
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def wait(self, timeout: float) -> bool:
        """Suspend for up to timeout seconds

        Returns:
            True if the context was cancelled, False if the timeout elapsed
        """
        return self._event.wait(timeout=max(timeout, 0))


class RefreshScheduler:
    """Background loop that keeps exported credentials fresh"""

    def __init__(
        self,
        fetcher: CredentialFetcher,
        refresh_interval: float = 30.0,
        retry_interval: float = 60.0,
        refresh_mode: RefreshMode = RefreshMode.INTERVAL,
        refresh_buffer: float = 30.0,
        min_refresh_delay: float = 1.0,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc)
    ):
        """Initialize the refresh scheduler

        Args:
            fetcher: Fetcher invoked on every refresh
            refresh_interval: Seconds between refreshes in interval mode
            retry_interval: Cooldown in seconds after a failed refresh
            refresh_mode: Whether to refresh on a fixed interval or ahead of expiration
            refresh_buffer: Seconds before expiration to refresh in expiration mode
            min_refresh_delay: Lower bound for the delay in expiration mode
            clock: Returns the current time as an aware datetime
        """
        self.fetcher = fetcher
        self.refresh_interval = refresh_interval
        self.retry_interval = retry_interval
        self.refresh_mode = RefreshMode(refresh_mode)
        self.refresh_buffer = refresh_buffer
        self.min_refresh_delay = min_refresh_delay
        self.clock = clock
        self.expiration: Optional[datetime] = None

    @classmethod
    def from_settings(cls, fetcher: CredentialFetcher, settings: Settings) -> "RefreshScheduler":
        """Create a scheduler configured from application settings"""
        return cls(
            fetcher,
            refresh_interval=settings.CREDENTIAL_SHIM_REFRESH_INTERVAL,
            retry_interval=settings.CREDENTIAL_SHIM_RETRY_INTERVAL,
            refresh_mode=settings.CREDENTIAL_SHIM_REFRESH_MODE,
            refresh_buffer=settings.CREDENTIAL_SHIM_REFRESH_BUFFER,
        )

    def next_refresh_delay(self) -> float:
        """Seconds to wait before the next refresh"""
        if self.refresh_mode == RefreshMode.EXPIRATION and self.expiration is not None:
            remaining = (self.expiration - self.clock()).total_seconds()
            return max(remaining - self.refresh_buffer, self.min_refresh_delay)
        return self.refresh_interval

    def run(self, context: RefreshContext, initial_expiration: Optional[datetime]) -> None:
        """Refresh credentials until the context is cancelled

        Fetch failures are logged and retried after the cooldown; they never
        end the loop.
        """
        self.expiration = initial_expiration
        logger.info(f"Starting credential refresh loop ({self.refresh_mode.value} mode)")

        while True:
            delay = self.next_refresh_delay()
            logger.debug(f"Next credential refresh in {delay:.1f}s (current expiration: {self.expiration})")
            if context.wait(delay):
                break

            try:
                new_expiration = self.fetcher.fetch()
            except (CredentialFetchError, ConfigurationError) as e:
                logger.error(f"Failed to refresh credentials: {e}. Retrying in {self.retry_interval:.0f}s")
                if context.wait(self.retry_interval):
                    break
                continue

            if new_expiration is not None:
                self.expiration = new_expiration

        logger.info("Credential refresh loop cancelled")

    def start(self, context: RefreshContext, initial_expiration: Optional[datetime]) -> threading.Thread:
        """Run the refresh loop on a daemon thread"""
        thread = threading.Thread(
            target=self.run,
            args=(context, initial_expiration),
            name="credential-refresh",
            daemon=True
        )
        thread.start()
        return thread
