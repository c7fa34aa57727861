import os
import signal
import logging
import subprocess
import threading
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from credential_shim.core.config import Settings, load_settings
from credential_shim.core.exceptions import (
    ChildTerminatedError,
    CommandStartError,
    CredentialFetchError,
    InitialFetchError,
)
from credential_shim.services.credential_fetcher import CredentialFetcher
from credential_shim.services.refresh_scheduler import RefreshContext, RefreshScheduler

logger = logging.getLogger(__name__)

COMMAND_SEPARATOR = "--"


def split_command(argv: Sequence[str]) -> Tuple[List[str], List[str]]:
    """
    Split arguments at the first "--" separator.

    Args:
        argv: Arguments without the program name

    Returns:
        Tuple of (own arguments, downstream command). The command is empty
        when there is no separator or nothing follows it.
    """
    args = list(argv)
    if COMMAND_SEPARATOR not in args:
        return args, []
    index = args.index(COMMAND_SEPARATOR)
    return args[:index], args[index + 1:]


class Supervisor:
    """Runs a command with refreshed credentials in its environment"""

    def __init__(
        self,
        fetcher: Optional[CredentialFetcher] = None,
        settings: Optional[Settings] = None,
        scheduler_factory: Callable[[CredentialFetcher, Settings], RefreshScheduler] = RefreshScheduler.from_settings,
        join_timeout: float = 5.0
    ):
        self.fetcher = fetcher or CredentialFetcher()
        self.settings = settings
        self.scheduler_factory = scheduler_factory
        self.join_timeout = join_timeout
        self.scheduler: Optional[RefreshScheduler] = None
        self.context: Optional[RefreshContext] = None
        self._thread: Optional[threading.Thread] = None

    def start(self, argv: Sequence[str]) -> int:
        """Fetch credentials, start background refresh and run the command after "--"

        Args:
            argv: Arguments without the program name

        Returns:
            Exit code of the command, or 0 when no command was given

        Raises:
            ConfigurationError: If the endpoint configuration is invalid
            InitialFetchError: If the first fetch fails
            CommandStartError: If the command cannot be started
            ChildTerminatedError: If the command was killed by a signal
        """
        try:
            expiration = self.fetcher.fetch()
        except CredentialFetchError as e:
            raise InitialFetchError(f"Failed to fetch initial credentials: {e}") from e

        if expiration is not None:
            self._start_refresh(expiration)
        else:
            logger.info("No expiration in credentials response; background refresh disabled")

        try:
            _, command = split_command(argv)
            if not command:
                logger.debug("No command after separator; nothing to run")
                return 0
            return self._run_command(command)
        finally:
            self.stop()

    def _start_refresh(self, expiration) -> None:
        settings = self.settings or load_settings()
        self.scheduler = self.scheduler_factory(self.fetcher, settings)
        self.context = RefreshContext()
        self._thread = self.scheduler.start(self.context, expiration)

    def stop(self) -> None:
        """Cancel the background refresh and wait briefly for it to finish"""
        if self.context is None:
            return
        self.context.cancel()
        if self._thread is not None:
            self._thread.join(timeout=self.join_timeout)
            if self._thread.is_alive():
                logger.warning("Credential refresh thread did not stop in time")

    def child_environment(self) -> Dict[str, str]:
        """Environment for the command: ours plus the current credentials"""
        environment = dict(os.environ)
        environment.update(self.fetcher.credentials.to_environment())
        return environment

    def _run_command(self, command: List[str]) -> int:
        logger.info(f"Running command: {command[0]}")
        try:
            result = subprocess.run(command, env=self.child_environment())
        except OSError as e:
            raise CommandStartError(f"Failed to execute command: {e}") from e

        if result.returncode < 0:
            signal_number = -result.returncode
            try:
                name = signal.Signals(signal_number).name
            except ValueError:
                name = str(signal_number)
            raise ChildTerminatedError(f"Command terminated by signal {name}", signal_number)

        logger.debug(f"Command exited with code {result.returncode}")
        return result.returncode
