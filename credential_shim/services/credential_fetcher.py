import os
import logging
from datetime import datetime
from typing import Any, Callable, Dict, MutableMapping, Optional

import requests

from credential_shim.core.config import Settings, load_settings
from credential_shim.core.exceptions import CredentialFetchError
from credential_shim.core.utils.type_helpers import format_value, parse_rfc3339
from credential_shim.schemas.credentials import CREDENTIAL_FIELDS, EXPIRATION_FIELD, CredentialSet

logger = logging.getLogger(__name__)


def _reject_constant(name: str) -> Any:
    """Reject NaN and Infinity, which the json module accepts but JSON does not"""
    raise ValueError(f"invalid JSON constant: {name}")


class CredentialFetcher:
    """Service for fetching credentials from a container credentials endpoint"""

    def __init__(
        self,
        environ: Optional[MutableMapping[str, str]] = None,
        session: Optional[requests.Session] = None,
        settings_loader: Callable[[], Settings] = load_settings
    ):
        """Initialize the credential fetcher

        Args:
            environ: Mapping that receives the exported variables, os.environ by default
            session: HTTP session used for requests to the endpoint
            settings_loader: Called on every fetch to read the endpoint configuration
        """
        self.environ = os.environ if environ is None else environ
        self.session = session or requests.Session()
        self.settings_loader = settings_loader
        self.credentials = CredentialSet()

    def fetch(self) -> Optional[datetime]:
        """Run one fetch cycle and export the returned credentials

        Returns:
            Expiration reported by the endpoint, or None when it is absent or
            not a valid RFC 3339 timestamp

        Raises:
            ConfigurationError: If the endpoint URI is missing or malformed
            CredentialFetchError: If the request, the response body or an
                environment update fails. Variables written before the
                failure stay written.
        """
        settings = self.settings_loader()
        payload = self._request(settings)
        return self._apply(payload)

    def _request(self, settings: Settings) -> Dict[str, Any]:
        """Request the credentials document and decode it"""
        uri = settings.get_credentials_uri()
        headers = {}
        token = settings.get_authorization_token()
        if token:
            headers["Authorization"] = token

        logger.debug(f"Requesting credentials from {uri}")
        try:
            response = self.session.get(
                uri,
                headers=headers,
                timeout=settings.CREDENTIAL_SHIM_HTTP_TIMEOUT
            )
        except requests.RequestException as e:
            raise CredentialFetchError(f"failed to make request: {e}") from e

        if not response.ok:
            logger.warning(f"Credentials endpoint returned HTTP {response.status_code}")

        try:
            payload = response.json(parse_constant=_reject_constant)
        except ValueError as e:
            raise CredentialFetchError(f"failed to parse JSON: {e}") from e

        if not isinstance(payload, dict):
            raise CredentialFetchError(
                f"failed to parse JSON: expected an object, got {type(payload).__name__}"
            )

        logger.debug(f"Credentials response fields: {sorted(payload)}")
        return payload

    def _apply(self, payload: Dict[str, Any]) -> Optional[datetime]:
        """Export recognized fields and extract the expiration"""
        expiration = None

        for key, value in payload.items():
            if key == EXPIRATION_FIELD:
                expiration = parse_rfc3339(format_value(value))
                if expiration is None:
                    logger.debug(f"Ignoring unparsable {EXPIRATION_FIELD} value")
                continue

            if key not in CREDENTIAL_FIELDS:
                continue

            attribute, variable = CREDENTIAL_FIELDS[key]
            str_value = format_value(value)
            try:
                self.environ[variable] = str_value
            except (ValueError, UnicodeError) as e:
                raise CredentialFetchError(f"failed to set environment variable {variable}: {e}") from e
            setattr(self.credentials, attribute, str_value)

        if expiration is not None:
            self.credentials.expiration = expiration
            logger.info(f"Fetched credentials expiring at {expiration.isoformat()}")
        else:
            logger.info("Fetched credentials without an expiration")

        return expiration
