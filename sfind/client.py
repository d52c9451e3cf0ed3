"""
Salesforce Client Wrapper

Handles authentication and runs read-only SOQL queries against Salesforce.
"""
import logging
from typing import Any, Dict, List, Optional

import requests
from simple_salesforce import Salesforce
from simple_salesforce.exceptions import (
    SalesforceAuthenticationFailed,
    SalesforceError,
    SalesforceExpiredSession,
    SalesforceRefusedRequest,
)

from .config import DEFAULT_TIMEOUT, load_credentials
from .errors import AuthError, NetworkError, RateLimited, RemoteQueryError


logger = logging.getLogger(__name__)

RATE_LIMIT_CODE = 'REQUEST_LIMIT_EXCEEDED'


class TimeoutSession(requests.Session):
    """HTTP session applying a default timeout to every request, login included."""

    def __init__(self, timeout: float):
        super().__init__()
        self.timeout = timeout

    def request(self, method, url, **kwargs):
        kwargs.setdefault('timeout', self.timeout)
        return super().request(method, url, **kwargs)


class SalesforceClient:
    """Wrapper around SimpleSalesforce for running queries."""

    def __init__(self, sf: Optional[Salesforce] = None,
                 credentials: Optional[Dict[str, str]] = None,
                 timeout: float = DEFAULT_TIMEOUT):
        """
        Initialize the client.

        Credentials are read and the connection is opened on the first query,
        so building a client never touches the environment or the network.

        Args:
            sf: Optional already connected Salesforce instance
            credentials: Keyword arguments for Salesforce (default: from the environment)
            timeout: Seconds to wait for each call, login included
        """
        self._sf = sf
        self._credentials = credentials
        self.timeout = timeout

    @property
    def sf(self) -> Salesforce:
        """
        The underlying Salesforce connection, opened on first use.

        Raises:
            ConfigError: if no credentials are available
            AuthError, NetworkError: if the login fails
        """
        if self._sf is None:
            if self._credentials is None:
                self._credentials = load_credentials()
            logger.debug("logging in to Salesforce")
            try:
                self._sf = Salesforce(session=TimeoutSession(self.timeout), **self._credentials)
            except SalesforceAuthenticationFailed as e:
                raise AuthError(f"Salesforce authentication failed: {e}")
            except requests.exceptions.Timeout:
                raise NetworkError(f"login timeout after {self.timeout:g}s")
            except requests.exceptions.RequestException as e:
                raise NetworkError(f"cannot reach Salesforce: {e}")
        return self._sf

    @property
    def instance_url(self) -> Optional[str]:
        """Base URL of the Salesforce instance, if connected."""
        if self._sf is None:
            return None
        return f"https://{self._sf.sf_instance}"

    def execute(self, soql: str) -> List[Dict[str, Any]]:
        """
        Execute a SOQL query and return all matching rows.

        Args:
            soql: SOQL query string

        Returns:
            Flattened records; an empty list when nothing matches

        Raises:
            AuthError, NetworkError, RateLimited, RemoteQueryError
        """
        sf = self.sf
        logger.debug("query: %s", soql)
        try:
            result = sf.query_all(soql, timeout=self.timeout)
        except requests.exceptions.Timeout:
            raise NetworkError(f"timeout after {self.timeout:g}s")
        except requests.exceptions.RequestException as e:
            raise NetworkError(str(e))
        except SalesforceError as e:
            raise translate_error(e)

        records = [flatten(r) for r in result.get('records', [])]
        logger.debug("query returned %d record(s)", len(records))
        return records


def translate_error(err: SalesforceError) -> Exception:
    """Map a simple_salesforce exception to an sfind error."""
    content = getattr(err, 'content', None)
    message = _error_message(err)
    if RATE_LIMIT_CODE in str(content):
        return RateLimited(message)
    if isinstance(err, (SalesforceAuthenticationFailed,
                        SalesforceExpiredSession,
                        SalesforceRefusedRequest)):
        return AuthError(message)
    return RemoteQueryError(message)


def _error_message(err: SalesforceError) -> str:
    """Extract the message Salesforce returned, if any."""
    content = getattr(err, 'content', None)
    if isinstance(content, list) and content and isinstance(content[0], dict):
        code = content[0].get('errorCode')
        msg = content[0].get('message')
        if code and msg:
            return f"{code}: {msg}"
    return str(err)


def flatten(record: Dict[str, Any], prefix: str = '') -> Dict[str, Any]:
    """
    Flatten a Salesforce record.

    Related objects become dotted keys (e.g. RecordType.Name) and the
    'attributes' metadata is removed.
    """
    flat = {}
    for key, value in record.items():
        if key == 'attributes':
            continue
        name = f"{prefix}{key}"
        if isinstance(value, dict):
            flat.update(flatten(value, f"{name}."))
        else:
            flat[name] = value
    return flat
