"""
Errors Module

Exception types raised while finding Salesforce entities.
"""


class SfindError(Exception):
    """Base class for all sfind failures."""


class ConfigError(SfindError):
    """The configuration file or the environment is invalid."""


class BadInput(SfindError):
    """The query is neither a known Salesforce id nor an email address."""


class NotFound(SfindError):
    """Nothing matched the query."""


class AmbiguousResult(SfindError):
    """An id lookup returned more than one record."""


class RemoteError(SfindError):
    """A failure reported while talking to Salesforce."""


class AuthError(RemoteError):
    pass


class NetworkError(RemoteError):
    pass


class RateLimited(RemoteError):
    pass


class RemoteQueryError(RemoteError):
    pass
