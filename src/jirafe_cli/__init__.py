"""Jirafe Events CLI.

Track page views, product, cart, order, user and custom events against the
Jirafe event API, and read back site analytics and stats.
"""

__version__ = "1.0.0"

from jirafe_cli.client import ConfigurationError, JirafeClient, JirafeError, RequestError
from jirafe_cli.config import Credentials, JirafeSettings, SettingsStore

__all__ = [
    "__version__",
    "ConfigurationError",
    "Credentials",
    "JirafeClient",
    "JirafeError",
    "JirafeSettings",
    "RequestError",
    "SettingsStore",
]
