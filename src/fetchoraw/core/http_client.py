"""
HTTP Fetch Module

This module provides the network port used by resolvers. It wraps a
``requests.Session`` and translates fetch options (method, headers, body and
so on) into request arguments. Status checking is left to the caller so each
resolver can raise its own error with the URL and status code.
"""

import logging
from typing import Any, Dict, Optional

import requests


DEFAULT_USER_AGENT = "Fetchoraw/2.0 (Asset Reference Rewriter)"
DEFAULT_TIMEOUT = 30

# Fetch option name -> requests.Session.request keyword
_OPTION_KEYWORDS = {
    "headers": "headers",
    "body": "data",
    "data": "data",
    "json": "json",
    "params": "params",
    "cookies": "cookies",
    "timeout": "timeout",
    "allow_redirects": "allow_redirects",
}


class HttpFetcher:
    """
    Performs HTTP requests for resolvers.

    The fetcher is sequential: one request at a time, no retries. A long
    request blocks until it settles or the timeout fires.
    """

    def __init__(self, timeout: float = DEFAULT_TIMEOUT, user_agent: str = DEFAULT_USER_AGENT,
                 session: Optional[requests.Session] = None):
        """
        Initialize the fetcher.

        Args:
            timeout: Default timeout in seconds when fetch options give none
            user_agent: User-Agent header sent with every request
            session: Optional pre-configured session (a new one is created otherwise)
        """
        self.timeout = timeout
        self.logger = logging.getLogger(__name__)
        self.session = session or requests.Session()
        self.session.headers.update({
            'User-Agent': user_agent,
            'Accept': '*/*',
        })

    def build_request_kwargs(self, fetch_options: Optional[Dict[str, Any]]) -> Dict[str, Any]:
        """
        Translate fetch options into ``requests`` keyword arguments.

        Args:
            fetch_options: Request configuration (method, headers, body, ...)

        Returns:
            Keyword arguments for ``Session.request`` (method excluded)
        """
        kwargs: Dict[str, Any] = {"timeout": self.timeout}
        for name, value in (fetch_options or {}).items():
            if name == "method":
                continue
            keyword = _OPTION_KEYWORDS.get(name)
            if keyword is None:
                self.logger.debug(f"Ignoring unsupported fetch option: {name}")
                continue
            kwargs[keyword] = value
        return kwargs

    def fetch(self, url: str, fetch_options: Optional[Dict[str, Any]] = None) -> requests.Response:
        """
        Fetch a URL.

        Args:
            url: Absolute URL to request
            fetch_options: Optional request configuration

        Returns:
            The response; callers check ``response.ok`` themselves

        Raises:
            requests.RequestException: On transport failures (DNS, timeout, ...)
        """
        method = str((fetch_options or {}).get("method", "GET")).upper()
        kwargs = self.build_request_kwargs(fetch_options)
        self.logger.debug(f"{method} {url}")
        response = self.session.request(method, url, **kwargs)
        self.logger.debug(f"{response.status_code} {url} ({len(response.content)} bytes)")
        return response

    def close(self):
        """Close the HTTP session."""
        self.session.close()
        self.logger.debug("HTTP fetcher session closed")
