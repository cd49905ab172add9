"""HTTP forwarding of classified events to an external collector."""

import logging

import requests

logger = logging.getLogger(__name__)

_DEFAULT_TIMEOUT = 30


class EventForwarder:
    """Thin wrapper that POSTs events as JSON to a configured URL."""

    def __init__(self, url, timeout=_DEFAULT_TIMEOUT):
        self.url = url
        self.timeout = timeout

    def forward(self, event):
        """POST *event* and report whether the collector accepted it.

        Returns
        -------
        bool
            True on a 2xx response, False on any request failure.
        """
        try:
            resp = requests.post(self.url, json=event.to_dict(), timeout=self.timeout)
            resp.raise_for_status()
        except requests.RequestException as exc:
            logger.warning("Event forwarding to %s failed: %s", self.url, exc)
            return False
        logger.debug("Forwarded %s event for %s (%d)", event.event_type.name, event.email_address, resp.status_code)
        return True
