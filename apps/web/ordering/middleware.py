"""
Café network middleware - keeps table pages behind the Wi-Fi check.
"""

import logging
from collections.abc import Callable

from django.conf import settings
from django.http import HttpRequest, HttpResponse, HttpResponseRedirect

from apps.web.ordering.access import DEFAULT_CAFE_PREFIXES, is_allowed_address

logger = logging.getLogger(__name__)


class CafeNetworkMiddleware:
    """
    Middleware that redirects off-network guests away from table pages.

    Client address is taken from (in order):
    1. First hop of the X-Forwarded-For header (behind the proxy)
    2. REMOTE_ADDR

    Only paths under CAFE_GATE_PATHS are checked. Denied requests are
    redirected to WIFI_REQUIRED_URL.
    """

    def __init__(self, get_response: Callable[[HttpRequest], HttpResponse]) -> None:
        self.get_response = get_response

    def __call__(self, request: HttpRequest) -> HttpResponse:
        gated_paths = getattr(settings, "CAFE_GATE_PATHS", ["/table/"])
        if not any(request.path.startswith(path) for path in gated_paths):
            return self.get_response(request)

        address = self._get_client_address(request)
        prefixes = getattr(settings, "CAFE_NETWORK_PREFIXES", DEFAULT_CAFE_PREFIXES)
        if not is_allowed_address(address, prefixes):
            logger.info("Blocking %s for off-network client %r", request.path, address)
            return HttpResponseRedirect(
                getattr(settings, "WIFI_REQUIRED_URL", "/wifi-required")
            )

        return self.get_response(request)

    def _get_client_address(self, request: HttpRequest) -> str:
        """Resolve the client address from the request."""
        forwarded = request.headers.get("X-Forwarded-For", "")
        if forwarded:
            return forwarded.split(",")[0].strip()
        return request.META.get("REMOTE_ADDR", "")
