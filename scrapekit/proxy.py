from __future__ import annotations

import logging
import os
import time
import urllib.parse
from typing import Any, List, Mapping, Optional, Union

from .errors import ProxyConfigError
from .models import ProxyConfiguration
from .settings import PROXY_DEFAULT_COUNTRY, PROXY_HOSTNAME, PROXY_PORT

logger = logging.getLogger(__name__)


def _proxy_username(groups: Optional[List[str]], session: Optional[str], country: Optional[str]) -> str:
    parts = []
    if groups:
        parts.append("groups-" + "+".join(groups))
    if session:
        parts.append(f"session-{session}")
    if country:
        parts.append(f"country-{country}")
    return ",".join(parts) if parts else "auto"


def managed_proxy_url(
    *,
    password: Optional[str],
    groups: Optional[List[str]] = None,
    session: Optional[str] = None,
    country: Optional[str] = None,
) -> str:
    """Build a managed (Apify) proxy URL. Fails loudly without a password."""
    if not password:
        raise ProxyConfigError(
            "APIFY_PROXY_PASSWORD is not set in the environment; "
            "either set it or pass proxyConfiguration.proxyUrl / useApifyProxy=false."
        )
    username = _proxy_username(groups, session, country)
    return f"http://{username}:{urllib.parse.quote(password, safe='')}@{PROXY_HOSTNAME}:{PROXY_PORT}"


def get_proxy_url(
    proxy_configuration: Union[ProxyConfiguration, Mapping[str, Any], None],
    add_session: bool = False,
    now: Optional[float] = None,
) -> Optional[str]:
    """
    Resolve the proxy URL for a run.

    - explicit proxyUrl -> returned unchanged
    - useApifyProxy false and no proxyUrl -> None (no proxy)
    - otherwise a managed proxy URL in PROXY_DEFAULT_COUNTRY, optionally
      pinned to a session derived from the current time
    """
    if not isinstance(proxy_configuration, ProxyConfiguration):
        proxy_configuration = ProxyConfiguration.from_input(proxy_configuration)

    if proxy_configuration.proxy_url:
        return proxy_configuration.proxy_url

    if not proxy_configuration.use_apify_proxy:
        return None

    session = None
    if add_session:
        session = str(int((time.time() if now is None else now) * 1000))

    url = managed_proxy_url(
        password=os.environ.get("APIFY_PROXY_PASSWORD"),
        groups=proxy_configuration.apify_proxy_groups,
        session=session,
        country=PROXY_DEFAULT_COUNTRY,
    )
    logger.debug("Using managed proxy (groups=%s, session=%s)", proxy_configuration.apify_proxy_groups, session)
    return url
