from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

from .settings import START_LABEL


def _as_list(value: Any) -> Optional[List[str]]:
    # a single group name is one group, not a sequence of characters
    if not value:
        return None
    if isinstance(value, str):
        return [value]
    return list(value)


@dataclass
class ProxyConfiguration:
    """
    Proxy settings as given in the run input (`proxyConfiguration`).

    use_apify_proxy defaults to True, same as the input schema.
    """
    use_apify_proxy: bool = True
    proxy_url: Optional[str] = None
    apify_proxy_groups: Optional[List[str]] = None

    @classmethod
    def from_input(cls, raw: Optional[Mapping[str, Any]]) -> "ProxyConfiguration":
        raw = raw or {}
        use_apify = raw.get("useApifyProxy")
        groups = raw.get("apifyProxyGroups")
        return cls(
            use_apify_proxy=True if use_apify is None else bool(use_apify),
            proxy_url=raw.get("proxyUrl") or None,
            apify_proxy_groups=_as_list(groups),
        )


@dataclass
class RunConfiguration:
    """
    Typed view of a validated run input.

    Built only after validate_input() accepted the raw mapping.
    """
    search_terms: List[str] = field(default_factory=list)
    spreadsheet_id: Optional[str] = None
    max_items: Optional[float] = None
    extend_output_function: Optional[str] = None
    proxy_configuration: Optional[ProxyConfiguration] = None

    @classmethod
    def from_input(cls, raw: Mapping[str, Any]) -> "RunConfiguration":
        proxy_raw = raw.get("proxyConfiguration")
        return cls(
            search_terms=list(raw.get("searchTerms") or []),
            spreadsheet_id=raw.get("spreadsheetId") or None,
            max_items=raw.get("maxItems"),
            extend_output_function=raw.get("extendOutputFunction") or None,
            proxy_configuration=ProxyConfiguration.from_input(proxy_raw) if proxy_raw is not None else None,
        )


@dataclass
class SeedRequest:
    """One initial unit of work for the request queue."""
    url: str
    label: str = START_LABEL

    def to_request(self) -> Dict[str, Any]:
        # Shape expected by request-queue collaborators
        return {"url": self.url, "userData": {"label": self.label}}


@dataclass
class SourceSet:
    sources: List[SeedRequest]
    sheet_title: str
