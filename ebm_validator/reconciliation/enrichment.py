"""Best-effort enrichment of a QR payload from a receipt lookup page.

Some EBM QR codes carry only a URL to the issuer's receipt portal. When the
URL host has a registered resolver, the page is fetched and parsed to fill
fields the QR text did not provide. QR-native values always win.
"""

import dataclasses
from abc import ABC, abstractmethod
from typing import ClassVar
from urllib.parse import urlsplit

import httpx

from ebm_validator.logging.logger import Log
from ebm_validator.reconciliation.exceptions import EnrichmentError
from ebm_validator.reconciliation.models import QrPayload

_MERGED_FIELDS = (
    "tin",
    "buyer_tin",
    "invoice_number",
    "issue_date",
    "total_amount",
    "vat_amount",
    "currency",
)


class BaseReceiptResolver(ABC):
    """Parses one issuer's receipt lookup page into a partial QrPayload."""

    hosts: ClassVar[frozenset[str]]

    @abstractmethod
    def parse(self, html: str, url: str) -> QrPayload:
        """Raises EnrichmentError when the page is not a recognizable receipt."""
        raise NotImplementedError


class ReceiptEnricher:
    """Routes QR payload URLs to the resolver registered for their host."""

    def __init__(self, client: httpx.Client, resolvers: list[BaseReceiptResolver]) -> None:
        self._client = client
        self._resolvers = {
            host.lower(): resolver for resolver in resolvers for host in resolver.hosts
        }

    @property
    def hosts(self) -> list[str]:
        return sorted(self._resolvers)

    def resolve_target(self, raw: str) -> tuple[str, BaseReceiptResolver] | None:
        """Return (url, resolver) when the raw QR text is a URL on a known host."""
        url = raw.strip() if raw else ""
        try:
            parts = urlsplit(url)
        except ValueError:
            return None
        if parts.scheme not in ("http", "https") or not parts.hostname:
            return None
        resolver = self._resolvers.get(parts.hostname.lower())
        return (url, resolver) if resolver is not None else None

    def enrich(self, payload: QrPayload) -> QrPayload:
        target = self.resolve_target(payload.raw)
        if target is None:
            return payload
        url, resolver = target

        try:
            response = self._client.get(url, follow_redirects=True)
            response.raise_for_status()
            updates = resolver.parse(response.text, url)
        except httpx.HTTPStatusError as exc:
            Log.warning(
                "Failed to fetch receipt via QR payload",
                url=url,
                status=exc.response.status_code,
            )
            return payload
        except (httpx.HTTPError, EnrichmentError) as exc:
            Log.warning("Error while enriching QR payload", url=url, error=exc)
            return payload

        Log.info("Enriched QR payload from receipt lookup", host=urlsplit(url).hostname)
        return merge_qr_payload(payload, updates)

    def close(self) -> None:
        self._client.close()


def merge_qr_payload(base: QrPayload, updates: QrPayload | None) -> QrPayload:
    """Fill empty fields of base from updates; never overwrite populated ones."""
    if updates is None:
        return base
    changes: dict[str, object] = {}
    for name in _MERGED_FIELDS:
        current = getattr(base, name)
        incoming = getattr(updates, name)
        if incoming is not None and (current is None or current == ""):
            changes[name] = incoming
    if updates.additional:
        changes["additional"] = {**updates.additional, **base.additional}
    return dataclasses.replace(base, **changes)  # type: ignore[arg-type]
