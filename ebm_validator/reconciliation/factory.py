from typing import ClassVar

import httpx

from ebm_validator.config.settings import Settings
from ebm_validator.reconciliation.enrichment import BaseReceiptResolver, ReceiptEnricher
from ebm_validator.reconciliation.rra_receipt import RraReceiptResolver


class ReceiptEnricherFactory:
    """Creates the receipt enricher with the configured resolvers."""

    RESOLVERS: ClassVar[dict[str, type[BaseReceiptResolver]]] = {
        "rra": RraReceiptResolver,
    }

    @classmethod
    def create(cls, settings: Settings) -> ReceiptEnricher | None:
        """Return None when enrichment is disabled."""
        if not settings.enrichment_enabled:
            return None
        resolvers = [cls._resolver(name) for name in settings.enrichment_resolvers]
        client = httpx.Client(timeout=settings.enrichment_timeout_seconds)
        return ReceiptEnricher(client=client, resolvers=resolvers)

    @classmethod
    def _resolver(cls, name: str) -> BaseReceiptResolver:
        resolver_cls = cls.RESOLVERS.get(name.lower())
        if resolver_cls is None:
            raise ValueError(
                f"Unknown receipt resolver '{name}'. Choose from: {sorted(cls.RESOLVERS)}"
            )
        return resolver_cls()
