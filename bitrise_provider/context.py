"""Configuration context handed to every resource and data-source adapter."""

from dataclasses import dataclass
from typing import Any, Optional

import httpx

from bitrise_provider.client import ClientFactory, make_client_factory
from bitrise_provider.config import ProviderConfig


@dataclass(frozen=True, slots=True)
class ProviderContext:
    """Immutable result of provider configuration.

    Adapters receive this at construction; the client factory is the only
    network capability they get.
    """

    config: ProviderConfig
    client_factory: ClientFactory
    type_name: str = "bitrise"

    @classmethod
    def from_config(
        cls,
        config: ProviderConfig,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        type_name: str = "bitrise",
        log: Any = None,
    ) -> "ProviderContext":
        """Build a context whose clients talk to ``config.endpoint``."""
        return cls(
            config=config,
            client_factory=make_client_factory(config, transport=transport, log=log),
            type_name=type_name,
        )
