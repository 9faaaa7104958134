"""Provider server: adapter registry and operation entry points.

The plan/apply engine calls these methods with plain mappings. Each call
converts its input into the adapter's state model, runs exactly one adapter
operation and returns an :class:`OperationResult` carrying the new state and
any diagnostics. Exceptions never cross this boundary as long as they are
provider or validation errors.
"""

import asyncio
from collections.abc import Awaitable, Mapping
from dataclasses import dataclass, field
from typing import Any, Optional, TypeVar

import httpx
import structlog
from pydantic import ValidationError

from bitrise_provider import __version__
from bitrise_provider.config import ProviderConfig
from bitrise_provider.context import ProviderContext
from bitrise_provider.data_sources import DATA_SOURCES, DataSourceAdapter
from bitrise_provider.diagnostics import Diagnostics
from bitrise_provider.exceptions import ConfigurationError, NetworkError, ProviderError
from bitrise_provider.resources import RESOURCES, ResourceAdapter
from bitrise_provider.schema import Schema, StateModel, attribute

logger = structlog.get_logger(__name__)

T = TypeVar("T")

PROVIDER_TYPE_NAME = "bitrise"


class ProviderBlock(StateModel):
    """Attributes accepted in the provider configuration block."""

    endpoint: str | None = attribute(
        description=(
            "Bitrise API URL. Defaults to BITRISE_ENDPOINT, then "
            "https://api.bitrise.io."
        ),
    )
    token: str | None = attribute(
        description="Bitrise API token. Defaults to BITRISE_TOKEN.", sensitive=True
    )
    timeout_seconds: float | None = attribute(
        description="Per-request timeout in seconds."
    )


@dataclass
class OperationResult:
    """Outcome of one provider operation."""

    state: Optional[dict[str, Any]] = None
    diagnostics: Diagnostics = field(default_factory=Diagnostics)
    removed: bool = False
    action: Optional[str] = None
    requires_replace: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.diagnostics.has_error

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "state": self.state,
            "removed": self.removed,
            "diagnostics": self.diagnostics.to_list(),
        }
        if self.action is not None:
            data["action"] = self.action
            data["requires_replace"] = list(self.requires_replace)
        return data


class BitriseProvider:
    """Registry of resource and data-source adapters for the Bitrise API."""

    type_name = PROVIDER_TYPE_NAME

    def __init__(self, version: str = __version__, log: Any = None) -> None:
        """Initialize the provider.

        Args:
            version: Provider version reported in the schema
            log: Structured logger handed to the client and adapters
        """
        self.version = version
        self.context: Optional[ProviderContext] = None
        self._log = log
        self._logger = (log or logger).bind(provider=self.type_name)
        self._resources: dict[str, ResourceAdapter] = {}
        self._data_sources: dict[str, DataSourceAdapter] = {}

    def _full_name(self, adapter_cls: type) -> str:
        return f"{self.type_name}_{adapter_cls.type_suffix}"

    @property
    def resource_types(self) -> list[str]:
        return sorted(self._full_name(cls) for cls in RESOURCES)

    @property
    def data_source_types(self) -> list[str]:
        return sorted(self._full_name(cls) for cls in DATA_SOURCES)

    def resource_schemas(self) -> dict[str, dict[str, Any]]:
        return {self._full_name(cls): cls.schema().to_dict() for cls in RESOURCES}

    def data_source_schemas(self) -> dict[str, dict[str, Any]]:
        return {self._full_name(cls): cls.schema().to_dict() for cls in DATA_SOURCES}

    def schema(self) -> dict[str, Any]:
        """Full provider schema: provider block, resources and data sources."""
        provider_schema = Schema.from_model(
            ProviderBlock, description="Interact with the Bitrise API."
        )
        return {
            "type_name": self.type_name,
            "version": self.version,
            "provider": provider_schema.to_dict(),
            "resources": self.resource_schemas(),
            "data_sources": self.data_source_schemas(),
        }

    def configure(
        self,
        raw: Optional[Mapping[str, Any]] = None,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> OperationResult:
        """Resolve the provider block and build the adapter registries.

        No request is sent; missing credentials only produce a warning and
        surface as an API error on first use.

        Args:
            raw: Provider block; ``None`` or empty values defer to the environment
            transport: Optional HTTP transport, used to fake the API in tests
        """
        result = OperationResult()
        try:
            config = ProviderConfig.resolve(raw)
        except ValidationError as e:
            self.context = None
            self._resources = {}
            self._data_sources = {}
            for error in e.errors():
                location = ".".join(str(part) for part in error.get("loc", ()))
                result.diagnostics.add_error(
                    ConfigurationError.summary, error["msg"], location or None
                )
            self._logger.error("Provider configuration failed", errors=len(e.errors()))
            return result

        if not config.has_token:
            result.diagnostics.add_warning(
                "Missing API Token",
                "No token configured; requests are sent without an Authorization "
                "header. Set token or BITRISE_TOKEN.",
                "token",
            )

        self.context = ProviderContext.from_config(
            config, transport=transport, type_name=self.type_name, log=self._log
        )
        self._resources = {
            self._full_name(cls): cls(self.context, log=self._log) for cls in RESOURCES
        }
        self._data_sources = {
            self._full_name(cls): cls(self.context, log=self._log)
            for cls in DATA_SOURCES
        }

        self._logger.info(
            "Provider configured",
            endpoint=config.endpoint,
            has_token=config.has_token,
        )
        return result

    def _require_context(self) -> ProviderContext:
        if self.context is None:
            raise ConfigurationError(
                "Provider has not been configured; call configure() first"
            )
        return self.context

    def resource(self, type_name: str) -> ResourceAdapter:
        """Look up the resource adapter for a type name."""
        self._require_context()
        try:
            return self._resources[type_name]
        except KeyError:
            raise ConfigurationError(f"Unknown resource type: {type_name}") from None

    def data_source(self, type_name: str) -> DataSourceAdapter:
        """Look up the data-source adapter for a type name."""
        self._require_context()
        try:
            return self._data_sources[type_name]
        except KeyError:
            raise ConfigurationError(f"Unknown data source type: {type_name}") from None

    @staticmethod
    async def _with_deadline(awaitable: Awaitable[T], timeout: Optional[float]) -> T:
        if timeout is None:
            return await awaitable
        try:
            return await asyncio.wait_for(awaitable, timeout)
        except asyncio.TimeoutError as e:
            raise NetworkError(
                f"Operation did not complete within {timeout} seconds"
            ) from e

    def _failed(self, operation: str, type_name: str, exc: Exception) -> OperationResult:
        self._logger.error(
            "Operation failed",
            operation=operation,
            type_name=type_name,
            error_type=type(exc).__name__,
            error=str(exc),
        )
        result = OperationResult()
        result.diagnostics.add_exception(exc)
        return result

    @staticmethod
    def _dump(state: Optional[StateModel]) -> Optional[dict[str, Any]]:
        return state.model_dump(mode="json") if state is not None else None

    async def create_resource(
        self,
        type_name: str,
        plan: Mapping[str, Any],
        *,
        timeout: Optional[float] = None,
    ) -> OperationResult:
        """Create a resource from its planned state."""
        try:
            adapter = self.resource(type_name)
            state = await self._with_deadline(
                adapter.create(adapter.parse_state(plan)), timeout
            )
        except (ProviderError, ValidationError) as e:
            return self._failed("create", type_name, e)
        return OperationResult(state=self._dump(state))

    async def read_resource(
        self,
        type_name: str,
        state: Mapping[str, Any],
        *,
        timeout: Optional[float] = None,
    ) -> OperationResult:
        """Refresh a resource; ``removed`` is set when it no longer exists."""
        try:
            adapter = self.resource(type_name)
            refreshed = await self._with_deadline(
                adapter.read(adapter.parse_state(state)), timeout
            )
        except (ProviderError, ValidationError) as e:
            return self._failed("read", type_name, e)
        return OperationResult(state=self._dump(refreshed), removed=refreshed is None)

    async def update_resource(
        self,
        type_name: str,
        prior: Mapping[str, Any],
        plan: Mapping[str, Any],
        *,
        timeout: Optional[float] = None,
    ) -> OperationResult:
        """Apply an in-place update from prior state to planned state."""
        try:
            adapter = self.resource(type_name)
            state = await self._with_deadline(
                adapter.update(adapter.parse_state(plan), adapter.parse_state(prior)),
                timeout,
            )
        except (ProviderError, ValidationError) as e:
            return self._failed("update", type_name, e)
        return OperationResult(state=self._dump(state))

    async def delete_resource(
        self,
        type_name: str,
        state: Mapping[str, Any],
        *,
        timeout: Optional[float] = None,
    ) -> OperationResult:
        """Delete a resource; on success the state is removed."""
        try:
            adapter = self.resource(type_name)
            await self._with_deadline(adapter.delete(adapter.parse_state(state)), timeout)
        except (ProviderError, ValidationError) as e:
            return self._failed("delete", type_name, e)
        return OperationResult(state=None, removed=True)

    def import_resource_state(self, type_name: str, import_id: str) -> OperationResult:
        """Seed state from an import identifier; the next read completes it."""
        try:
            adapter = self.resource(type_name)
            state = adapter.import_state(import_id)
        except (ProviderError, ValidationError) as e:
            return self._failed("import", type_name, e)
        return OperationResult(state=self._dump(state))

    def plan_resource_change(
        self,
        type_name: str,
        prior: Optional[Mapping[str, Any]],
        proposed: Optional[Mapping[str, Any]],
    ) -> OperationResult:
        """Compute the planned state and classify the change."""
        try:
            adapter = self.resource(type_name)
            change = adapter.plan_change(
                adapter.parse_state(prior), adapter.parse_state(proposed)
            )
        except (ProviderError, ValidationError) as e:
            return self._failed("plan", type_name, e)
        return OperationResult(
            state=self._dump(change.planned_state),
            action=change.action.value,
            requires_replace=list(change.requires_replace),
        )

    async def read_data_source(
        self,
        type_name: str,
        config: Optional[Mapping[str, Any]] = None,
        *,
        timeout: Optional[float] = None,
    ) -> OperationResult:
        """Read a data source for the given configuration."""
        try:
            adapter = self.data_source(type_name)
            state = await self._with_deadline(
                adapter.read(adapter.parse_state(config or {})), timeout
            )
        except (ProviderError, ValidationError) as e:
            return self._failed("read_data_source", type_name, e)
        return OperationResult(state=self._dump(state))
