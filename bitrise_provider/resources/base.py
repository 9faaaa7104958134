"""Abstract base classes for Bitrise resource adapters.

Every resource follows the same synchronization contract: build a URL from
the identity attributes, marshal a payload, send one request, check the
status against the endpoint's success set, unmarshal and merge the response
into typed state. :class:`RestResource` implements that contract once;
concrete resources only declare routes, payload/response models and merge
hooks.
"""

import string
from abc import ABC, abstractmethod
from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any, ClassVar, Generic, Optional, TypeVar
from urllib.parse import quote

import httpx
import structlog
from pydantic import BaseModel, ValidationError

from bitrise_provider.context import ProviderContext
from bitrise_provider.exceptions import (
    ImportIdError,
    PayloadError,
    PlanValidationError,
    ReplacementRequiredError,
)
from bitrise_provider.schema import Schema, StateModel

logger = structlog.get_logger(__name__)

StateT = TypeVar("StateT", bound=StateModel)
ModelT = TypeVar("ModelT", bound=BaseModel)


@dataclass(frozen=True, slots=True)
class Route:
    """One API endpoint: verb, path template and accepted status codes."""

    method: str
    path: str
    success: tuple[int, ...] = (200,)

    @property
    def placeholders(self) -> tuple[str, ...]:
        return tuple(
            name for _, name, _, _ in string.Formatter().parse(self.path) if name
        )

    def url(self, state: BaseModel) -> str:
        """Fill the path template from state attributes, URL-quoting each segment."""
        values = {}
        for name in self.placeholders:
            value = getattr(state, name, None)
            if value is None or value == "":
                raise PlanValidationError(
                    f"Attribute '{name}' must be set to call {self.method} {self.path}",
                    attribute=name,
                )
            values[name] = quote(str(value), safe="")
        return self.path.format(**values)


class BaseAdapter(ABC, Generic[StateT]):
    """Behaviour shared by resources and data sources."""

    type_suffix: ClassVar[str]
    state_model: ClassVar[type[StateModel]]
    description: ClassVar[str] = ""

    def __init__(self, context: ProviderContext, log: Any = None) -> None:
        """Initialize the adapter.

        Args:
            context: Configured provider context (client factory and config)
            log: Structured logger; defaults to the module logger
        """
        self.context = context
        self._logger = (log or logger).bind(resource_type=self.type_name)

    @property
    def type_name(self) -> str:
        """Full type name, e.g. ``bitrise_app_secret``."""
        return f"{self.context.type_name}_{self.type_suffix}"

    @classmethod
    def schema(cls) -> Schema:
        return Schema.from_model(cls.state_model, description=cls.description)

    def parse_state(self, data: Optional[Mapping[str, Any]]) -> Optional[StateT]:
        """Convert a plain mapping into this adapter's state model."""
        if data is None:
            return None
        return self.state_model.model_validate(dict(data))

    def validate_plan(self, plan: StateT) -> None:
        """Check required attributes are present.

        Raises:
            PlanValidationError: If a required attribute is null
        """
        missing = [name for name in self.schema().required if getattr(plan, name) is None]
        if missing:
            raise PlanValidationError(
                f"Missing required attribute(s): {', '.join(missing)}",
                attribute=missing[0],
            )

    async def _request(
        self,
        route: Route,
        state: BaseModel,
        *,
        action: str,
        payload: Any = None,
        allow_not_found: bool = False,
    ) -> Optional[httpx.Response]:
        """Issue one request on a fresh client and enforce the route's success set."""
        path = route.url(state)
        async with self.context.client_factory() as client:
            return await client.call(
                route.method,
                path,
                expected=route.success,
                action=action,
                json_data=payload,
                allow_not_found=allow_not_found,
            )

    @staticmethod
    def _json(response: httpx.Response, action: str) -> Any:
        try:
            return response.json()
        except ValueError as e:
            raise PayloadError(f"Unable to parse response to {action}: {e}") from e

    def _parse(
        self, response: httpx.Response, model: type[ModelT], action: str
    ) -> ModelT:
        """Unmarshal a JSON response body into a response model."""
        body = self._json(response, action)
        try:
            return model.model_validate(body)
        except ValidationError as e:
            raise PayloadError(f"Unexpected response to {action}: {e}") from e

    @staticmethod
    def _dump(payload: BaseModel) -> dict[str, Any]:
        """Marshal a payload model into a JSON-ready dictionary."""
        return payload.model_dump(mode="json", exclude_none=True)


class ChangeAction(str, Enum):
    """Planned change for a resource instance."""

    CREATE = "create"
    UPDATE = "update"
    REPLACE = "replace"
    DELETE = "delete"
    NOOP = "noop"


@dataclass(frozen=True, slots=True)
class PlannedChange:
    """Outcome of :meth:`ResourceAdapter.plan_change`."""

    action: ChangeAction
    planned_state: Optional[StateModel]
    requires_replace: tuple[str, ...] = ()


class ResourceAdapter(BaseAdapter[StateT]):
    """Abstract resource adapter: create, read, update, delete, import."""

    identity_fields: ClassVar[tuple[str, ...]] = ("app_slug",)

    def compute_id(self, state: StateT) -> Optional[str]:
        """Join the identity attributes with ``/``; None while any is unknown."""
        values = [getattr(state, name) for name in self.identity_fields]
        if any(value is None or value == "" for value in values):
            return None
        return "/".join(str(value) for value in values)

    def identity(self, state: StateT) -> dict[str, Any]:
        return {name: getattr(state, name) for name in self.identity_fields}

    @property
    def import_id_format(self) -> str:
        return "/".join(self.identity_fields)

    def import_state(self, import_id: str) -> StateT:
        """Seed state from an import identifier.

        Only the identity attributes and ``id`` are set; the next read fills
        in everything else.

        Raises:
            ImportIdError: If the identifier does not have one non-empty part
                per identity attribute
        """
        parts = import_id.split("/") if import_id else []
        if len(parts) != len(self.identity_fields) or not all(p.strip() for p in parts):
            raise ImportIdError(
                f"Import ID must be in the format '{self.import_id_format}', "
                f"got: {import_id!r}"
            )
        values: dict[str, Any] = dict(zip(self.identity_fields, parts))
        values["id"] = import_id
        self._logger.info("Imported resource identity", import_id=import_id)
        return self.state_model.model_validate(values)

    def changed_fields(self, plan: StateT, prior: StateT) -> set[str]:
        """Names of user-facing attributes whose value differs from prior state."""
        schema = self.schema()
        return {
            attr.name
            for attr in schema.attributes
            if (attr.required or attr.optional)
            and getattr(plan, attr.name) != getattr(prior, attr.name)
        }

    def _replace_fields(self, plan: StateT, prior: StateT) -> tuple[str, ...]:
        # An attribute unknown in prior state (e.g. after import) is adopted, not replaced
        replace = set(self.schema().requires_replace)
        return tuple(
            sorted(
                name
                for name in self.changed_fields(plan, prior) & replace
                if getattr(prior, name) is not None
            )
        )

    def ensure_in_place(self, plan: StateT, prior: StateT) -> None:
        """Refuse updates that touch replace-only attributes.

        Raises:
            ReplacementRequiredError: If such an attribute changed
        """
        blocked = self._replace_fields(plan, prior)
        if blocked:
            raise ReplacementRequiredError(
                f"Changing {', '.join(blocked)} requires replacing the resource",
                attribute=blocked[0],
            )

    def carry_computed(self, plan: StateT, prior: StateT) -> StateT:
        """Keep server-assigned values from prior state where the plan has none."""
        updates = {
            name: getattr(prior, name)
            for name in self.schema().computed
            if getattr(plan, name) is None and getattr(prior, name) is not None
        }
        return plan.model_copy(update=updates) if updates else plan

    def modify_plan(self, prior: StateT, planned: StateT) -> StateT:
        """Hook for resource-specific plan modification."""
        return planned

    def plan_change(
        self, prior: Optional[StateT], proposed: Optional[StateT]
    ) -> PlannedChange:
        """Classify the change from prior state to the proposed configuration."""
        if proposed is None:
            return PlannedChange(ChangeAction.DELETE, None)
        if prior is None:
            return PlannedChange(ChangeAction.CREATE, proposed)

        planned = self.modify_plan(prior, self.carry_computed(proposed, prior))
        replace = self._replace_fields(planned, prior)
        if replace:
            schema = self.schema()
            unknown = {
                a.name: None for a in schema.attributes if a.computed and not a.optional
            }
            return PlannedChange(
                ChangeAction.REPLACE, planned.model_copy(update=unknown), replace
            )
        if self.changed_fields(planned, prior):
            return PlannedChange(ChangeAction.UPDATE, planned)
        return PlannedChange(ChangeAction.NOOP, planned)

    @abstractmethod
    async def create(self, plan: StateT) -> StateT:
        """Create the remote entity and return the resulting state."""

    @abstractmethod
    async def read(self, state: StateT) -> Optional[StateT]:
        """Refresh state; None means the entity is gone and state is removed."""

    @abstractmethod
    async def update(self, plan: StateT, prior: StateT) -> StateT:
        """Apply in-place changes and return the resulting state."""

    @abstractmethod
    async def delete(self, state: StateT) -> None:
        """Delete the remote entity, or only forget it locally."""


class RestResource(ResourceAdapter[StateT]):
    """Resource whose lifecycle maps one-to-one onto REST routes.

    Subclasses set the routes and override the payload / merge hooks they
    need. A missing ``read_route`` keeps state as-is on refresh; a missing
    ``delete_route`` makes delete a local-only operation.
    """

    entity_name: ClassVar[str] = "resource"
    create_route: ClassVar[Route]
    read_route: ClassVar[Optional[Route]] = None
    update_route: ClassVar[Optional[Route]] = None
    delete_route: ClassVar[Optional[Route]] = None
    mutable_fields: ClassVar[frozenset[str]] = frozenset()

    def build_create_payload(self, plan: StateT) -> Any:
        return None

    def apply_create_response(self, plan: StateT, response: httpx.Response) -> StateT:
        return plan

    def build_update_payload(self, plan: StateT, changes: set[str]) -> Any:
        return self.build_create_payload(plan)

    def merge_read(self, state: StateT, response: httpx.Response) -> StateT:
        return state

    def build_delete_payload(self, state: StateT) -> Any:
        return None

    def skip_update(self, plan: StateT) -> bool:
        """Return True to persist the plan without contacting the API."""
        return False

    @staticmethod
    def merge_values(state: StateT, values: Mapping[str, Any]) -> StateT:
        """Merge remote values into state, keeping prior values the API omitted."""
        updates = {k: v for k, v in values.items() if v is not None and v != ""}
        return state.model_copy(update=updates) if updates else state

    def _with_id(self, state: StateT) -> StateT:
        return state.model_copy(update={"id": self.compute_id(state)})

    async def create(self, plan: StateT) -> StateT:
        self.validate_plan(plan)
        log = self._logger.bind(**self.identity(plan))
        log.debug(f"Creating {self.entity_name}")

        response = await self._request(
            self.create_route,
            plan,
            action=f"create {self.entity_name}",
            payload=self.build_create_payload(plan),
        )
        state = self._with_id(self.apply_create_response(plan, response))

        log.info(f"Created {self.entity_name}", id=state.id)
        return state

    async def read(self, state: StateT) -> Optional[StateT]:
        log = self._logger.bind(**self.identity(state))
        if self.read_route is None:
            return state
        if self.compute_id(state) is None:
            log.warning("Identity attributes are empty, skipping read")
            return state

        log.debug(f"Reading {self.entity_name}")
        response = await self._request(
            self.read_route,
            state,
            action=f"read {self.entity_name}",
            allow_not_found=True,
        )
        if response is None:
            log.info(f"{self.entity_name.capitalize()} not found, removing from state")
            return None
        return self._with_id(self.merge_read(state, response))

    async def update(self, plan: StateT, prior: StateT) -> StateT:
        log = self._logger.bind(**self.identity(prior))
        if self.skip_update(plan):
            log.info(f"Skipping {self.entity_name} update, persisting plan only")
            return plan

        self.validate_plan(plan)
        self.ensure_in_place(plan, prior)
        plan = self.carry_computed(plan, prior)

        changes = self.changed_fields(plan, prior) & self.mutable_fields
        if not changes or self.update_route is None:
            log.debug(f"No in-place changes for {self.entity_name}")
            return self._with_id(plan)

        log.debug(f"Updating {self.entity_name}", changes=sorted(changes))
        await self._request(
            self.update_route,
            plan,
            action=f"update {self.entity_name}",
            payload=self.build_update_payload(plan, changes),
        )
        log.info(f"Updated {self.entity_name}")
        return self._with_id(plan)

    async def delete(self, state: StateT) -> None:
        log = self._logger.bind(**self.identity(state))
        if self.delete_route is None:
            log.info(f"Removed {self.entity_name} from state only, remote entity is kept")
            return

        log.debug(f"Deleting {self.entity_name}")
        response = await self._request(
            self.delete_route,
            state,
            action=f"delete {self.entity_name}",
            payload=self.build_delete_payload(state),
            allow_not_found=True,
        )
        if response is None:
            log.info(f"{self.entity_name.capitalize()} already deleted")
            return
        log.info(f"Deleted {self.entity_name}")
