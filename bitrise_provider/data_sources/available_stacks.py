"""Available build stacks."""

import httpx

from bitrise_provider.data_sources.base import DataSourceAdapter
from bitrise_provider.exceptions import PayloadError
from bitrise_provider.resources.base import Route
from bitrise_provider.schema import StateModel, attribute

STACKS_ID = "available-stacks"


class AvailableStacksState(StateModel):
    id: str | None = attribute(description="Constant identifier.", computed=True)
    stack_keys: list[str] | None = attribute(
        description="Keys of the stacks available to the token's user.", computed=True
    )


class AvailableStacksDataSource(DataSourceAdapter[AvailableStacksState]):
    type_suffix = "available_stacks"
    state_model = AvailableStacksState
    description = "Lists the build stacks available on Bitrise."
    entity_name = "available stacks"
    route = Route("GET", "/v0.1/available-stacks", (200,))

    def compute_id(self, state: AvailableStacksState) -> str:
        return STACKS_ID

    def project(
        self, config: AvailableStacksState, response: httpx.Response
    ) -> AvailableStacksState:
        stacks = self._json(response, "read available stacks")
        if not isinstance(stacks, dict):
            raise PayloadError(
                "Unexpected response to read available stacks: expected an object "
                f"keyed by stack, got {type(stacks).__name__}"
            )
        return config.model_copy(update={"stack_keys": sorted(stacks)})
