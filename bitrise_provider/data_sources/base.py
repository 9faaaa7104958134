"""Base class for read-only data sources."""

from abc import abstractmethod
from typing import ClassVar, Optional

import httpx

from bitrise_provider.exceptions import APIError, ResourceNotFoundError
from bitrise_provider.resources.base import BaseAdapter, Route, StateT


class DataSourceAdapter(BaseAdapter[StateT]):
    """Validates inputs, issues one GET and projects the response.

    Unlike resources, a missing target is an error: there is no state to
    remove, so a 404 surfaces as :class:`ResourceNotFoundError`.
    """

    entity_name: ClassVar[str] = "data source"
    route: ClassVar[Route]

    @abstractmethod
    def compute_id(self, state: StateT) -> Optional[str]:
        """Identifier of the read result."""

    @abstractmethod
    def project(self, config: StateT, response: httpx.Response) -> StateT:
        """Merge the response into the configured inputs."""

    async def read(self, config: StateT) -> StateT:
        """Fetch the data source for the given configuration."""
        self.validate_plan(config)
        self._logger.debug(f"Reading {self.entity_name}")

        try:
            response = await self._request(
                self.route, config, action=f"read {self.entity_name}"
            )
        except APIError as e:
            if e.status_code == httpx.codes.NOT_FOUND:
                raise ResourceNotFoundError(
                    f"{self.entity_name.capitalize()} not found",
                    status_code=e.status_code,
                    response_text=e.response_text,
                ) from e
            raise

        state = self.project(config, response)
        state = state.model_copy(update={"id": self.compute_id(state)})
        self._logger.info(f"Read {self.entity_name}", id=state.id)
        return state
