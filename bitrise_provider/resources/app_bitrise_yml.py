"""bitrise.yml content of a Bitrise app."""

import json
from typing import Any

import httpx
import yaml
from pydantic import BaseModel

from bitrise_provider.exceptions import PlanValidationError
from bitrise_provider.resources.app import APP_PATH
from bitrise_provider.resources.base import RestResource, Route
from bitrise_provider.schema import StateModel, attribute

YML_PATH = APP_PATH + "/bitrise.yml"


class AppBitriseYmlState(StateModel):
    id: str | None = attribute(description="Identifier (the app slug).", computed=True)
    app_slug: str | None = attribute(
        description="Slug of the app.", required=True, requires_replace=True
    )
    yml_content: str | None = attribute(
        description="Full bitrise.yml document.", required=True
    )
    update_on_create_only: bool | None = attribute(
        description=(
            "Upload the document on create only; later changes are kept in "
            "state without being sent."
        ),
    )


class BitriseYmlPayload(BaseModel):
    app_config_datastore_yaml: str


class AppBitriseYmlResource(RestResource[AppBitriseYmlState]):
    """Uploads and refreshes an app's bitrise.yml."""

    type_suffix = "app_bitrise_yml"
    state_model = AppBitriseYmlState
    description = "Manages the bitrise.yml of a Bitrise app."
    entity_name = "bitrise.yml"

    create_route = Route("POST", YML_PATH, (200, 201))
    read_route = Route("GET", YML_PATH, (200,))
    update_route = create_route
    mutable_fields = frozenset({"yml_content"})

    def validate_plan(self, plan: AppBitriseYmlState) -> None:
        super().validate_plan(plan)
        try:
            document = yaml.safe_load(plan.yml_content)
        except yaml.YAMLError as e:
            raise PlanValidationError(
                f"yml_content is not valid YAML: {e}", attribute="yml_content"
            ) from e
        if not isinstance(document, dict):
            raise PlanValidationError(
                "yml_content must be a YAML mapping", attribute="yml_content"
            )

    def skip_update(self, plan: AppBitriseYmlState) -> bool:
        return bool(plan.update_on_create_only)

    def modify_plan(
        self, prior: AppBitriseYmlState, planned: AppBitriseYmlState
    ) -> AppBitriseYmlState:
        if planned.update_on_create_only and prior.yml_content is not None:
            return planned.model_copy(update={"yml_content": prior.yml_content})
        return planned

    def build_create_payload(self, plan: AppBitriseYmlState) -> dict[str, Any]:
        return self._dump(BitriseYmlPayload(app_config_datastore_yaml=plan.yml_content))

    def merge_read(
        self, state: AppBitriseYmlState, response: httpx.Response
    ) -> AppBitriseYmlState:
        content = self._extract_content(response)
        self._logger.debug(
            "Fetched bitrise.yml",
            app_slug=state.app_slug,
            content_type=response.headers.get("content-type", ""),
            size=len(content),
        )
        return state.model_copy(update={"yml_content": content})

    def _extract_content(self, response: httpx.Response) -> str:
        """Return the document from a JSON envelope or a plain-text body."""
        body = response.text
        content_type = response.headers.get("content-type", "")
        if "application/json" not in content_type and not body.startswith("{"):
            return body
        try:
            data = json.loads(body)
        except ValueError as e:
            self._logger.warning(
                "bitrise.yml response is not JSON, using it as plain text",
                error=str(e),
            )
            return body
        if isinstance(data, dict) and isinstance(
            data.get("app_config_datastore_yaml"), str
        ):
            return data["app_config_datastore_yaml"]
        return body
