"""Unit tests for schema derivation from state models."""

from bitrise_provider.data_sources.org_groups import OrgGroupsState
from bitrise_provider.resources.app_finish import AppFinishState
from bitrise_provider.resources.app_roles import AppRolesState
from bitrise_provider.resources.app_secrets import AppSecretState
from bitrise_provider.schema import Schema


class TestSchema:
    """Test Schema.from_model."""

    def test_secret_flags(self):
        """Test required, sensitive, computed and replace flags."""
        schema = Schema.from_model(AppSecretState)

        assert set(schema.required) == {"app_slug", "name", "value"}
        assert schema.sensitive == ("value",)
        assert set(schema.requires_replace) == {"app_slug", "name"}

        id_attr = schema.get("id")
        assert id_attr.computed and not id_attr.optional

    def test_optional_computed_defaults(self):
        """Test attributes with server defaults stay user settable."""
        schema = Schema.from_model(AppSecretState)

        expand = schema.get("expand_in_step_inputs")
        assert expand.optional
        assert expand.computed
        assert expand.default is True
        assert schema.get("is_protected").default is False

    def test_types(self):
        """Test mapping of annotations onto schema types."""
        assert Schema.from_model(AppRolesState).get("groups").type == "list(string)"
        assert Schema.from_model(AppFinishState).get("envs").type == "map(string)"
        assert Schema.from_model(AppSecretState).get("is_protected").type == "bool"
        assert (
            Schema.from_model(OrgGroupsState).get("groups").type
            == "list(object(slug=string, name=string))"
        )

    def test_unknown_attribute(self):
        """Test lookup of a missing attribute."""
        assert Schema.from_model(AppRolesState).get("nope") is None

    def test_to_dict(self):
        """Test plain dictionary export."""
        data = Schema.from_model(AppRolesState, description="Role groups").to_dict()

        assert data["description"] == "Role groups"
        assert data["attributes"]["role_name"]["requires_replace"] is True
        assert data["attributes"]["groups"]["required"] is True
