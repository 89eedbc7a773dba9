"""Unit tests for the script synchronizer and config document rendering."""

import pytest
import yaml
from hypothesis import given, settings
from hypothesis import strategies as st

from retainer.core.exceptions import DatabaseQueryError, ScriptServiceError
from retainer.services.config_store import EffectivePluginConfig
from retainer.services.script_sync import (
    ScriptSynchronizer,
    render_config_document,
    resolve_effective_export_url,
)
from retainer.schemas.retention import RetentionScript
from tests.unit.services.fakes import ORG_ID, PLUGIN_ID, FakeConfigStore, FakeScriptService, make_release

printable = st.characters(min_codepoint=32, max_codepoint=126)
header_maps = st.dictionaries(
    keys=st.text(alphabet="abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789-_", min_size=1, max_size=12),
    values=st.text(alphabet=printable, max_size=30),
    max_size=6,
)


class TestRenderConfigDocument:
    def test_document_shape(self):
        document = yaml.safe_load(render_config_document({"API-Key": "abc"}, "https://export.example.com"))
        assert document == {"otelEndpointConfig": {"url": "https://export.example.com", "headers": {"API-Key": "abc"}}}

    def test_empty_headers(self):
        document = yaml.safe_load(render_config_document(None, ""))
        assert document == {"otelEndpointConfig": {"url": "", "headers": {}}}

    @given(headers=header_maps, url=st.text(alphabet=printable, max_size=40))
    @settings(max_examples=50, deadline=None)
    def test_rendering_is_deterministic(self, headers, url):
        reordered = dict(reversed(list(headers.items())))
        assert render_config_document(headers, url) == render_config_document(reordered, url)

    @given(headers=header_maps, url=st.text(alphabet=printable, max_size=40))
    @settings(max_examples=50, deadline=None)
    def test_rendering_round_trips_through_yaml(self, headers, url):
        document = yaml.safe_load(render_config_document(headers, url))
        assert document["otelEndpointConfig"]["headers"] == headers
        assert document["otelEndpointConfig"]["url"] == url


class TestResolveEffectiveExportUrl:
    def test_org_custom_url_wins(self):
        assert resolve_effective_export_url("https://d", "https://s", "https://o") == "https://o"

    def test_script_override_beats_default(self):
        assert resolve_effective_export_url("https://d", "https://s", None) == "https://s"

    def test_default_when_nothing_set(self):
        assert resolve_effective_export_url("https://d", "", None) == "https://d"

    def test_empty_strings_are_unset(self):
        assert resolve_effective_export_url("https://d", "", "") == "https://d"


@pytest.fixture
def store() -> FakeConfigStore:
    return FakeConfigStore([make_release("1.0.0", presets=2)])


@pytest.fixture
def remote() -> FakeScriptService:
    return FakeScriptService()


@pytest.fixture
def synchronizer(store, remote) -> ScriptSynchronizer:
    return ScriptSynchronizer(store, remote)


class TestScriptSynchronizer:
    @pytest.mark.asyncio
    async def test_materialize_presets(self, synchronizer, store, remote, auth_context):
        release = make_release("1.0.0", presets=2)

        created = await synchronizer.materialize_presets(
            None, auth_context, ORG_ID, PLUGIN_ID, release, {"API-Key": "k"}, None
        )

        assert len(created) == 2
        assert set(created) == set(remote.scripts) == set(store.scripts)
        assert [c[0] for c in remote.calls] == ["create", "create"]

    @pytest.mark.asyncio
    async def test_create_script_discards_remote_on_local_failure(self, synchronizer, store, remote, auth_context):
        store.fail_insert = True
        effective = EffectivePluginConfig(version="1.0.0", default_export_url="https://d", custom_export_url=None)

        with pytest.raises(DatabaseQueryError):
            await synchronizer.create_script(
                None,
                auth_context,
                ORG_ID,
                PLUGIN_ID,
                RetentionScript(org_id=ORG_ID, plugin_id=PLUGIN_ID, script_name="s"),
                body="--",
                cluster_ids=[],
                frequency_s=60,
                effective=effective,
            )

        assert [c[0] for c in remote.calls] == ["create", "delete"]
        assert remote.scripts == {}

    @pytest.mark.asyncio
    async def test_propagate_skips_presets_when_asked(self, synchronizer, store, remote, auth_context):
        release = make_release("1.0.0", presets=2)
        await synchronizer.materialize_presets(None, auth_context, ORG_ID, PLUGIN_ID, release, {}, None)

        report = await synchronizer.propagate_config_change(
            None, auth_context, ORG_ID, PLUGIN_ID, release, {"API-Key": "new"}, None, include_presets=False
        )

        assert report.updated == []
        assert report.complete

    @pytest.mark.asyncio
    async def test_propagate_records_failures(self, synchronizer, store, remote, auth_context):
        release = make_release("1.0.0", presets=2)
        created = await synchronizer.materialize_presets(None, auth_context, ORG_ID, PLUGIN_ID, release, {}, None)
        remote.fail_update_ids = {created[0]}

        report = await synchronizer.propagate_config_change(
            None, auth_context, ORG_ID, PLUGIN_ID, release, {"API-Key": "new"}, None
        )

        assert list(report.failed) == [created[0]]
        assert report.updated == [created[1]]

    @pytest.mark.asyncio
    async def test_delete_plugin_scripts_remote_first(self, synchronizer, store, remote, auth_context):
        release = make_release("1.0.0", presets=2)
        created = await synchronizer.materialize_presets(None, auth_context, ORG_ID, PLUGIN_ID, release, {}, None)
        remote.fail_delete_ids = {created[1]}

        with pytest.raises(ScriptServiceError):
            await synchronizer.delete_plugin_scripts(None, auth_context, ORG_ID, PLUGIN_ID, preset_only=False)

        # local rows stay until every remote delete succeeded
        assert set(store.scripts) == set(created)

    @pytest.mark.asyncio
    async def test_delete_remote_not_found_is_success(self, synchronizer, remote, auth_context):
        await synchronizer.delete_script_remote(auth_context, "missing-script")
        assert remote.calls == [("delete", "missing-script")]
