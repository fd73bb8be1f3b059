import json

import pytest

from model_conductor.clients import config_store
from model_conductor.config import Settings
from model_conductor.models.enums import Role
from model_conductor.models.role_config import RoleConfiguration
from model_conductor.services.setup_service import (
    EmptyCatalogError,
    ServerUnreachableError,
    SetupService,
)
from model_conductor.ui.selector import SelectionCancelled

from conftest import FakeInferenceClient

FULL_CATALOG = (
    "openai/gpt-oss-120b",
    "mistralai/mistral-large",
    "google/gemma-3-12b",
    "openai/gpt-oss-20b",
    "overthinking-rustacean-behemoth_mlx_8",
    "mistralai/devstral-small-2-2512",
    "nomic-ai/nomic-embed-text-v1.5",
)


def _service(settings, client, selector):
    messages = []
    service = SetupService(settings, client, selector, status=messages.append)
    return service, messages


def test_run_selects_heuristic_defaults_and_persists(settings, make_selector):
    client = FakeInferenceClient(catalog_ids=FULL_CATALOG)
    service, _ = _service(settings, client, make_selector(tty=False))

    config = service.run()

    assert config.as_role_mapping() == {
        Role.PLANNER: "openai/gpt-oss-120b",
        Role.PRIMARY: "openai/gpt-oss-20b",
        Role.CODER: "overthinking-rustacean-behemoth_mlx_8",
        Role.EMBEDDING: "nomic-ai/nomic-embed-text-v1.5",
    }
    assert config_store.load_fast_path(settings.config_path) == config
    assert settings.marker_path.read_text() == "openai/gpt-oss-20b"


def test_interactive_run_lets_operator_override(settings, make_selector, capture):
    client = FakeInferenceClient(catalog_ids=FULL_CATALOG)
    # planner: accept; primary: move up once from gpt-oss-20b; coder: accept; embedding: accept
    selector = make_selector(keys=["enter", "up", "enter", "enter", "enter"])
    service, _ = _service(settings, client, selector)

    config = service.run()

    assert config.primary_model == "google/gemma-3-12b"
    assert config.planner_model == "openai/gpt-oss-120b"
    assert capture.entered == capture.exited == 4


def test_fast_path_skips_server(settings, make_selector):
    saved = RoleConfiguration.from_selection(
        {Role.PLANNER: "p", Role.PRIMARY: "m", Role.CODER: "c", Role.EMBEDDING: "e"}
    )
    config_store.save(settings.config_path, saved)
    client = FakeInferenceClient(catalog_ids=FULL_CATALOG)
    service, messages = _service(settings, client, make_selector(tty=False))

    assert service.run() == saved
    assert client.probe_calls == 0 and client.fetch_calls == 0
    assert any("saved role configuration" in message for message in messages)


def test_incomplete_saved_record_triggers_full_selection(settings, make_selector):
    settings.config_path.write_text(json.dumps({"primaryModel": "stale"}))
    client = FakeInferenceClient(catalog_ids=FULL_CATALOG)
    service, _ = _service(settings, client, make_selector(tty=False))

    config = service.run()

    assert config.primary_model == "openai/gpt-oss-20b"
    assert client.fetch_calls == 1


def test_reconfigure_ignores_saved_record(settings, make_selector):
    saved = RoleConfiguration.from_selection(
        {Role.PLANNER: "p", Role.PRIMARY: "m", Role.CODER: "c", Role.EMBEDDING: "e"}
    )
    config_store.save(settings.config_path, saved)
    client = FakeInferenceClient(catalog_ids=FULL_CATALOG)
    service, _ = _service(settings, client, make_selector(tty=False))

    config = service.run(reconfigure=True)

    assert config.primary_model == "openai/gpt-oss-20b"
    assert config_store.load_fast_path(settings.config_path) == config


def test_unreachable_server_without_terminal_is_fatal(settings, make_selector):
    client = FakeInferenceClient(probe_results=[False], catalog_ids=FULL_CATALOG)
    service, _ = _service(settings, client, make_selector(tty=False))

    with pytest.raises(ServerUnreachableError, match="unreachable"):
        service.run()
    assert client.fetch_calls == 0
    assert not settings.config_path.exists()
    assert not settings.marker_path.exists()


def test_empty_catalog_is_distinct_fatal_condition(settings, make_selector):
    client = FakeInferenceClient(probe_results=[True], catalog_ids=())
    service, _ = _service(settings, client, make_selector(tty=False))

    with pytest.raises(EmptyCatalogError, match="No models are loaded"):
        service.run()
    assert not settings.config_path.exists()


def test_operator_can_retry_connection(settings, make_selector):
    client = FakeInferenceClient(probe_results=[False, True], catalog_ids=("only-model",))
    service, _ = _service(settings, client, make_selector(keys=["r"]))

    config = service.run()

    assert client.probe_calls == 2
    assert config.primary_model == config.embedding_model == "only-model"


def test_operator_can_quit_at_connection_prompt(settings, make_selector):
    client = FakeInferenceClient(probe_results=[False])
    service, _ = _service(settings, client, make_selector(keys=["quit"]))

    with pytest.raises(SelectionCancelled):
        service.run()
    assert not settings.config_path.exists()


def test_continue_degraded_without_models_reports_unreachable(settings, make_selector):
    client = FakeInferenceClient(probe_results=[False], catalog_ids=())
    service, _ = _service(settings, client, make_selector(keys=["c"]))

    with pytest.raises(ServerUnreachableError) as excinfo:
        service.run()
    assert "unreachable" in str(excinfo.value)
    assert "No models are loaded" not in str(excinfo.value)
    assert client.fetch_calls == 1
    assert not settings.config_path.exists()


def test_cancelled_selection_writes_nothing(settings, make_selector):
    client = FakeInferenceClient(catalog_ids=FULL_CATALOG)
    service, _ = _service(settings, client, make_selector(keys=["enter", "quit"]))

    with pytest.raises(SelectionCancelled):
        service.run()
    assert not settings.config_path.exists()
    assert not settings.marker_path.exists()


def test_unclassified_primary_and_coder_default_to_planner(settings, make_selector):
    client = FakeInferenceClient(
        catalog_ids=("nomic-ai/nomic-embed-text-v1.5", "mistralai/mistral-large")
    )
    service, _ = _service(settings, client, make_selector(tty=False))

    config = service.run()

    assert config.planner_model == "mistralai/mistral-large"
    assert config.primary_model == "mistralai/mistral-large"
    assert config.coder_model == "mistralai/mistral-large"
    assert config.embedding_model == "nomic-ai/nomic-embed-text-v1.5"


def test_previous_marker_acts_as_global_preference(settings, make_selector):
    config_store.write_marker(settings.marker_path, "beta-model")
    client = FakeInferenceClient(catalog_ids=("alpha-model", "beta-model"))
    service, _ = _service(settings, client, make_selector(tty=False))

    config = service.run()

    assert config.planner_model == "beta-model"
    assert config.embedding_model == "beta-model"


def test_preferred_model_setting_wins_over_marker(tmp_path, make_selector):
    settings = Settings.from_env(
        environ={"CONDUCTOR_PREFERRED_MODEL": "alpha-model"}, cwd=tmp_path
    )
    config_store.write_marker(settings.marker_path, "beta-model")
    client = FakeInferenceClient(catalog_ids=("alpha-model", "beta-model"))
    service, _ = _service(settings, client, make_selector(tty=False))

    assert service.run().planner_model == "alpha-model"
