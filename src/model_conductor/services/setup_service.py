"""Role setup workflow: probe, fetch, classify, select, persist."""

from __future__ import annotations

import logging
from typing import Callable, Dict, Optional

from model_conductor.clients import config_store
from model_conductor.clients.inference import InferenceClient
from model_conductor.config import Settings
from model_conductor.models.catalog import Catalog
from model_conductor.models.enums import Role
from model_conductor.models.role_config import RoleConfiguration
from model_conductor.services.classifier import PatternTable, resolve_default
from model_conductor.ui.selector import SelectionCancelled, TerminalSelector

LOG = logging.getLogger(__name__)

RETRY_PROMPT = (
    "Could not connect to the inference server at {url}.\n"
    "   Ensure it is running with its local server started.\n"
    "   Press 'r' to retry, 'c' to continue anyway, or 'q' to quit."
)


class ServerUnreachableError(RuntimeError):
    """Raised when the inference server cannot be reached."""


class EmptyCatalogError(RuntimeError):
    """Raised when the server reports no loaded models."""


class SetupService:
    """Drives one configuration run end to end."""

    def __init__(
        self,
        settings: Settings,
        client: InferenceClient,
        selector: TerminalSelector,
        table: Optional[PatternTable] = None,
        status: Optional[Callable[[str], None]] = None,
    ) -> None:
        self.settings = settings
        self.client = client
        self.selector = selector
        self.table = table
        self._status = status or (lambda message: None)

    def ensure_connection(self) -> bool:
        """Return True when reachable, False when the operator chose to continue degraded."""
        while True:
            self._status(f"Checking connection to {self.client.base_url}...")
            if self.client.probe():
                self._status("Inference server is reachable.")
                return True

            if not self.selector.interactive:
                raise ServerUnreachableError(
                    f"Inference server at {self.client.base_url} is unreachable."
                )

            answer = self.selector.ask(RETRY_PROMPT.format(url=self.client.base_url), ("r", "c"))
            if answer == "q":
                raise SelectionCancelled("Setup aborted while waiting for the inference server.")
            if answer == "c":
                LOG.warning("Continuing without a reachable inference server")
                return False

    def fetch_catalog(self, reachable: bool = True) -> Catalog:
        catalog = self.client.fetch_catalog()
        if not catalog:
            if not reachable:
                raise ServerUnreachableError(
                    f"Inference server at {self.client.base_url} is unreachable; "
                    "no models could be listed."
                )
            raise EmptyCatalogError(
                "No models are loaded on the inference server. Load a model and try again."
            )
        LOG.info("Catalog has %d models", len(catalog))
        return catalog

    def preferred_model(self) -> Optional[str]:
        if self.settings.preferred_model:
            return self.settings.preferred_model
        return config_store.read_marker(self.settings.marker_path)

    def select_roles(self, catalog: Catalog) -> RoleConfiguration:
        preferred = self.preferred_model()
        chosen: Dict[Role, str] = {}
        for role in Role.selection_order():
            default = resolve_default(
                catalog,
                role,
                table=self.table,
                preferred=preferred,
                planner=chosen.get(Role.PLANNER),
            )
            chosen[role] = self.selector.select(catalog, role, default)
        return RoleConfiguration.from_selection(chosen)

    def run(self, reconfigure: bool = False) -> RoleConfiguration:
        if not reconfigure:
            existing = config_store.load_fast_path(self.settings.config_path)
            if existing is not None:
                self._status(f"Using saved role configuration from {self.settings.config_path}")
                return existing

        reachable = self.ensure_connection()
        catalog = self.fetch_catalog(reachable)
        config = self.select_roles(catalog)

        config_store.save(self.settings.config_path, config)
        config_store.write_marker(self.settings.marker_path, config.primary_model)
        return config
