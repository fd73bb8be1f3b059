"""Supervisor bootstrap: spawn one worker process per roster entry."""

from __future__ import annotations

import logging
import signal
import subprocess
import threading
from pathlib import Path
from typing import Callable, Dict, List, Mapping, Optional, Tuple

from model_conductor import constants
from model_conductor.config import Settings
from model_conductor.models.enums import Role
from model_conductor.models.role_config import RoleConfiguration
from model_conductor.models.roster import LaunchSpec, Roster, SpawnReport, WorkerLaunch

LOG = logging.getLogger(__name__)

Popen = Callable[..., subprocess.Popen]


class SupervisorConfigError(RuntimeError):
    """Raised when the supervisor is missing required configuration."""


class SupervisorService:
    """Spawns workers and stays resident until terminated."""

    def __init__(
        self,
        settings: Settings,
        roster: Roster,
        manifest: Mapping[str, LaunchSpec],
        plugin_root: Path,
        *,
        manifest_errors: Optional[Mapping[str, str]] = None,
        role_config: Optional[RoleConfiguration] = None,
        base_env: Optional[Mapping[str, str]] = None,
        popen: Optional[Popen] = None,
    ) -> None:
        if not settings.primary_model:
            raise SupervisorConfigError(
                f"{constants.PRIMARY_MODEL_ENV_VAR} is not set; run 'model-conductor detect' first."
            )
        self.settings = settings
        self.roster = roster
        self.manifest = dict(manifest)
        self.manifest_errors = dict(manifest_errors or {})
        self.plugin_root = plugin_root
        self.role_config = role_config
        self.base_env = dict(base_env or {})
        self._popen = popen or subprocess.Popen
        self.processes: Dict[str, subprocess.Popen] = {}
        self._stop = threading.Event()

    def plan(self) -> Tuple[List[WorkerLaunch], Dict[str, str]]:
        """Join roster entries with manifest launch specs by source, then name."""
        launches: List[WorkerLaunch] = []
        skipped: Dict[str, str] = {}
        for entry in self.roster.experts:
            key = next((k for k in (entry.source, entry.name) if k in self.manifest), None)
            if key is not None:
                launches.append(WorkerLaunch.from_entry(entry, self.manifest[key]))
                continue
            bad_key = next((k for k in (entry.source, entry.name) if k in self.manifest_errors), None)
            if bad_key is not None:
                skipped[entry.name] = f"invalid manifest entry '{bad_key}': {self.manifest_errors[bad_key]}"
            else:
                skipped[entry.name] = f"no launch specification for source '{entry.source}'"
        return launches, skipped

    def build_environment(self, launch: WorkerLaunch) -> Dict[str, str]:
        environment = dict(self.base_env)
        if self.role_config is not None:
            for role in Role.selection_order():
                environment[constants.ROLE_ENV_VARS[role.value]] = self.role_config.for_role(role)
        environment[constants.PRIMARY_MODEL_ENV_VAR] = self.settings.primary_model or ""
        environment[constants.PLUGIN_ROOT_ENV_VAR] = str(self.plugin_root)
        environment[constants.EXPERT_NAME_ENV_VAR] = launch.name
        environment.update(launch.env)
        return environment

    def spawn_all(self) -> SpawnReport:
        launches, skipped = self.plan()
        report = SpawnReport(failed=dict(skipped))
        for name, reason in skipped.items():
            LOG.warning("Skipping worker %s: %s", name, reason)

        for launch in launches:
            LOG.info("Starting %s (%s)...", launch.name, launch.description)
            try:
                process = self._popen(
                    [launch.command, *launch.args],
                    env=self.build_environment(launch),
                    cwd=str(self.plugin_root),
                )
            except (OSError, ValueError, subprocess.SubprocessError) as exc:
                LOG.error("Failed to start worker %s: %s", launch.name, exc)
                report.failed[launch.name] = str(exc)
                continue
            self.processes[launch.name] = process
            report.started[launch.name] = process.pid
            LOG.info("Worker %s started with pid %s", launch.name, process.pid)
        return report

    def run(self, wait: bool = True) -> SpawnReport:
        report = self.spawn_all()
        if wait:
            self.wait_until_stopped()
        return report

    def stop(self) -> None:
        self._stop.set()

    def wait_until_stopped(self) -> None:
        previous = None
        if threading.current_thread() is threading.main_thread():
            previous = signal.signal(signal.SIGTERM, lambda _signum, _frame: self.stop())
        try:
            while not self._stop.wait(timeout=1.0):
                pass
        except KeyboardInterrupt:
            LOG.info("Supervisor interrupted")
        finally:
            if previous is not None:
                signal.signal(signal.SIGTERM, previous)
            self.shutdown()

    def shutdown(self) -> None:
        for name, process in self.processes.items():
            if process.poll() is None:
                LOG.info("Terminating worker %s (pid %s)", name, process.pid)
                process.terminate()
