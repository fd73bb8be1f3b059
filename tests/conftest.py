import io
import logging
from typing import Iterable, List, Optional

import pytest

from model_conductor import constants
from model_conductor.config import Settings
from model_conductor.models.catalog import Model
from model_conductor.ui.selector import TerminalSelector


class TtyIO(io.StringIO):
    """StringIO that reports itself as a terminal."""

    def isatty(self) -> bool:
        return True


class ScriptedKeys:
    """Key reader stand-in that replays a fixed sequence of key names."""

    def __init__(self, keys: Iterable[str] = ()) -> None:
        self.keys: List[str] = list(keys)
        self.reads = 0

    def __call__(self, _stdin) -> str:
        if not self.keys:
            raise AssertionError("Selector asked for more keys than scripted")
        self.reads += 1
        return self.keys.pop(0)


class FakeCapture:
    """Records raw-capture acquisition and release."""

    def __init__(self) -> None:
        self.entered = 0
        self.exited = 0
        self.held = False

    def __call__(self, _stdin, _stream):
        return self

    def __enter__(self):
        assert not self.held, "capture acquired twice"
        self.held = True
        self.entered += 1
        return self

    def __exit__(self, exc_type, exc, tb):
        self.held = False
        self.exited += 1
        return False


class FakeInferenceClient:
    """Inference client double with scripted probe results and catalog."""

    def __init__(self, probe_results=(True,), catalog_ids=(), base_url="http://fake:1234") -> None:
        self.base_url = base_url
        self.probe_results = list(probe_results)
        self.catalog = [Model(id=model_id) for model_id in catalog_ids]
        self.probe_calls = 0
        self.fetch_calls = 0

    def probe(self) -> bool:
        self.probe_calls += 1
        if len(self.probe_results) > 1:
            return self.probe_results.pop(0)
        return self.probe_results[0]

    def fetch_catalog(self):
        self.fetch_calls += 1
        return list(self.catalog)


def catalog_of(*ids: str) -> List[Model]:
    return [Model(id=model_id) for model_id in ids]


@pytest.fixture(autouse=True)
def temp_runtime_dirs(tmp_path, monkeypatch):
    """Redirect runtime directories into a temp location and isolate env vars."""
    home = tmp_path / "runtime" / "home"
    monkeypatch.setattr(constants, "HOME_DIR", home)
    monkeypatch.setattr(constants, "LOG_DIR", home / "logs")
    monkeypatch.setattr(constants, "PATTERNS_FILE", home / "role_patterns.json")

    for name in (
        constants.BASE_URL_ENV_VAR,
        constants.NON_INTERACTIVE_ENV_VAR,
        constants.PRIMARY_MODEL_ENV_VAR,
        constants.PREFERRED_MODEL_ENV_VAR,
        constants.PATTERNS_ENV_VAR,
    ):
        monkeypatch.delenv(name, raising=False)

    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.fixture
def workdir(tmp_path, monkeypatch):
    path = tmp_path / "work"
    path.mkdir()
    monkeypatch.chdir(path)
    return path


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings.from_env(environ={}, cwd=tmp_path)


@pytest.fixture
def capture() -> FakeCapture:
    return FakeCapture()


@pytest.fixture
def make_selector(settings, capture):
    def factory(
        keys: Iterable[str] = (),
        *,
        tty: bool = True,
        selector_settings: Optional[Settings] = None,
        height: int = constants.MAX_VISIBLE_ROWS,
        columns: int = 120,
    ) -> TerminalSelector:
        stream_cls = TtyIO if tty else io.StringIO
        return TerminalSelector(
            selector_settings or settings,
            stream=stream_cls(),
            stdin=stream_cls(),
            key_reader=ScriptedKeys(keys),
            capture_factory=capture,
            height=height,
            columns=lambda: columns,
        )

    return factory
