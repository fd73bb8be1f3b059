"""Shared constants for Model Conductor."""

from pathlib import Path


HOME_DIR = Path.home() / ".model-conductor"
LOG_DIR = HOME_DIR / "logs"
PATTERNS_FILE = HOME_DIR / "role_patterns.json"

DEFAULT_BASE_URL = "http://localhost:1234"
MODELS_PATH = "/v1/models"

ROLE_CONFIG_FILENAME = "model_roles.json"
MARKER_FILENAME = ".primary_model"
ROSTER_FILENAME = "swarm_config.yaml"
MANIFEST_FILENAME = "mcp_config.json"

MAX_VISIBLE_ROWS = 10

BASE_URL_ENV_VAR = "LM_STUDIO_URL"
NON_INTERACTIVE_ENV_VAR = "CONDUCTOR_NON_INTERACTIVE"
PRIMARY_MODEL_ENV_VAR = "CONDUCTOR_PRIMARY_MODEL"
PREFERRED_MODEL_ENV_VAR = "CONDUCTOR_PREFERRED_MODEL"
PATTERNS_ENV_VAR = "CONDUCTOR_ROLE_PATTERNS"
PLUGIN_ROOT_ENV_VAR = "CONDUCTOR_PLUGIN_ROOT"
EXPERT_NAME_ENV_VAR = "CONDUCTOR_EXPERT_NAME"
ROLE_ENV_VARS = {
    "planner": "CONDUCTOR_PLANNER_MODEL",
    "primary": PRIMARY_MODEL_ENV_VAR,
    "coder": "CONDUCTOR_CODER_MODEL",
    "embedding": "CONDUCTOR_EMBEDDING_MODEL",
}
