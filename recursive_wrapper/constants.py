from __future__ import annotations

DISTRIBUTION_NAME = "recursive-wrapper"
VERSION = "0.1.0"
PLUGIN_ID = "recursive-wrapper"

# Presence of this system property marks a test run: spawned builds must not try
# to resolve the plugin distribution from the index.
TESTING_PROPERTY = "recursive_wrapper.testing"
TESTING_PROPERTY_ARG = f"-D{TESTING_PROPERTY}"

WRAPPER_TASK_NAME = "wrapper"
WRAPPER_TASK_PATH = f":{WRAPPER_TASK_NAME}"

DEFAULT_PLUGIN_INDEX_URL = "https://pypi.org/simple"
