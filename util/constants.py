from typing import Final


class InternalURIs:
    API = "/api"
    V1 = API + "/v1"
    PROJECTS = V1 + "/projects"
    PROJECT = PROJECTS + "/{project_id}"
    PROJECT_RELOAD = PROJECT + "/reload"
    PROJECT_VARIABLES = PROJECT + "/variables"
    PROJECT_LIVE_CONFIG = PROJECT + "/live-config"
    PROJECT_RELOAD_EVENTS = PROJECT + "/reload-events"
    PROJECT_EXPORT = PROJECT + "/export"


# Archive layout
CONFIG_FILE: Final[str] = "homa_config.json"
ENTRY_DOCUMENT: Final[str] = "index.html"
DOCUMENT_SUFFIX: Final[str] = ".html"
BUILD_DIR: Final[str] = "Build/"

# Global binding read by the runtime bootstrap (HomaGetConfigJson bridge)
CONFIG_GLOBAL: Final[str] = "window.HOMA_CONFIG"
# Global binding read by exported playables
VARS_GLOBAL: Final[str] = "window.HomaVars"

OCTET_STREAM: Final[str] = "application/octet-stream"
