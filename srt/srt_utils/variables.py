import os
from platformdirs import user_config_dir

APP_NAME = "SRTtool"
SRT_TOOL_HOME = os.getenv("SRT_TOOL_HOME", user_config_dir(APP_NAME))
ENVS_FILE = os.path.join(SRT_TOOL_HOME, "environments.ini")
