import os
import yaml

ROOT_PATH = os.path.dirname(__file__)
CONFIG_FILE_PATH = os.path.join(ROOT_PATH, "env.yaml")

if os.path.exists(CONFIG_FILE_PATH):
    with open(CONFIG_FILE_PATH, "r") as r_file:
        data = yaml.safe_load(r_file) or dict()
else:
    data = dict()


class ApplicationConfig:
    DB_URI = data.get("DB_URI", "sqlite+aiosqlite:///./membership.db")
    DB_ECHO = bool(data.get("DB_ECHO", False))
    LOG_LEVEL = data.get("LOG_LEVEL", "INFO")
    LOG_FORMAT = data.get(
        "LOG_FORMAT", "%(asctime)s %(levelname)s %(name)s: %(message)s"
    )
