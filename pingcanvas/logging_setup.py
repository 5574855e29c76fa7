import logging
import logging.config
import os
from typing import Optional

import yaml


def setup_logging(path: Optional[str] = "log_conf.yaml", level: Optional[str] = None) -> None:
    """
    Configures logging from a dictConfig YAML file.
    Without the file falls back to basicConfig, level from `level` or LOG_LEVEL, INFO by default.
    """
    if path and os.path.exists(path):
        with open(path, "r", encoding="utf-8") as f:
            logging.config.dictConfig(yaml.safe_load(f))
        if level:
            logging.getLogger().setLevel(level.upper())
            logging.getLogger("pingcanvas").setLevel(level.upper())
        return

    lvl_name = (level or os.environ.get("LOG_LEVEL") or "INFO").upper()
    logging.basicConfig(
        level=getattr(logging, lvl_name, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
