import os

import yaml
from pydantic import BaseModel

from pingcanvas.models.config import CanvasConfig, ImageConfig, ProbeConfig


class GlobalConfig(BaseModel):
    canvas: CanvasConfig = CanvasConfig()
    image: ImageConfig = ImageConfig()
    probe: ProbeConfig = ProbeConfig()


class Config:
    def __init__(self, path: str = "config.yaml"):
        self.path = path
        self.model = None

    def load(self) -> GlobalConfig:
        # no config file means defaults
        if not os.path.exists(self.path):
            self.model = GlobalConfig()
            return self.model

        with open(self.path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            raise ValueError(f"{self.path}: top level must be a mapping, got {type(data).__name__}")
        self.model = GlobalConfig(**data)
        return self.model

    def get(self) -> GlobalConfig:
        if self.model is None:
            return self.load()
        return self.model
