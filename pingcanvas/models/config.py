# models for config.yaml

from pydantic import BaseModel, Field, field_validator


class CanvasConfig(BaseModel):
    width: int = Field(default=160, gt=0, le=256)
    height: int = Field(default=120, gt=0, le=256)
    prefix: tuple[int, int, int] = (0x2001, 0x4c08, 0x2028)

    @field_validator("prefix", mode="before")
    @classmethod
    def parse_prefix(cls, value):
        """Accepts groups as ints or as hex strings ("2001")"""
        if isinstance(value, str):
            value = value.split(":")
        if not isinstance(value, (list, tuple)):
            raise ValueError(f"prefix must be a list of 3 groups, got {value!r}")
        groups = []
        for g in value:
            if isinstance(g, str):
                groups.append(int(g, 16))
            elif isinstance(g, int) and not isinstance(g, bool):
                groups.append(g)
            else:
                raise ValueError(f"prefix group must be an int or hex string, got {g!r}")
        if len(groups) != 3:
            raise ValueError(f"prefix must have exactly 3 groups, got {len(groups)}")
        for group in groups:
            if not 0 <= group <= 0xFFFF:
                raise ValueError(f"prefix group out of range: {group:#x}")
        return tuple(groups)


class ImageConfig(BaseModel):
    path: str = "logo.png"
    offset: tuple[int, int] = (109, 75)

    @field_validator("offset")
    @classmethod
    def non_negative(cls, value: tuple[int, int]) -> tuple[int, int]:
        if value[0] < 0 or value[1] < 0:
            raise ValueError(f"offset must be non-negative, got {value}")
        return value


class ProbeConfig(BaseModel):
    timeout: float = Field(default=0.0001, gt=0)  # seconds
    interval: float = Field(default=0.0, ge=0)
    transport: str = "icmp://"
    payload_size: int = Field(default=16, ge=0, le=1024)
