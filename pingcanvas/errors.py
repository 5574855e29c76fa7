class ConversionError(Exception):
    """Image could not be turned into a pixel buffer for the canvas"""


class DecodeError(ConversionError):
    """Decoder failed to read the source image"""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        # keep it on one line, decoder messages sometimes carry newlines
        return " ".join(self.message.split())


class DimensionsExceeded(ConversionError):
    """Image placed at the offset does not fit inside the canvas"""

    def __str__(self) -> str:
        return "image can't fit in given position"


class ProbeStartError(Exception):
    """Transport could not start a probe for one address"""
