"""Base exception shared by every gateway component."""


class GatewayError(Exception):
    """Base exception for all gateway errors."""

    def __init__(self, message: str, code: str | None = None):
        self.message = message
        self.code = code or self.__class__.__name__
        super().__init__(self.message)
