"""Client-facing exceptions for request routing."""

from src.exceptions import GatewayError


class ToolNotFoundError(GatewayError):
    """Raised when requested tool is not in the route table.

    Attributes:
        tool_name: Name of the tool that was not found.
    """

    def __init__(self, tool_name: str):
        super().__init__(
            message=f"Tool '{tool_name}' not found",
            code="TOOL_NOT_FOUND"
        )
        self.tool_name = tool_name


class InvalidToolCallParamsError(GatewayError):
    """Raised when tools/call params cannot be used for routing.

    Attributes:
        detail: Why the params were rejected.
    """

    def __init__(self, detail: str):
        super().__init__(
            message="Invalid parameters for tools/call",
            code="INVALID_PARAMS"
        )
        self.detail = detail
