"""Static route table config loader."""

from pathlib import Path

import yaml
from pydantic import BaseModel, Field, field_validator


class ToolRoute(BaseModel):
    """Route definition loaded from static config.

    Attributes:
        name: Tool name clients pass in ``tools/call`` params.
        worker: Path of the worker executable serving the tool.
    """

    name: str
    worker: str

    @field_validator("name", "worker")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be blank")
        return value


class RouteTableConfig(BaseModel):
    """Container for route definitions."""

    tools: list[ToolRoute] = Field(default_factory=list)


def default_routes_path() -> Path:
    return Path(__file__).parent.parent.parent / "config" / "routes.yaml"


def load_route_config(config_path: str | Path | None = None) -> RouteTableConfig:
    """Load the route table config from YAML.

    Relative worker paths are resolved against the directory holding the
    config file, so a config can sit next to the workers it names.

    Args:
        config_path: Optional custom path for the route table config.

    Returns:
        Parsed RouteTableConfig, or an empty config if the file is missing.

    Raises:
        ValueError: If the same tool name is routed twice.
    """
    if config_path is None:
        config_path = default_routes_path()
    else:
        config_path = Path(config_path)

    if not config_path.exists():
        return RouteTableConfig()

    with config_path.open("r", encoding="utf-8") as handle:
        data = yaml.safe_load(handle) or {}

    config = RouteTableConfig(**data)

    base_dir = config_path.resolve().parent
    seen_names: set[str] = set()
    for route in config.tools:
        if route.name in seen_names:
            raise ValueError(f"duplicate tool name in route config: {route.name}")
        seen_names.add(route.name)

        worker_path = Path(route.worker).expanduser()
        if not worker_path.is_absolute():
            worker_path = (base_dir / worker_path).resolve()
        route.worker = str(worker_path)

    return config
