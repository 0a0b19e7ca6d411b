"""Tests for the static route table."""

from pathlib import Path

import pytest

from src.registry.config import ToolRoute, load_route_config
from src.registry.routes import RouteTable

REPO_ROOT = Path(__file__).parent.parent


def _write_config(tmp_path: Path, text: str) -> Path:
    path = tmp_path / "routes.yaml"
    path.write_text(text, encoding="utf-8")
    return path


class TestLoadRouteConfig:
    """Tests for YAML loading."""

    def test_relative_paths_resolve_against_config_dir(self, tmp_path):
        path = _write_config(
            tmp_path,
            "tools:\n"
            "  - name: echo\n"
            "    worker: bin/echo.sh\n"
            "  - name: abs\n"
            "    worker: /usr/local/bin/worker\n",
        )

        config = load_route_config(path)

        assert config.tools[0].worker == str((tmp_path / "bin" / "echo.sh").resolve())
        assert config.tools[1].worker == "/usr/local/bin/worker"

    def test_missing_file_gives_empty_config(self, tmp_path):
        config = load_route_config(tmp_path / "absent.yaml")
        assert config.tools == []

    def test_empty_file_gives_empty_config(self, tmp_path):
        config = load_route_config(_write_config(tmp_path, ""))
        assert config.tools == []

    def test_duplicate_tool_name_rejected(self, tmp_path):
        path = _write_config(
            tmp_path,
            "tools:\n"
            "  - {name: echo, worker: a.sh}\n"
            "  - {name: echo, worker: b.sh}\n",
        )
        with pytest.raises(ValueError, match="duplicate tool name"):
            load_route_config(path)

    def test_blank_name_rejected(self):
        with pytest.raises(ValueError):
            ToolRoute(name="  ", worker="a.sh")

    def test_default_config_ships_echo_worker(self):
        """The bundled config routes both sample tools to one worker."""
        config = load_route_config()
        names = [route.name for route in config.tools]
        assert names == ["echo", "reverse"]
        expected = str((REPO_ROOT / "tools" / "echo" / "worker.py").resolve())
        assert {route.worker for route in config.tools} == {expected}


class TestRouteTable:
    """Tests for RouteTable lookups."""

    @pytest.fixture
    def table(self) -> RouteTable:
        return RouteTable({
            "alpha": "/w/one",
            "beta": "/w/two",
            "gamma": "/w/one",
        })

    def test_resolve(self, table):
        assert table.resolve("beta") == "/w/two"
        assert table.resolve("missing") is None
        assert "alpha" in table
        assert "missing" not in table
        assert len(table) == 3

    def test_worker_paths_are_distinct_in_first_seen_order(self, table):
        assert table.worker_paths == ("/w/one", "/w/two")

    def test_tool_names(self, table):
        assert table.tool_names == ("alpha", "beta", "gamma")

    def test_immutable(self, table):
        with pytest.raises(AttributeError):
            table.extra = 1
        with pytest.raises(TypeError):
            table.routes["delta"] = "/w/three"

    def test_empty_table(self):
        table = RouteTable({})
        assert table.worker_paths == ()
        assert table.resolve("anything") is None

    def test_load_from_yaml(self, tmp_path):
        path = _write_config(tmp_path, "tools:\n  - {name: echo, worker: /bin/echo-worker}\n")
        table = RouteTable.load(path)
        assert table.routes == {"echo": "/bin/echo-worker"}
        assert repr(table) == "RouteTable(tools=1, workers=1)"
