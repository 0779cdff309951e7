"""
Tests for the command line interface.
"""

import json

import pytest

from node_compositor.core.settings import CompositorSettings, save_settings
from node_compositor.main import main


@pytest.fixture
def cli(tmp_path):
    """Run the CLI against a private settings file and graphs directory."""
    config = save_settings(
        CompositorSettings(graphs_dir=tmp_path / "graphs", default_node_width=180.0),
        tmp_path / "settings.json",
    )

    def run(*argv):
        return main(["--config", str(config), *argv])

    run.graphs_dir = tmp_path / "graphs"
    return run


class TestCommands:
    """Tests for the CLI subcommands."""

    def test_kinds(self, cli, capsys):
        assert cli("kinds") == 0
        out = capsys.readouterr().out
        assert "io.input" in out
        assert "composite.blend" in out

    def test_new_creates_default_graph(self, cli, capsys):
        assert cli("new", "intro") == 0

        path = cli.graphs_dir / "intro.graph.json"
        document = json.loads(path.read_text())
        assert document["name"] == "intro"
        assert [n["kind"] for n in document["nodes"]] == [
            "io.input", "color.grade", "effect.blur", "io.output",
        ]
        assert document["nodes"][0]["size"]["width"] == 180.0

    def test_add_and_connect(self, cli, capsys):
        cli("new", "intro")
        assert cli("add", "intro", "effect.blur", "--name", "Soft", "--x", "400", "--y", "220") == 0
        assert cli("connect", "intro", "Input:image", "Soft:image") == 0

        document = json.loads((cli.graphs_dir / "intro.graph.json").read_text())
        soft = next(n for n in document["nodes"] if n["name"] == "Soft")
        assert soft["position"] == {"x": 400.0, "y": 220.0}
        assert len(document["connections"]) == 4

    def test_order(self, cli, capsys):
        cli("new", "intro")
        capsys.readouterr()

        assert cli("order", "intro") == 0

        lines = capsys.readouterr().out.splitlines()
        assert [line.split(". ", 1)[1].split(" (")[0] for line in lines] == [
            "Input", "Color Grade", "Blur", "Output",
        ]

    def test_eval(self, cli, capsys):
        cli("new", "intro")
        capsys.readouterr()

        assert cli("eval", "intro", "--time", "1.5") == 0

        out = capsys.readouterr().out
        assert "Output: ok" in out
        assert "rendered 'main': 64x64" in out

    def test_pick(self, cli, capsys):
        cli("new", "intro")
        capsys.readouterr()

        assert cli("pick", "intro", "300", "130") == 0
        assert "Color Grade:image (input, image)" in capsys.readouterr().out
        assert cli("pick", "intro", "0", "0") == 1

    def test_clear(self, cli, capsys):
        cli("new", "intro")
        assert cli("clear", "intro") == 0

        document = json.loads((cli.graphs_dir / "intro.graph.json").read_text())
        assert document["nodes"] == []
        assert document["connections"] == []


class TestErrors:
    """Tests for error reporting."""

    def test_unknown_kind(self, cli, capsys):
        cli("new", "intro")
        assert cli("add", "intro", "LegacyGlow") == 1
        assert "Unknown node kind" in capsys.readouterr().err

    def test_no_such_output(self, cli, capsys):
        cli("new", "intro")
        capsys.readouterr()

        # Output nodes have no output ports
        assert cli("connect", "intro", "Output:image", "Blur:image") == 1
        assert "has no port" in capsys.readouterr().err

    def test_cycle(self, cli, capsys):
        cli("new", "intro")
        cli("add", "intro", "composite.blend", "--name", "A")
        cli("add", "intro", "composite.blend", "--name", "B")
        cli("connect", "intro", "A:image", "B:background")
        capsys.readouterr()

        assert cli("connect", "intro", "A:image", "A:foreground") == 1
        assert cli("connect", "intro", "B:image", "A:foreground") == 1
        assert "cycle" in capsys.readouterr().err

        document = json.loads((cli.graphs_dir / "intro.graph.json").read_text())
        assert len(document["connections"]) == 4

    def test_already_connected(self, cli, capsys):
        cli("new", "intro")
        assert cli("connect", "intro", "Input:image", "Blur:image") == 1
        assert "already has an incoming connection" in capsys.readouterr().err

    def test_missing_file(self, cli, capsys):
        assert cli("order", "nothing-here") == 1
        assert "Graph not found" in capsys.readouterr().err

    def test_bad_port_spec(self, cli, capsys):
        cli("new", "intro")
        assert cli("connect", "intro", "Input", "Blur:image") == 1
        assert "Expected NODE:PORT" in capsys.readouterr().err
