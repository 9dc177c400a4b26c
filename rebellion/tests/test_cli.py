"""
Tests for the command-line interface.
"""

import json

import pytest

from ..cli import main
from .helpers import start_match, take_turn


class TestCLI:
    """Tests for the cards and simulate commands."""

    def test_cards_by_kind(self, capsys):
        main(["cards", "--kind", "leader"])
        out = capsys.readouterr().out
        assert "s-1" in out
        assert "c-1 " not in out

    def test_simulate_saved_match(self, reducer, tmp_path, capsys):
        state = start_match(reducer, p1_hand=["c-1"], p2_hand=["c-6"])
        state = take_turn(reducer, state, "p1", "c-1", "left")
        path = tmp_path / "match.json"
        path.write_text(json.dumps(state.to_dict()), encoding="utf-8")

        main(["simulate", str(path), "--player", "p1"])
        output = json.loads(capsys.readouterr().out)

        assert list(output) == ["p1"]
        assert output["p1"]["fieldEffects"]["calculatedPowers"]["c-1"] == 155

    def test_missing_file(self, tmp_path):
        with pytest.raises(SystemExit):
            main(["simulate", str(tmp_path / "missing.json")])

    def test_no_command(self):
        with pytest.raises(SystemExit) as exc:
            main([])
        assert exc.value.code == 1
