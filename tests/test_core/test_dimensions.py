"""Tests for dimension and action token parsing."""

import pytest

from dimension_gate.core.dimensions import (
    Action,
    Dimension,
    dimension_tokens,
    parse_action,
    parse_dimension,
)
from dimension_gate.core.errors import ConfigurationError


class TestParseDimension:
    """Tests for parse_dimension()."""

    @pytest.mark.unit
    @pytest.mark.parametrize(
        ("token", "expected"),
        [
            ("world", Dimension.OVERWORLD),
            ("overworld", Dimension.OVERWORLD),
            ("normal", Dimension.OVERWORLD),
            ("nether", Dimension.NETHER),
            ("the_nether", Dimension.NETHER),
            ("end", Dimension.END),
            ("the_end", Dimension.END),
        ],
    )
    def test_known_tokens(self, token, expected):
        assert parse_dimension(token) is expected

    @pytest.mark.unit
    def test_case_and_whitespace_insensitive(self):
        assert parse_dimension("  Nether ") is Dimension.NETHER
        assert parse_dimension("WORLD") is Dimension.OVERWORLD

    @pytest.mark.unit
    def test_dimension_passes_through(self):
        assert parse_dimension(Dimension.END) is Dimension.END

    @pytest.mark.unit
    @pytest.mark.parametrize("token", ["mars", "", None, 3])
    def test_unknown_token_raises(self, token):
        with pytest.raises(ConfigurationError) as exc_info:
            parse_dimension(token)
        assert exc_info.value.field == "dimension"
        assert exc_info.value.value == token


class TestParseAction:
    """Tests for parse_action()."""

    @pytest.mark.unit
    def test_open_and_close(self):
        assert parse_action("open") is Action.OPEN
        assert parse_action("CLOSE") is Action.CLOSE

    @pytest.mark.unit
    def test_target_open(self):
        assert Action.OPEN.target_open is True
        assert Action.CLOSE.target_open is False

    @pytest.mark.unit
    @pytest.mark.parametrize("token", ["toggle", None, ""])
    def test_invalid_action_raises(self, token):
        with pytest.raises(ConfigurationError, match="Invalid action"):
            parse_action(token)


@pytest.mark.unit
def test_display_names_and_values():
    assert [d.value for d in Dimension] == ["overworld", "nether", "end"]
    assert Dimension.NETHER.display_name == "Nether"
    assert str(Dimension.END) == "end"


@pytest.mark.unit
def test_dimension_tokens_sorted():
    tokens = dimension_tokens()
    assert tokens == sorted(tokens)
    assert "the_end" in tokens
