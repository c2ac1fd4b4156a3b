"""Tests for leg_resolver: precedence, lenient parsing and error reporting."""

import math

import pytest

from backend.core.leg_resolver import (
    ERR_NO_INPUT,
    ERR_PAIR_FAIR,
    ERR_PAIR_FORMAT,
    ERR_SINGLE_FORMAT,
    LegInput,
    parse_number,
    resolve_leg,
)
from backend.core.odds_math import american_to_implied_prob


# ---------------------------------------------------------------------------
# parse_number
# ---------------------------------------------------------------------------

@pytest.mark.parametrize("text, expected", [
    ("-110", -110.0),
    ("+150", 150.0),
    ("  -120  ", -120.0),
    ("0.55", 0.55),
    (".5", 0.5),
    ("150abc", 150.0),
    ("1e2", 100.0),
    ("1.5x", 1.5),
])
def test_parse_number_leading_literal(text, expected):
    assert parse_number(text) == pytest.approx(expected)


@pytest.mark.parametrize("text", ["", "abc", "  ", "-", "+", ".", None, "x150"])
def test_parse_number_unparseable(text):
    assert math.isnan(parse_number(text))


# ---------------------------------------------------------------------------
# Precedence
# ---------------------------------------------------------------------------

def test_override_beats_everything():
    leg = resolve_leg(LegInput(
        probability_override="0.75",
        over_odds="-120",
        under_odds="+100",
        single_odds="-110",
    ))
    assert leg.source == "override"
    assert leg.chosen_probability == 0.75
    assert leg.error is None
    assert leg.implied_probability is None


def test_override_is_clamped():
    assert resolve_leg(LegInput(probability_override="1.4")).chosen_probability == 1.0
    assert resolve_leg(LegInput(probability_override="-3")).chosen_probability == 0.0


def test_unparseable_override_falls_through_to_pair():
    leg = resolve_leg(LegInput(probability_override="abc", over_odds="-110", under_odds="-110"))
    assert leg.source == "devigPair"
    assert leg.chosen_probability == 0.5
    assert leg.error is None


def test_unparseable_override_falls_through_to_single():
    leg = resolve_leg(LegInput(probability_override="n/a", single_odds="+150"))
    assert leg.source == "singleOdds"
    assert leg.chosen_probability == pytest.approx(0.4)


def test_pair_beats_single():
    leg = resolve_leg(LegInput(over_odds="-110", under_odds="-110", single_odds="+500"))
    assert leg.source == "devigPair"


@pytest.mark.parametrize("over, under", [("-120", None), ("-120", ""), (None, "+100"), ("", "+100")])
def test_half_pair_falls_through_to_single(over, under):
    leg = resolve_leg(LegInput(over_odds=over, under_odds=under, single_odds="-110"))
    assert leg.source == "singleOdds"
    assert leg.chosen_probability == pytest.approx(110 / 210)


def test_half_pair_without_single_is_no_input():
    leg = resolve_leg(LegInput(over_odds="-120"))
    assert leg.source == "singleOdds"
    assert leg.error == ERR_NO_INPUT


# ---------------------------------------------------------------------------
# De-vig pair
# ---------------------------------------------------------------------------

def test_pair_over_side():
    p_over = american_to_implied_prob(-130)
    p_under = american_to_implied_prob(+100)
    leg = resolve_leg(LegInput(side="over", over_odds="-130", under_odds="+100"))
    assert leg.chosen_probability == pytest.approx(p_over / (p_over + p_under))
    assert leg.fair_probability == leg.chosen_probability
    assert leg.implied_probability == pytest.approx(p_over)
    assert leg.vig_percent == pytest.approx((p_over + p_under - 1) * 100)


def test_pair_under_side():
    p_over = american_to_implied_prob(-130)
    p_under = american_to_implied_prob(+100)
    leg = resolve_leg(LegInput(side="under", over_odds="-130", under_odds="+100"))
    assert leg.chosen_probability == pytest.approx(p_under / (p_over + p_under))
    assert leg.implied_probability == pytest.approx(p_under)


@pytest.mark.parametrize("over, under", [("abc", "-110"), ("-110", "xyz"), ("?", "?")])
def test_pair_parse_error_does_not_fall_through(over, under):
    leg = resolve_leg(LegInput(over_odds=over, under_odds=under, single_odds="-110"))
    assert leg.source == "devigPair"
    assert leg.error == ERR_PAIR_FORMAT
    assert math.isnan(leg.chosen_probability)


def test_pair_zero_odds_is_format_error():
    leg = resolve_leg(LegInput(over_odds="0", under_odds="-110"))
    assert leg.source == "devigPair"
    assert leg.error == ERR_PAIR_FORMAT


def test_pair_degenerate_market_cannot_compute_fair():
    # Infinite underdog odds imply exactly zero on both sides.
    leg = resolve_leg(LegInput(over_odds="1e999", under_odds="1e999"))
    assert leg.source == "devigPair"
    assert leg.error == ERR_PAIR_FAIR
    assert math.isnan(leg.chosen_probability)


# ---------------------------------------------------------------------------
# Single odds and empty input
# ---------------------------------------------------------------------------

def test_single_odds():
    leg = resolve_leg(LegInput(single_odds="+150"))
    assert leg.source == "singleOdds"
    assert leg.chosen_probability == pytest.approx(0.4)
    assert leg.implied_probability == leg.chosen_probability
    assert leg.fair_probability is None


@pytest.mark.parametrize("odds", ["abc", "0", "  "])
def test_single_odds_format_error(odds):
    leg = resolve_leg(LegInput(single_odds=odds))
    assert leg.source == "singleOdds"
    assert leg.error == ERR_SINGLE_FORMAT
    assert not leg.is_valid


def test_no_input():
    leg = resolve_leg(LegInput())
    assert leg.source == "singleOdds"
    assert leg.error == ERR_NO_INPUT
    assert math.isnan(leg.chosen_probability)


@pytest.mark.parametrize("leg_input", [
    LegInput(probability_override="0.6"),
    LegInput(over_odds="-110", under_odds="+100"),
    LegInput(single_odds="-200"),
    LegInput(single_odds="bad"),
    LegInput(over_odds="bad", under_odds="-110"),
    LegInput(),
])
def test_error_iff_undefined(leg_input):
    leg = resolve_leg(leg_input)
    assert (leg.error is not None) == math.isnan(leg.chosen_probability)
