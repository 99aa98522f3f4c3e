"""Deterministic output positions for match and pit rows."""

from __future__ import annotations

from collections.abc import Iterator, Sequence

from scoutintake._constants import BASE_OFFSET, BLOCK_SIZE, MAX_MATCH_FILL_SPAN, PIT_ROW_ABSENT, STATION_OFFSETS


def station_label(is_blue: bool, number: int) -> str:
    """``red1`` .. ``blue3``."""
    return f"{'blue' if is_blue else 'red'}{number}"


def station_offset(is_blue: bool, number: int) -> int:
    """0-5, red stations first.  Unknown stations fall back to 0."""
    return STATION_OFFSETS.get(station_label(is_blue, number), 0)


def match_row(match_number: int, is_blue: bool, station: int) -> int:
    """Row of one station in one match; row 1 holds headers.

    >>> match_row(1, False, 1)
    2
    >>> match_row(10, True, 2)
    58
    """
    return BASE_OFFSET + (match_number - 1) * BLOCK_SIZE + station_offset(is_blue, station)


def pit_row(team_number: int, roster: Sequence[int]) -> int:
    """1-based roster position of *team_number*, or ``PIT_ROW_ABSENT``."""
    try:
        return list(roster).index(team_number) + 1
    except ValueError:
        return PIT_ROW_ABSENT


def match_number_column(start_match: int, end_match: int) -> Iterator[tuple[int, list[list[int]]]]:
    """Yield ``(first_row, values)`` blocks that label every row with its match.

    Each block is six identical single-cell rows.  Spans of
    ``MAX_MATCH_FILL_SPAN`` matches or more are rejected to stay under the
    output collaborator's rate limits.
    """
    if abs(end_match - start_match) >= MAX_MATCH_FILL_SPAN:
        raise ValueError(f"match span must be under {MAX_MATCH_FILL_SPAN}, got {start_match}..{end_match}")
    for number in range(start_match, end_match + 1):
        yield match_row(number, False, 1), [[number]] * BLOCK_SIZE
