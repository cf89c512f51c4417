"""Unit tests for domain/shared/types.py — Pydantic Annotated type constraints."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta, timezone

import pytest
from pydantic import BaseModel, ValidationError

from discord_playback_scheduler.domain.shared.types import (
    DiscordSnowflake,
    DurationSeconds,
    HttpUrlStr,
    NonEmptyStr,
    NonNegativeFloat,
    NonNegativeInt,
    PositiveInt,
    QueuePositionInt,
    TrackTitleStr,
    UtcDatetimeField,
)


def _model_for(annotation, field_name: str = "v"):
    """Dynamically create a Pydantic model with a single field of the given type."""
    return type("M", (BaseModel,), {"__annotations__": {field_name: annotation}})


class TestDiscordSnowflake:
    M = _model_for(DiscordSnowflake)

    def test_valid_snowflake(self):
        assert self.M(v=1).v == 1

    def test_largest_snowflake(self):
        assert self.M(v=2**64 - 1).v == 2**64 - 1

    @pytest.mark.parametrize("value", [0, -1, 2**64])
    def test_out_of_range_rejected(self, value):
        with pytest.raises(ValidationError):
            self.M(v=value)


@pytest.mark.parametrize(
    ("annotation", "valid", "invalid"),
    [
        (NonNegativeInt, 0, -1),
        (PositiveInt, 1, 0),
        (NonNegativeFloat, 0.0, -0.1),
        (QueuePositionInt, 0, -1),
        (DurationSeconds, 86_400, 86_401),
    ],
)
def test_numeric_bounds(annotation, valid, invalid):
    M = _model_for(annotation)

    assert M(v=valid).v == valid
    with pytest.raises(ValidationError):
        M(v=invalid)


class TestStrings:
    def test_non_empty(self):
        M = _model_for(NonEmptyStr)

        assert M(v="x").v == "x"
        with pytest.raises(ValidationError):
            M(v="")

    def test_track_title_length(self):
        M = _model_for(TrackTitleStr)

        assert M(v="a" * 500).v == "a" * 500
        with pytest.raises(ValidationError):
            M(v="a" * 501)

    @pytest.mark.parametrize("url", ["http://example.com", "https://cdn.example.com/a.webm"])
    def test_http_url_accepted(self, url):
        assert _model_for(HttpUrlStr)(v=url).v == url

    @pytest.mark.parametrize("url", ["ftp://example.com", "example.com", "file:///tmp/x"])
    def test_http_url_rejected(self, url):
        with pytest.raises(ValidationError):
            _model_for(HttpUrlStr)(v=url)


class TestUtcDatetimeField:
    M = _model_for(UtcDatetimeField)

    def test_utc_kept(self):
        now = datetime(2024, 1, 1, 12, tzinfo=UTC)

        assert self.M(v=now).v == now

    def test_offset_normalised(self):
        eastern = timezone(timedelta(hours=-5))

        value = self.M(v=datetime(2024, 1, 1, 7, tzinfo=eastern)).v

        assert value.tzinfo == UTC
        assert value.hour == 12

    def test_naive_rejected(self):
        with pytest.raises(ValidationError, match="timezone-aware"):
            self.M(v=datetime(2024, 1, 1))
