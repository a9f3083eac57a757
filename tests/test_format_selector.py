"""Tests for deterministic format selection (core/format_selector.py)."""

from __future__ import annotations

import pytest

from yt_relay.core.format_catalog import build_catalog
from yt_relay.core.format_selector import (
    audio_missing,
    parse_output_type,
    parse_quality_hint,
    pick_by_quality,
    select_format,
)
from yt_relay.core.models import (
    FormatCatalog,
    FormatSource,
    LiveStreamDescriptor,
    OutputType,
    RawFormatDescriptor,
    SelectionCriteria,
)
from yt_relay.exceptions import (
    FormatNotFoundError,
    FormatSelectionError,
    InvalidInputError,
    InvalidQualityError,
    LiveStreamUnavailableError,
)


# ---------------------------------------------------------------------------
# Factory helpers
# ---------------------------------------------------------------------------

def _video(itag: str, height: int) -> RawFormatDescriptor:
    return RawFormatDescriptor(
        itag=itag,
        mime_type='video/mp4; codecs="avc1.640028"',
        height=height,
    )


def _merged(itag: str, height: int) -> RawFormatDescriptor:
    return RawFormatDescriptor(
        itag=itag,
        mime_type='video/mp4; codecs="avc1.42001E, mp4a.40.2"',
        source=FormatSource.COMBINED,
        height=height,
    )


def _audio(itag: str, bitrate: int) -> RawFormatDescriptor:
    return RawFormatDescriptor(
        itag=itag,
        mime_type='audio/mp4; codecs="mp4a.40.2"',
        bitrate=bitrate,
    )


def _catalog(*raws: RawFormatDescriptor) -> FormatCatalog:
    return build_catalog(list(raws))


def _full_catalog() -> FormatCatalog:
    return _catalog(
        _video("137", 1080),
        _video("136", 720),
        _video("135", 480),
        _video("134", 360),
        _merged("18", 360),
        _audio("139", 48_000),
        _audio("140", 128_000),
    )


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------

class TestParseQualityHint:
    @pytest.mark.parametrize("value", [None, "", "best", "BEST"])
    def test_best(self, value: str | None) -> None:
        assert parse_quality_hint(value).mode == "best"

    def test_worst(self) -> None:
        assert parse_quality_hint("worst").mode == "worst"

    @pytest.mark.parametrize(("value", "height"), [("720p", 720), ("480", 480), ("1080P", 1080)])
    def test_height(self, value: str, height: int) -> None:
        hint = parse_quality_hint(value)
        assert hint.mode == "max_height"
        assert hint.max_height == height

    @pytest.mark.parametrize("value", ["hd", "720px", "-1", "1234567"])
    def test_invalid(self, value: str) -> None:
        with pytest.raises(InvalidQualityError) as exc_info:
            parse_quality_hint(value)
        assert exc_info.value.http_status == 400


class TestParseOutputType:
    def test_default_is_merged(self) -> None:
        assert parse_output_type(None) is OutputType.MERGED

    def test_case_insensitive(self) -> None:
        assert parse_output_type("Audio") is OutputType.AUDIO

    def test_invalid(self) -> None:
        with pytest.raises(InvalidInputError):
            parse_output_type("subtitles")


# ---------------------------------------------------------------------------
# pick_by_quality
# ---------------------------------------------------------------------------

class TestPickByQuality:
    def test_empty_bucket(self) -> None:
        assert pick_by_quality((), parse_quality_hint("best")) is None

    def test_target_below_every_height_falls_back_to_best(self) -> None:
        catalog = _full_catalog()
        chosen = pick_by_quality(catalog.video_only, parse_quality_hint("144p"))
        assert chosen is not None
        assert chosen.itag == "137"

    def test_worst(self) -> None:
        catalog = _full_catalog()
        chosen = pick_by_quality(catalog.video_only, parse_quality_hint("worst"))
        assert chosen is not None
        assert chosen.itag == "134"


# ---------------------------------------------------------------------------
# select_format
# ---------------------------------------------------------------------------

class TestSelectFormat:
    def test_video_480p(self) -> None:
        chosen = select_format(
            _full_catalog(),
            None,
            SelectionCriteria(output_type=OutputType.VIDEO, quality="480p"),
        )
        assert chosen.itag == "135"

    def test_video_between_heights_picks_next_lower(self) -> None:
        chosen = select_format(
            _full_catalog(),
            None,
            SelectionCriteria(output_type=OutputType.VIDEO, quality="600"),
        )
        assert chosen.itag == "135"

    def test_audio_is_highest_bitrate(self) -> None:
        chosen = select_format(
            _full_catalog(),
            None,
            SelectionCriteria(output_type=OutputType.AUDIO, quality="worst"),
        )
        assert chosen.itag == "140"

    def test_merged_prefers_muxed(self) -> None:
        chosen = select_format(_full_catalog(), None, SelectionCriteria())
        assert chosen.itag == "18"
        assert not audio_missing(SelectionCriteria(), chosen)

    def test_merged_falls_back_to_video_only(self) -> None:
        catalog = _catalog(_video("137", 1080), _video("136", 720))
        criteria = SelectionCriteria(quality="720p")
        chosen = select_format(catalog, None, criteria)
        assert chosen.itag == "136"
        assert audio_missing(criteria, chosen)

    def test_explicit_itag_wins(self) -> None:
        criteria = SelectionCriteria(output_type=OutputType.AUDIO, explicit_itag="136")
        chosen = select_format(_full_catalog(), None, criteria)
        assert chosen.itag == "136"
        assert not audio_missing(criteria, chosen)

    def test_every_catalog_itag_round_trips(self) -> None:
        catalog = _full_catalog()
        for itag in catalog.available_itags():
            chosen = select_format(catalog, None, SelectionCriteria(explicit_itag=itag))
            assert chosen.itag == itag

    def test_unknown_itag_lists_available(self) -> None:
        with pytest.raises(FormatNotFoundError) as exc_info:
            select_format(_full_catalog(), None, SelectionCriteria(explicit_itag="999"))
        err = exc_info.value
        assert err.http_status == 500
        assert "137" in err.hint
        payload = err.to_payload()
        assert payload["requested"] == "999"
        assert "140" in payload["available"]

    def test_invalid_quality(self) -> None:
        with pytest.raises(InvalidQualityError):
            select_format(_full_catalog(), None, SelectionCriteria(quality="ultra"))

    def test_empty_audio_bucket(self) -> None:
        catalog = _catalog(_video("137", 1080))
        with pytest.raises(FormatSelectionError):
            select_format(catalog, None, SelectionCriteria(output_type=OutputType.AUDIO))

    def test_empty_video_bucket(self) -> None:
        catalog = _catalog(_audio("140", 128_000))
        with pytest.raises(FormatSelectionError):
            select_format(catalog, None, SelectionCriteria(output_type=OutputType.VIDEO))

    def test_merged_with_only_audio(self) -> None:
        catalog = _catalog(_audio("140", 128_000))
        with pytest.raises(FormatSelectionError):
            select_format(catalog, None, SelectionCriteria())


class TestSelectLive:
    def test_returns_descriptor(self) -> None:
        live = LiveStreamDescriptor(manifest_url="https://manifest.example/x.m3u8")
        chosen = select_format(FormatCatalog(), live, SelectionCriteria(explicit_itag="18"))
        assert chosen is live

    def test_without_manifest(self) -> None:
        live = LiveStreamDescriptor(manifest_url=None)
        with pytest.raises(LiveStreamUnavailableError, match="no playable manifest"):
            select_format(FormatCatalog(), live, SelectionCriteria())
