from zoneinfo import ZoneInfo

import pytest
from lxml import etree

from conftest import LINEUP, PROGRAMS
from tvguide.errors import InternalAssemblyError, MalformedResponse
from tvguide.profiles import LEGACY_PROFILE, STANDARD_PROFILE, resolve_profile
from tvguide.schemas import LineupChannel
from tvguide.services.fetch_types import Lineup
from tvguide.services.lineup_service import build_channel_id_map
from tvguide.services.xmltv_builder_service import XMLTVDocumentBuilder


DENVER = ZoneInfo("America/Denver")


def _lineup(profile=STANDARD_PROFILE, records=LINEUP):
    channels = [LineupChannel.model_validate(record) for record in records]
    return Lineup(lineup_id="TEST-LINEUP", channels=channels, channel_ids=build_channel_id_map(channels, profile))


def _grid(lineup, programs=PROGRAMS):
    return [programs.get(channel.station_id) for channel in lineup.channels]


def _build(profile=STANDARD_PROFILE, records=LINEUP, programs=PROGRAMS, days=1):
    lineup = _lineup(profile, records)
    builder = XMLTVDocumentBuilder(
        profile,
        provider_base_url="https://provider.test",
        title_fallback="No Title",
        root_attributes={"generator-info-name": "tvtv2xmltv", "source-info-name": "TVTV"},
    )
    builder.add_channels(lineup)
    for _ in range(days):
        builder.add_programmes(lineup, _grid(lineup, programs), DENVER)
    return builder, etree.fromstring(builder.serialize())


def _programme(root, title):
    return root.xpath("programme[title=$title]", title=title)[0]


def test_root_attributes_and_declaration():
    builder, root = _build()
    content = builder.serialize()
    assert content.startswith(b"<?xml version='1.0' encoding='UTF-8'?>")
    assert root.tag == "tv"
    assert root.get("generator-info-name") == "tvtv2xmltv"
    assert root.get("source-info-name") == "TVTV"


def test_channels_precede_programmes():
    _, root = _build()
    tags = [child.tag for child in root]
    assert tags == ["channel"] * 3 + ["programme"] * 3


def test_standard_channel_elements():
    _, root = _build()
    channel = root.find("channel[@id='ch100']")
    assert [el.text for el in channel.findall("display-name")] == ["KAAA", "Channel 2.1", "2.1"]
    icon = channel.find("icon")
    assert icon.get("src") == "https://provider.test/logos/100.png"
    assert (icon.get("width"), icon.get("height")) == ("360", "270")
    # empty or missing logo emits no icon
    assert root.find("channel[@id='ch200']/icon") is None
    assert root.find("channel[@id='ch300']/icon") is None


def test_legacy_channel_elements():
    _, root = _build(LEGACY_PROFILE)
    channel = root.find("channel[@id='2.1']")
    assert [el.text for el in channel.findall("display-name")] == ["KAAA", "2.1"]
    assert channel.find("icon").get("width") is None


def test_programme_channel_references_emitted_channel():
    _, root = _build(days=2)
    channel_ids = {el.get("id") for el in root.findall("channel")}
    programme_channels = [el.get("channel") for el in root.findall("programme")]
    assert programme_channels
    assert set(programme_channels) <= channel_ids


def test_movie_type_emits_single_movie_category():
    _, root = _build()
    movie = _programme(root, "Big Movie")
    assert [el.text for el in movie.findall("category")] == ["movie"]
    assert movie.find("category").get("lang") == "en"


def test_hd_and_new_flags_without_stereo():
    _, root = _build()
    movie = _programme(root, "Big Movie")
    assert movie.findtext("video/quality") == "HDTV"
    new = movie.find("new")
    assert new is not None and len(new) == 0 and not new.text
    assert movie.find("audio") is None


def test_kids_and_news_categories_and_stereo():
    _, root = _build()
    news = _programme(root, "Morning News")
    assert [el.text for el in news.findall("category")] == ["news"]
    assert news.findtext("audio/stereo") == "stereo"
    assert news.findtext("sub-title") == "Early Edition"
    assert news.findtext("desc") == "Local headlines."
    assert news.find("video") is None

    cartoon = _programme(root, "Cartoon Hour")
    assert [el.text for el in cartoon.findall("category")] == ["kids"]
    assert cartoon.find("sub-title") is None
    assert cartoon.find("desc") is None


def test_flags_match_exact_tokens_only():
    programs = {"100": [{"title": "Odd", "startTime": "2024-03-01T05:00:00Z", "runTime": 30, "flags": ["HDR", "Newish", "stereo"]}]}
    _, root = _build(programs=programs)
    odd = _programme(root, "Odd")
    assert odd.find("video") is None
    assert odd.find("new") is None
    assert odd.find("audio") is None


def test_unknown_type_and_missing_flags():
    programs = {"100": [{"title": "Other", "startTime": "2024-03-01T05:00:00Z", "runTime": 30, "type": "X", "flags": None}]}
    _, root = _build(programs=programs)
    assert _programme(root, "Other").find("category") is None


def test_title_fallback_for_missing_and_empty_titles():
    programs = {"100": [
        {"startTime": "2024-03-01T05:00:00Z", "runTime": 30},
        {"title": "", "startTime": "2024-03-01T05:30:00Z", "runTime": 30, "subtitle": "", "description": ""},
    ]}
    _, root = _build(programs=programs)
    programmes = root.findall("programme")
    assert [p.findtext("title") for p in programmes] == ["No Title", "No Title"]
    assert programmes[1].find("sub-title") is None
    assert programmes[1].find("desc") is None
    assert programmes[0].find("title").get("lang") == "en"


def test_standard_times_are_utc():
    _, root = _build()
    news = _programme(root, "Morning News")
    assert news.get("start") == "20240301050000 +0000"
    assert news.get("stop") == "20240301053000 +0000"


def test_legacy_times_are_local_and_encoding_latin1():
    builder, root = _build(LEGACY_PROFILE)
    news = _programme(root, "Morning News")
    assert news.get("start") == "20240229220000 -0700"
    assert news.get("stop") == "20240229223000 -0700"
    assert news.get("channel") == "2.1"
    assert builder.serialize().startswith(b"<?xml version='1.0' encoding='ISO-8859-1'?>")


def test_profile_override_offsets():
    profile = resolve_profile("standard", offset_convention="local")
    _, root = _build(profile)
    assert _programme(root, "Big Movie").get("start") == "20240229230000 -0700"


def test_non_latin_text_survives_latin1_encoding():
    programs = {"100": [{"title": "Café ☕", "startTime": "2024-03-01T05:00:00Z", "runTime": 30}]}
    _, root = _build(LEGACY_PROFILE, programs=programs)
    assert root.find("programme").findtext("title") == "Café ☕"


def test_control_characters_are_stripped():
    programs = {"100": [{"title": "Bad\x0bTitle", "startTime": "2024-03-01T05:00:00Z", "runTime": 30}]}
    _, root = _build(programs=programs)
    assert root.find("programme").findtext("title") == "BadTitle"


@pytest.mark.parametrize("profile", [STANDARD_PROFILE, LEGACY_PROFILE])
def test_lone_surrogates_are_stripped(profile):
    programs = {"100": [{"title": "Bad \ud83d title", "description": "half \udc00 pair", "startTime": "2024-03-01T05:00:00Z", "runTime": 30}]}
    _, root = _build(profile, programs=programs)
    programme = root.find("programme")
    assert programme.findtext("title") == "Bad  title"
    assert programme.findtext("desc") == "half  pair"


def test_icon_src_is_cleaned():
    records = [{"stationId": "100", "channelNumber": "2.1", "stationCallSign": "KA\ud800AA", "logo": "/l\x01ogo.png"}]
    _, root = _build(records=records, programs={})
    channel = root.find("channel[@id='ch100']")
    assert channel.find("icon").get("src") == "https://provider.test/logo.png"
    assert channel.findtext("display-name") == "KAAA"


def test_missing_and_non_array_slots_are_skipped():
    programs = {"100": None, "200": {"not": "a list"}, "300": []}
    builder, root = _build(programs=programs)
    assert builder.programme_count == 0
    assert root.findall("programme") == []
    assert len(root.findall("channel")) == 3


def test_misaligned_grid_raises():
    lineup = _lineup()
    builder = XMLTVDocumentBuilder(STANDARD_PROFILE, provider_base_url="https://provider.test")
    builder.add_channels(lineup)
    with pytest.raises(InternalAssemblyError):
        builder.add_programmes(lineup, [[], []], DENVER)


def test_program_without_start_time_is_malformed():
    programs = {"100": [{"title": "No start", "runTime": 30}]}
    with pytest.raises(MalformedResponse):
        _build(programs=programs)


def test_non_object_program_is_malformed():
    with pytest.raises(MalformedResponse):
        _build(programs={"100": ["just a string"]})


def test_repeated_station_emitted_once():
    records = LINEUP + [{"stationId": "100", "channelNumber": "2.2", "stationCallSign": "KAAA"}]
    builder, root = _build(records=records)
    assert len(root.findall("channel[@id='ch100']")) == 1
    assert len(root.xpath("programme[@channel='ch100']")) == 2
    assert builder.channel_count == 3


def test_round_trip_counts_and_attributes():
    builder, root = _build(days=2)
    expected = sum(len(programs) for programs in PROGRAMS.values()) * 2

    assert len(root.findall("channel")) == len(LINEUP) == builder.channel_count
    assert len(root.findall("programme")) == expected == builder.programme_count

    movie = root.xpath("programme[title='Big Movie']")
    assert len(movie) == 2
    for programme in movie:
        assert programme.get("channel") == "ch200"
        assert programme.get("start") == "20240301060000 +0000"
        assert programme.get("stop") == "20240301080000 +0000"
