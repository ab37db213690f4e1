"""Tests for the .osu reader and the beatmap accessors."""

from __future__ import annotations

from pathlib import Path

import pytest

from jump_detect.data.beatmap import (
    Beatmap,
    HitObject,
    HitObjectType,
    TimingSegment,
    parse_osu_file,
    parse_osu_text,
)
from jump_detect.errors import BeatmapParseError, MissingTimingDataError

# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

SAMPLE_OSU = """osu file format v14

[General]
AudioFilename: audio.mp3
Mode: 0

[Metadata]
Title:Test Song
Artist:Test Artist
Creator:TestMapper
Version:Insane

[Difficulty]
HPDrainRate:5
CircleSize:4
OverallDifficulty:8
ApproachRate:9
SliderMultiplier:1.4
SliderTickRate:1

[TimingPoints]
1000,500,4,2,0,60,1,0
3000,-50,4,2,0,60,0,0

[HitObjects]
100,100,1000,5,0,0:0:0:0:
200,100,1500,1,0,0:0:0:0:
300,100,2000,2,0,B|400:100,1,140
400,300,3000,6,0,L|400:200,2,70
256,192,5000,12,0,6000,0:0:0:0:
"""


@pytest.fixture
def beatmap() -> Beatmap:
    return parse_osu_text(SAMPLE_OSU)


# ---------------------------------------------------------------------------
# Reader
# ---------------------------------------------------------------------------


def test_parse_metadata_and_difficulty(beatmap: Beatmap) -> None:
    assert beatmap.title == "Test Song"
    assert beatmap.artist == "Test Artist"
    assert beatmap.creator == "TestMapper"
    assert beatmap.version == "Insane"
    assert beatmap.circle_size == 4.0
    assert beatmap.slider_multiplier == 1.4
    assert beatmap.name == "Test Artist - Test Song [Insane]"


def test_parse_timing_points(beatmap: Beatmap) -> None:
    assert len(beatmap.timing_segments) == 1
    seg = beatmap.timing_segments[0]
    assert seg.offset == 1000.0
    assert seg.beat_length == 500.0
    assert seg.bpm == pytest.approx(120.0)

    assert len(beatmap.slider_velocity_changes) == 1
    assert beatmap.slider_velocity_changes[0].multiplier == pytest.approx(2.0)


def test_parse_hit_object_types(beatmap: Beatmap) -> None:
    types = [o.type for o in beatmap]
    assert types == [
        HitObjectType.CIRCLE,
        HitObjectType.CIRCLE,
        HitObjectType.SLIDER,
        HitObjectType.SLIDER,
        HitObjectType.SPINNER,
    ]
    assert [beatmap.position_of(o) for o in beatmap] == [0, 1, 2, 3, 4]


def test_slider_end_time_uses_slider_velocity(beatmap: Beatmap) -> None:
    first, second = beatmap.hit_objects[2], beatmap.hit_objects[3]

    # 140 px at 1.4 * 100 px/beat = one beat
    assert first.end_time == pytest.approx(2500.0)
    assert first.edge_times == pytest.approx([2000.0, 2500.0])
    assert (first.end_x, first.end_y) == (400.0, 100.0)

    # 2x slider velocity, 70 px there and back = half beat
    assert second.slides == 2
    assert second.end_time == pytest.approx(3250.0)
    assert second.edge_times == pytest.approx([3000.0, 3125.0, 3250.0])
    # Even slide count ends on the head
    assert (second.end_x, second.end_y) == (400.0, 300.0)


def test_spinner_edges(beatmap: Beatmap) -> None:
    spinner = beatmap.hit_objects[4]
    assert spinner.is_spinner
    assert spinner.edge_times == [5000.0, 6000.0]


def test_combo_numbers(beatmap: Beatmap) -> None:
    assert [o.combo_number for o in beatmap] == [1, 2, 3, 1, 1]


def test_parse_from_file(tmp_path: Path) -> None:
    path = tmp_path / "map.osu"
    path.write_text(SAMPLE_OSU, encoding="utf-8")
    beatmap = parse_osu_file(path)
    assert len(beatmap) == 5


def test_missing_header_raises() -> None:
    with pytest.raises(BeatmapParseError):
        parse_osu_text("[HitObjects]\n100,100,1000,1,0\n")


def test_malformed_lines_are_skipped() -> None:
    text = SAMPLE_OSU + "not,a,valid,object\n64,64,7000,1,0,0:0:0:0:\n"
    beatmap = parse_osu_text(text)
    assert len(beatmap) == 6
    assert beatmap.hit_objects[-1].time == 7000.0


def test_no_hit_objects_section() -> None:
    beatmap = parse_osu_text("osu file format v14\n\n[Metadata]\nTitle:Empty\n")
    assert len(beatmap) == 0
    assert beatmap.title == "Empty"


# ---------------------------------------------------------------------------
# Accessors
# ---------------------------------------------------------------------------


def test_predecessor_and_successor(beatmap: Beatmap) -> None:
    first, second = beatmap.hit_objects[0], beatmap.hit_objects[1]
    assert beatmap.predecessor(first) is None
    assert beatmap.predecessor(second) is first
    assert beatmap.successor(first) is second
    assert beatmap.successor(beatmap.hit_objects[-1]) is None


def test_beatmap_sorts_objects_by_time() -> None:
    late = HitObject(time=2000.0, type=HitObjectType.CIRCLE)
    early = HitObject(time=1000.0, type=HitObjectType.CIRCLE)
    beatmap = Beatmap(hit_objects=[late, early])
    assert beatmap.hit_objects == [early, late]
    assert beatmap.predecessor(late) is early


def test_beatmaps_sharing_objects_keep_their_own_order() -> None:
    objects = [HitObject(time=i * 250.0, type=HitObjectType.CIRCLE) for i in range(6)]
    given = list(reversed(objects))
    full = Beatmap(hit_objects=given)
    partial = Beatmap(hit_objects=objects[3:])

    # The caller's list is left as given
    assert given == list(reversed(objects))
    assert full.predecessor(objects[4]) is objects[3]
    assert full.predecessor(objects[4]).time == 750.0
    assert partial.predecessor(objects[4]) is objects[3]
    assert partial.predecessor(objects[3]) is None
    assert full.successor(objects[5]) is None


def test_position_of_foreign_object_raises() -> None:
    beatmap = Beatmap(hit_objects=[HitObject(time=0.0, type=HitObjectType.CIRCLE)])
    with pytest.raises(ValueError):
        beatmap.predecessor(HitObject(time=0.0, type=HitObjectType.CIRCLE))


def test_slider_without_timing_has_no_duration() -> None:
    beatmap = parse_osu_text("osu file format v14\n\n[HitObjects]\n100,100,1000,2,0,L|200:100,1,100\n")
    slider = beatmap.hit_objects[0]
    assert slider.type is HitObjectType.SLIDER
    assert slider.end_time == 1000.0
    assert (slider.end_x, slider.end_y) == (200.0, 100.0)


def test_timing_segment_lookup() -> None:
    beatmap = Beatmap(
        timing_segments=[TimingSegment(offset=1000.0, beat_length=500.0),
                         TimingSegment(offset=5000.0, beat_length=400.0)]
    )
    assert beatmap.timing_segment_at(1000.0).beat_length == 500.0
    assert beatmap.timing_segment_at(4999.0).beat_length == 500.0
    assert beatmap.timing_segment_at(5000.0).beat_length == 400.0
    # Before the first line the first line applies
    assert beatmap.timing_segment_at(0.0).beat_length == 500.0


def test_timing_segment_lookup_without_timing() -> None:
    assert Beatmap().timing_segment_at(1000.0) is None


def test_unsnap_offset(beatmap: Beatmap) -> None:
    assert beatmap.unsnap_offset(1500.0) == pytest.approx(0.0)
    # 1 ms late on a 1/2 beat
    assert beatmap.unsnap_offset(1501.0) == pytest.approx(-1.0)
    # 1/3 beat after 1000 is 1166.67; the 1/12 grid wins over the 1/16 one
    assert beatmap.unsnap_offset(1167.0) == pytest.approx(-1.0 / 3.0)
    assert beatmap.unsnap_offset(1167.0, divisors=(16,)) == pytest.approx(-10.75)


def test_unsnap_offset_without_timing_raises() -> None:
    with pytest.raises(MissingTimingDataError) as excinfo:
        Beatmap().unsnap_offset(1000.0)
    assert excinfo.value.time == 1000.0
