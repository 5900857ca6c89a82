import pytest

from calendar_api.occurrences import list_occurrences
from calendar_api.validation import parse_time_range
from conftest import make_event

DAY = "2024-05-01T"


def _window(start, end):
    return parse_time_range(DAY + start + ":00Z", DAY + end + ":00Z")


@pytest.fixture
def meeting(store):
    return store.create(make_event(title="Meeting", start=DAY + "10:00:00Z", end=DAY + "11:00:00Z"))


@pytest.mark.parametrize(
    "start, end",
    [
        ("09:30", "10:30"),  # starts inside the window
        ("10:30", "10:45"),  # window inside the event
        ("09:00", "12:00"),  # event inside the window
        ("10:59", "11:30"),  # ends inside the window
    ],
)
def test_overlapping_windows_include_event(store, meeting, start, end):
    found = list_occurrences(store, _window(start, end))
    assert [o.event_id for o in found] == [meeting.id]


@pytest.mark.parametrize(
    "start, end",
    [
        ("11:00", "12:00"),  # event ends exactly at from
        ("08:00", "09:00"),  # entirely before
        ("08:00", "10:00"),  # window ends exactly at event start
    ],
)
def test_touching_or_disjoint_windows_exclude_event(store, meeting, start, end):
    assert list_occurrences(store, _window(start, end)) == []


def test_inverted_window_is_empty(store, meeting):
    # Would match the event if the bounds were applied blindly
    assert list_occurrences(store, _window("10:45", "10:15")) == []


def test_occurrence_echoes_event(store, meeting):
    [occ] = list_occurrences(store, _window("00:00", "23:59"))
    assert occ.id == occ.event_id == meeting.id
    assert occ.title == "Meeting"
    assert occ.start_at == meeting.start_at
    assert occ.end_at == meeting.end_at
    assert occ.timezone == meeting.timezone


def test_results_ordered_by_start(store):
    late = store.create(make_event(title="late", start=DAY + "15:00:00Z", end=DAY + "16:00:00Z"))
    early = store.create(make_event(title="early", start=DAY + "07:00:00Z", end=DAY + "08:00:00Z"))
    spanning = store.create(make_event(title="spanning", start="2024-04-30T20:00:00Z", end=DAY + "09:00:00Z"))
    outside = store.create(make_event(title="outside", start="2024-05-02T07:00:00Z", end="2024-05-02T08:00:00Z"))

    found = list_occurrences(store, _window("00:00", "23:59"))

    assert [o.event_id for o in found] == [spanning.id, early.id, late.id]
    assert outside.id not in {o.event_id for o in found}
