from datetime import date, datetime, timedelta

import pytest

from sac_portal.errors import (InvalidDateError, InvalidRoundError, MissingRoomError,
                               PanelTooSmallError, SlotUnavailableError, UnknownCandidateError)
from sac_portal.services.slots import ELIGIBLE_DATES, ROUND_ONE, ROUND_TWO

PANEL = ['exec-a', 'exec-b']
GROUP_DAY = date(2025, 9, 3)
SOLO_DAY = date(2025, 9, 8)


def test_only_literal_dates_are_valid(scheduler):
    for round_, dates in ELIGIBLE_DATES.items():
        for d in dates:
            assert scheduler.is_valid_date(d, round_)
            # neighbours that are not themselves in the table are rejected
            for nb in (d - timedelta(days=1), d + timedelta(days=1)):
                assert scheduler.is_valid_date(nb, round_) == (nb in dates)


def test_day_before_and_after_round_one_rejected(scheduler):
    assert not scheduler.is_valid_date(date(2025, 9, 2), ROUND_ONE)
    assert not scheduler.is_valid_date(date(2025, 9, 5), ROUND_ONE)
    assert not scheduler.is_valid_date(date(2024, 9, 3), ROUND_ONE)


def test_rounds_have_separate_dates(scheduler):
    assert scheduler.is_valid_date(GROUP_DAY, ROUND_ONE)
    assert not scheduler.is_valid_date(GROUP_DAY, ROUND_TWO)
    assert not scheduler.is_valid_date(SOLO_DAY, ROUND_ONE)
    # weekend between the two round-two weeks
    assert not scheduler.is_valid_date(date(2025, 9, 13), ROUND_TWO)


def test_date_inputs_are_coerced(scheduler):
    assert scheduler.is_valid_date('2025-09-04', ROUND_ONE)
    assert scheduler.is_valid_date(datetime(2025, 9, 4, 15, 0), ROUND_ONE)
    assert not scheduler.is_valid_date('not a date', ROUND_ONE)
    assert not scheduler.is_valid_date(None, ROUND_ONE)


def test_unknown_round(scheduler):
    with pytest.raises(InvalidRoundError):
        scheduler.is_valid_date(GROUP_DAY, 'three')
    with pytest.raises(InvalidRoundError):
        scheduler.list_time_slots('three')


def test_time_slots_are_ordered_per_round(scheduler):
    one = scheduler.list_time_slots(ROUND_ONE)
    two = scheduler.list_time_slots(ROUND_TWO)
    assert one[:2] == ('11:05 AM', '11:17 AM')
    assert two[:2] == ('11:05 AM', '11:15 AM')
    assert two[-1] == '4:50 PM'
    assert len(set(one)) == len(one) and len(set(two)) == len(two)


def test_capacities(scheduler):
    assert scheduler.slot_capacity(ROUND_ONE) == 5
    assert scheduler.slot_capacity(ROUND_TWO) == 1


def test_sixth_group_candidate_is_redirected(scheduler, make_application):
    for i in range(6):
        make_application(f"c{i}")
    for i in range(5):
        scheduler.schedule(f"c{i}", "Secretary", ROUND_ONE, GROUP_DAY, '11:05 AM', 'Library', PANEL)

    assert not scheduler.is_slot_available('11:05 AM', GROUP_DAY, ROUND_ONE, "Secretary")
    with pytest.raises(SlotUnavailableError) as exc:
        scheduler.schedule("c5", "Secretary", ROUND_ONE, GROUP_DAY, '11:05 AM', 'Library', PANEL)
    assert exc.value.field == 'slot'
    assert scheduler.get_schedule("c5", "Secretary") is None

    scheduler.schedule("c5", "Secretary", ROUND_ONE, GROUP_DAY, '11:17 AM', 'Library', PANEL)
    assert scheduler.get_schedule("c5", "Secretary")['one']['timeSlot'] == '11:17 AM'


def test_individual_slot_is_single_seat(scheduler, make_application):
    make_application("a")
    make_application("b")
    scheduler.schedule("a", "Treasurer", ROUND_TWO, SOLO_DAY, '3:00 PM', 'Room 12', PANEL)
    with pytest.raises(SlotUnavailableError):
        scheduler.schedule("b", "Treasurer", ROUND_TWO, SOLO_DAY, '3:00 PM', 'Room 12', PANEL)
    # the same candidate can be moved within its own slot
    scheduler.schedule("a", "Treasurer", ROUND_TWO, SOLO_DAY, '3:00 PM', 'Room 14', PANEL)
    assert scheduler.get_schedule("a", "Treasurer")['two']['room'] == 'Room 14'


def test_excluding_candidate_frees_its_own_seat(scheduler, make_application):
    make_application("a")
    scheduler.schedule("a", "Treasurer", ROUND_TWO, SOLO_DAY, '3:10 PM', 'Room 12', PANEL)
    assert not scheduler.is_slot_available('3:10 PM', SOLO_DAY, ROUND_TWO, "Treasurer")
    assert scheduler.is_slot_available('3:10 PM', SOLO_DAY, ROUND_TWO, "Treasurer", exclude_candidate_id="a")


@pytest.mark.parametrize("kwargs,error", [
    ({'date': date(2025, 9, 5)}, InvalidDateError),
    ({'slot': '9:00 AM'}, SlotUnavailableError),
    ({'room': '   '}, MissingRoomError),
    ({'panel_members': ['exec-a']}, PanelTooSmallError),
])
def test_rejections_write_nothing(scheduler, make_application, kwargs, error):
    make_application("a")
    args = dict(date=GROUP_DAY, slot='11:05 AM', room='Library', panel_members=PANEL)
    args.update(kwargs)
    with pytest.raises(error):
        scheduler.schedule("a", "Secretary", ROUND_ONE, **args)
    assert scheduler.get_schedule("a", "Secretary") is None


def test_calendar_edit_does_not_require_panel(scheduler, make_application):
    make_application("a")
    record = scheduler.schedule("a", "Secretary", ROUND_ONE, GROUP_DAY, '11:29 AM', 'Library', [],
                                require_panel=False)
    assert record['one'] == {'date': '2025-09-03', 'timeSlot': '11:29 AM', 'room': 'Library', 'panelMembers': []}


def test_both_rounds_flag_application_and_clearing_unflags(scheduler, make_application, store):
    make_application("a")
    scheduler.schedule("a", "Secretary", ROUND_ONE, GROUP_DAY, '11:05 AM', 'Library', PANEL)
    assert not store.get('applications', 'a').get('interviewScheduled')

    scheduler.schedule("a", "Secretary", ROUND_TWO, SOLO_DAY, '3:00 PM', 'Room 12', ['exec-c', 'exec-d'])
    assert store.get('applications', 'a')['interviewScheduled'] is True

    record = scheduler.clear_round("a", "Secretary", ROUND_ONE)
    assert 'one' not in record
    assert record['two'] == {'date': '2025-09-08', 'timeSlot': '3:00 PM', 'room': 'Room 12',
                             'panelMembers': ['exec-c', 'exec-d']}
    assert store.get('applications', 'a')['interviewScheduled'] is True

    record = scheduler.clear_round("a", "Secretary", ROUND_TWO)
    assert 'one' not in record and 'two' not in record
    assert record['candidateId'] == 'a'
    assert store.get('applications', 'a')['interviewScheduled'] is False


def test_clear_round_without_schedule(scheduler):
    assert scheduler.clear_round("nobody", "Secretary", ROUND_ONE) is None


def test_panel_members_are_deduplicated(scheduler, make_application):
    make_application("a")
    record = scheduler.schedule("a", "Secretary", ROUND_ONE, GROUP_DAY, '11:05 AM', 'Library',
                                ['exec-a', 'exec-a', 'exec-b'])
    assert record['one']['panelMembers'] == ['exec-a', 'exec-b']


def test_capacity_is_counted_per_position(scheduler, make_application):
    make_application("a", position="Secretary")
    make_application("b", position="Treasurer")
    scheduler.schedule("a", "Secretary", ROUND_TWO, SOLO_DAY, '3:00 PM', 'Room 12', PANEL)
    scheduler.schedule("b", "Treasurer", ROUND_TWO, SOLO_DAY, '3:00 PM', 'Room 14', PANEL)
    assert scheduler.count_assignments('3:00 PM', SOLO_DAY, ROUND_TWO, "Secretary") == 1
    assert scheduler.count_assignments('3:00 PM', SOLO_DAY, ROUND_TWO, "Treasurer") == 1
    assert scheduler.is_slot_available('3:00 PM', SOLO_DAY, ROUND_TWO, "President")


def test_list_assignments_in_calendar_order(scheduler, make_application):
    for cid in ("a", "b", "c"):
        make_application(cid)
    scheduler.schedule("a", "Secretary", ROUND_TWO, SOLO_DAY, '3:00 PM', 'Room 12', PANEL)
    scheduler.schedule("b", "Secretary", ROUND_ONE, GROUP_DAY, '11:17 AM', 'Library', PANEL)
    scheduler.schedule("c", "Secretary", ROUND_ONE, GROUP_DAY, '11:05 AM', 'Library', PANEL)

    rows = scheduler.list_assignments(position="Secretary")
    assert [(r['candidateId'], r['round']) for r in rows] == [("c", "one"), ("b", "one"), ("a", "two")]
    assert [r['candidateId'] for r in scheduler.list_assignments(round_=ROUND_TWO)] == ["a"]
    assert [r['candidateId'] for r in scheduler.list_assignments(date='2025-09-03')] == ["c", "b"]


def test_schedule_without_application_writes_nothing(scheduler, store):
    before = {
        'candidateId': 'ghost',
        'positionId': 'Secretary',
        'one': {'date': '2025-09-03', 'timeSlot': '11:05 AM', 'room': 'Library', 'panelMembers': PANEL},
    }
    store.set('scheduledInterviews', 'ghost_Secretary', before)

    with pytest.raises(UnknownCandidateError) as exc:
        scheduler.schedule("ghost", "Secretary", ROUND_TWO, SOLO_DAY, '3:00 PM', 'R1', PANEL)
    assert exc.value.field == 'candidate'
    assert scheduler.get_schedule("ghost", "Secretary") == before

    with pytest.raises(UnknownCandidateError):
        scheduler.clear_round("ghost", "Secretary", ROUND_ONE)
    assert scheduler.get_schedule("ghost", "Secretary") == before


def test_new_candidate_without_application_is_rejected(scheduler):
    with pytest.raises(UnknownCandidateError):
        scheduler.schedule("ghost", "Secretary", ROUND_ONE, GROUP_DAY, '11:05 AM', 'Library', PANEL)
    assert scheduler.get_schedule("ghost", "Secretary") is None


def test_dates_with_trailing_text_are_rejected(scheduler, make_application):
    assert not scheduler.is_valid_date('2025-09-03garbage', ROUND_ONE)
    assert not scheduler.is_valid_date('2025-09-03T10:00', ROUND_ONE)
    assert scheduler.is_valid_date(' 2025-09-03 ', ROUND_ONE)

    make_application("a")
    with pytest.raises(InvalidDateError):
        scheduler.schedule("a", "Secretary", ROUND_ONE, '2025-09-03garbage', '11:05 AM', 'Library', PANEL)


def test_list_assignments_rejects_bad_date(scheduler):
    with pytest.raises(InvalidDateError) as exc:
        scheduler.list_assignments(position="Secretary", date="bad")
    assert exc.value.field == 'date'
