from flask import current_app

from ..errors import (InvalidDateError, MissingRoomError, PanelTooSmallError,
                      SlotUnavailableError, UnknownCandidateError)
from .slots import (ELIGIBLE_DATES, ROUND_ONE, ROUND_TWO, ROUND_TWO_CAPACITY, ROUNDS,
                    TIME_SLOTS, check_round, coerce_date)
from .store import DELETE, SERVER_TIMESTAMP, get_store

SCHEDULE_COLLECTION = "scheduledInterviews"
APPLICATION_COLLECTION = "applications"
ROUND_FIELDS = ("date", "timeSlot", "room", "panelMembers")
MIN_PANEL_SIZE = 2


def record_key(candidate_id, position_id) -> str:
    return f"{candidate_id}_{position_id}"


def is_round_scheduled(record, round_) -> bool:
    block = (record or {}).get(round_)
    return isinstance(block, dict) and all(f in block for f in ROUND_FIELDS)


class SlotScheduler:
    """Assigns candidates to (date, time slot, room, panel) for each round."""

    def __init__(self, store, round_one_capacity=5):
        self.store = store
        self.round_one_capacity = int(round_one_capacity)

    @classmethod
    def from_app(cls):
        return cls(get_store(), current_app.config.get('ROUND_ONE_CAPACITY', 5))

    def is_valid_date(self, value, round_) -> bool:
        check_round(round_)
        try:
            d = coerce_date(value)
        except (TypeError, ValueError):
            return False
        return d in ELIGIBLE_DATES[round_]

    def list_time_slots(self, round_):
        return TIME_SLOTS[check_round(round_)]

    def slot_capacity(self, round_) -> int:
        if check_round(round_) == ROUND_TWO:
            return ROUND_TWO_CAPACITY
        return self.round_one_capacity

    def count_assignments(self, slot, date, round_, position, exclude_candidate_id=None) -> int:
        """Seats taken in one slot. Capacity is per position: each position runs its own panels."""
        check_round(round_)
        filters = [
            ("positionId", "==", position),
            (f"{round_}.date", "==", coerce_date(date).isoformat()),
            (f"{round_}.timeSlot", "==", slot),
        ]
        snaps = self.store.query(SCHEDULE_COLLECTION, filters)
        return sum(1 for s in snaps if s.data.get('candidateId') != exclude_candidate_id)

    def is_slot_available(self, slot, date, round_, position, exclude_candidate_id=None) -> bool:
        taken = self.count_assignments(slot, date, round_, position,
                                       exclude_candidate_id=exclude_candidate_id)
        return taken < self.slot_capacity(round_)

    def _reject(self, exc):
        current_app.logger.warning('schedule rejected (%s): %s', exc.field, exc)
        raise exc

    def schedule(self, candidate_id, position_id, round_, date, slot, room, panel_members,
                 require_panel=True):
        """Assign one round for a candidate; every precondition is checked before writing.

        ``require_panel`` is on for the full scheduler flow and off for
        calendar edits, which may leave the panel to be filled in later.
        """
        check_round(round_)
        if not self.is_valid_date(date, round_):
            self._reject(InvalidDateError(f"{date} is not an interview date for round {round_}"))
        d = coerce_date(date)
        if slot not in self.list_time_slots(round_):
            self._reject(SlotUnavailableError(f"{slot!r} is not a round {round_} time slot"))
        room = (room or "").strip()
        if not room:
            self._reject(MissingRoomError("a room is required"))
        panel = list(dict.fromkeys(p for p in (panel_members or []) if p))
        if require_panel and len(panel) < MIN_PANEL_SIZE:
            self._reject(PanelTooSmallError(f"at least {MIN_PANEL_SIZE} panel members are required"))
        if not self.is_slot_available(slot, d, round_, position_id, exclude_candidate_id=candidate_id):
            self._reject(SlotUnavailableError(f"{slot} on {d.isoformat()} is full"))
        self._require_application(candidate_id)

        key = record_key(candidate_id, position_id)
        self.store.set(SCHEDULE_COLLECTION, key, {
            'candidateId': candidate_id,
            'positionId': position_id,
            round_: {
                'date': d.isoformat(),
                'timeSlot': slot,
                'room': room,
                'panelMembers': panel,
            },
            'updatedAt': SERVER_TIMESTAMP,
        }, merge=True)
        current_app.logger.info('scheduled %s round %s at %s %s (%s)', key, round_, d.isoformat(), slot, room)

        record = self.store.get(SCHEDULE_COLLECTION, key)
        if all(is_round_scheduled(record, r) for r in ROUNDS):
            self._flag_application(candidate_id, True)
        return record

    def clear_round(self, candidate_id, position_id, round_):
        check_round(round_)
        key = record_key(candidate_id, position_id)
        if self.store.get(SCHEDULE_COLLECTION, key) is None:
            current_app.logger.info('clear_round: no schedule for %s', key)
            return None
        self._require_application(candidate_id)
        self.store.update(SCHEDULE_COLLECTION, key, {round_: DELETE, 'updatedAt': SERVER_TIMESTAMP})
        record = self.store.get(SCHEDULE_COLLECTION, key)
        if not any(is_round_scheduled(record, r) for r in ROUNDS):
            self._flag_application(candidate_id, False)
        current_app.logger.info('cleared round %s for %s', round_, key)
        return record

    def _require_application(self, candidate_id):
        # the flag write below needs the application; fail before touching the schedule
        if self.store.get(APPLICATION_COLLECTION, candidate_id) is None:
            self._reject(UnknownCandidateError(f"no application for candidate {candidate_id!r}"))

    def _flag_application(self, candidate_id, scheduled):
        self.store.update(APPLICATION_COLLECTION, candidate_id, {
            'interviewScheduled': scheduled,
            'updatedAt': SERVER_TIMESTAMP,
        })

    def get_schedule(self, candidate_id, position_id):
        return self.store.get(SCHEDULE_COLLECTION, record_key(candidate_id, position_id))

    def list_assignments(self, position=None, round_=None, date=None):
        """Flatten schedule records into one row per scheduled round, in calendar order."""
        rounds = (check_round(round_),) if round_ else ROUNDS
        filters = [("positionId", "==", position)] if position is not None else []
        day = None
        if date is not None:
            try:
                day = coerce_date(date).isoformat()
            except (TypeError, ValueError):
                raise InvalidDateError(f"{date!r} is not a date") from None
        rows = []
        for snap in self.store.query(SCHEDULE_COLLECTION, filters):
            for r in rounds:
                if not is_round_scheduled(snap.data, r):
                    continue
                block = snap.data[r]
                if day and block['date'] != day:
                    continue
                rows.append({
                    'candidateId': snap.data.get('candidateId'),
                    'positionId': snap.data.get('positionId'),
                    'round': r,
                    **{f: block[f] for f in ROUND_FIELDS},
                })
        slot_order = {r: {s: i for i, s in enumerate(TIME_SLOTS[r])} for r in ROUNDS}
        rows.sort(key=lambda row: (row['date'], slot_order[row['round']].get(row['timeSlot'], 0),
                                   row['round'] != ROUND_ONE))
        return rows
