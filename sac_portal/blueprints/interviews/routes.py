from flask import jsonify, request
from flask_login import login_required
from . import bp
from .forms import ScheduleForm
from ...roles import can_schedule
from ...services.scheduler import SlotScheduler
from ...services.slots import ROUND_LABELS, check_round, eligible_dates
from ...utils.decorators import role_required


@bp.get("/slots/<round_>")
@login_required
def list_slots(round_):
    check_round(round_)
    scheduler = SlotScheduler.from_app()
    return jsonify({
        "round": round_,
        "label": ROUND_LABELS[round_],
        "capacity": scheduler.slot_capacity(round_),
        "dates": [d.isoformat() for d in eligible_dates(round_)],
        "slots": list(scheduler.list_time_slots(round_)),
    })


@bp.get("/slots/<round_>/availability")
@login_required
def slot_availability(round_):
    check_round(round_)
    scheduler = SlotScheduler.from_app()
    day = request.args.get("date", "")
    if not scheduler.is_valid_date(day, round_):
        return jsonify({"error": f"{day or 'no date'} is not an interview date", "field": "date"}), 400
    # seats are counted per position, same as schedule()
    position = (request.args.get("position") or "").strip()
    if not position:
        return jsonify({"error": "position is required", "field": "position"}), 400
    capacity = scheduler.slot_capacity(round_)
    exclude = request.args.get("exclude")
    seats = {}
    for slot in scheduler.list_time_slots(round_):
        taken = scheduler.count_assignments(slot, day, round_, position, exclude_candidate_id=exclude)
        seats[slot] = max(0, capacity - taken)
    return jsonify({"round": round_, "position": position, "date": day,
                    "capacity": capacity, "remaining": seats})


@bp.get("/<position>")
@login_required
@role_required(can_schedule)
def list_assignments(position):
    scheduler = SlotScheduler.from_app()
    rows = scheduler.list_assignments(position=position,
                                      round_=request.args.get("round") or None,
                                      date=request.args.get("date") or None)
    return jsonify({"position": position, "items": rows})


@bp.get("/<position>/<candidate_id>")
@login_required
@role_required(can_schedule)
def get_schedule(position, candidate_id):
    record = SlotScheduler.from_app().get_schedule(candidate_id, position)
    if record is None:
        return jsonify({"error": "not scheduled"}), 404
    return jsonify(record)


@bp.post("/<position>/<candidate_id>/<round_>")
@login_required
@role_required(can_schedule)
def schedule_round(position, candidate_id, round_):
    form = ScheduleForm()
    if not form.validate_on_submit():
        return jsonify({"error": "invalid form", "fields": form.errors}), 400
    body = request.get_json(silent=True) or {}
    # calendar edits may adjust time and room without a full panel
    require_panel = request.args.get("mode", "scheduler") != "calendar"
    record = SlotScheduler.from_app().schedule(
        candidate_id, position, round_,
        date=form.date.data,
        slot=form.time_slot.data,
        room=form.room.data,
        panel_members=body.get("panel_members") or [],
        require_panel=require_panel,
    )
    return jsonify(record), 201


@bp.delete("/<position>/<candidate_id>/<round_>")
@login_required
@role_required(can_schedule)
def clear_round(position, candidate_id, round_):
    record = SlotScheduler.from_app().clear_round(candidate_id, position, round_)
    if record is None:
        return jsonify({"error": "not scheduled"}), 404
    return jsonify(record)
