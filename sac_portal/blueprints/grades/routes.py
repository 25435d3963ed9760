import csv
from io import BytesIO, StringIO

from flask import jsonify, request, send_file
from flask_login import current_user, login_required
from . import bp
from ...extensions import rq
from ...jobs.rebuild import rebuild_aggregates
from ...roles import can_grade_applications, can_grade_interviews, can_schedule
from ...services.grading import ScoreAggregator, build_executive_grade, build_panel_grade
from ...services.questions import ASSESSMENT_CRITERIA
from ...services.slots import check_round
from ...utils.decorators import role_required

RANKING_COLUMNS = ['applicationId', 'fullName', 'status', 'applicationScore', 'interviewScore', 'totalScore']


def _body():
    return request.get_json(silent=True) or {}


@bp.get("/applications/<application_id>")
@login_required
@role_required(can_grade_applications)
def application_grades(application_id):
    doc = ScoreAggregator.from_app().get_application_grades(application_id)
    if doc is None:
        return jsonify({"applicationId": application_id, "executiveGrades": [], "averageScore": None})
    return jsonify(doc)


@bp.post("/applications/<application_id>")
@login_required
@role_required(can_grade_applications)
def grade_application(application_id):
    body = _body()
    grade = build_executive_grade(
        current_user.uid,
        current_user.name or current_user.email,
        body.get("grades") or [],
        body.get("overallScore"),
        feedback=body.get("feedback", ""),
    )
    saved = ScoreAggregator.from_app().upsert_executive_grade(application_id, grade)
    return jsonify(saved)


@bp.get("/interviews/<candidate_id>/questions")
@login_required
@role_required(can_grade_interviews)
def master_questions(candidate_id):
    questions = ScoreAggregator.from_app().ensure_master_questions(candidate_id)
    return jsonify({"candidateId": candidate_id, "questions": questions, "criteria": ASSESSMENT_CRITERIA})


@bp.get("/interviews/<candidate_id>/<round_>")
@login_required
@role_required(can_grade_interviews)
def interview_grades(candidate_id, round_):
    doc = ScoreAggregator.from_app().get_interview_grades(candidate_id, round_)
    if doc is None:
        return jsonify({"candidateId": candidate_id, "round": round_, "panelGrades": [], "averageScore": None})
    return jsonify(doc)


@bp.post("/interviews/<candidate_id>/<round_>")
@login_required
@role_required(can_grade_interviews)
def grade_interview(candidate_id, round_):
    check_round(round_)
    body = _body()
    grade = build_panel_grade(
        current_user.uid,
        current_user.name or current_user.email,
        body.get("grades") or {},
        checkboxes=body.get("checkboxes"),
        feedback=body.get("feedback", ""),
    )
    saved = ScoreAggregator.from_app().upsert_panel_grade(candidate_id, round_, grade)
    return jsonify(saved)


@bp.get("/rankings/<position>")
@login_required
@role_required(can_grade_applications)
def rankings(position):
    rows = ScoreAggregator.from_app().rank_candidates(position)
    if request.args.get("format") != "csv":
        return jsonify({"position": position, "items": rows})

    buf = StringIO()
    writer = csv.DictWriter(buf, fieldnames=RANKING_COLUMNS, extrasaction='ignore')
    writer.writeheader()
    for r in rows:
        writer.writerow({**r, 'applicationScore': f"{r['applicationScore']:.2f}",
                         'interviewScore': f"{r['interviewScore']:.2f}",
                         'totalScore': f"{r['totalScore']:.2f}"})
    return send_file(BytesIO(buf.getvalue().encode('utf-8')), as_attachment=True,
                     download_name=f"rankings_{position}.csv", mimetype="text/csv")


@bp.post("/rebuild/<position>")
@login_required
@role_required(can_schedule)
def rebuild(position):
    job = rq.enqueue(rebuild_aggregates, position)
    # inline fallback returns the summary directly
    if isinstance(job, dict):
        return jsonify({"status": "done", "summary": job})
    return jsonify({"status": "queued", "job_id": getattr(job, 'id', None)}), 202
