"""Merges grader submissions into per-candidate aggregates.

Every upsert is a read-modify-write on one aggregate document. Writes go
through compare-and-set, so a grader racing another grader re-reads and
re-merges instead of overwriting the other's submission.
"""
import copy
import numbers

from flask import current_app

from ..errors import ConcurrentUpdateError, DocumentNotFound, ValidationError, VersionConflict
from .questions import draw_questions, load_pools, normalize_checkboxes
from .slots import ROUND_TWO, ROUNDS, check_round
from .store import SERVER_TIMESTAMP, get_store

APPLICATIONS = "applications"
APPLICATION_GRADES = "applicationGrades"
INTERVIEW_GRADES = "interviewGrades"

APPLICATION_MAX_SCORE = 10
PANEL_MAX_SCORE = 5


def mean(values):
    values = list(values)
    return sum(values) / len(values) if values else 0.0


def _is_number(value):
    return isinstance(value, numbers.Real) and not isinstance(value, bool)


def _check_score(value, upper, label):
    if not _is_number(value):
        raise ValidationError(f"{label} must be a number", field="score")
    if value < 0 or value > upper:
        raise ValidationError(f"{label} must be between 0 and {upper}", field="score")
    return float(value)


def executive_total(question_scores, overall_score):
    """Mean of one executive's per-question scores plus their overall impression."""
    return mean(list(question_scores) + [overall_score])


def build_executive_grade(executive_id, executive_name, grades, overall_score, feedback=""):
    if not executive_id:
        raise ValidationError("executive id is required", field="executiveId")
    if grades is None:
        grades = []
    if not isinstance(grades, (list, tuple)):
        raise ValidationError("grades must be a list of question scores", field="grades")
    rows = []
    for g in grades:
        if not isinstance(g, dict) or not g.get('questionId'):
            raise ValidationError("every grade needs a questionId", field="questionId")
        qid = str(g['questionId'])
        max_score = g.get('maxScore', APPLICATION_MAX_SCORE)
        if not _is_number(max_score) or max_score <= 0:
            raise ValidationError(f"maxScore for {qid} must be a positive number", field="maxScore")
        rows.append({
            'questionId': qid,
            'score': _check_score(g.get('score'), max_score, f"score for {qid}"),
            'maxScore': max_score,
        })
    overall = _check_score(overall_score, APPLICATION_MAX_SCORE, "overall impression")
    return {
        'executiveId': executive_id,
        'executiveName': executive_name or "",
        'grades': rows,
        'overallScore': overall,
        'feedback': feedback or "",
        'totalScore': executive_total((r['score'] for r in rows), overall),
        'gradedAt': SERVER_TIMESTAMP,
    }


def build_panel_grade(panel_member_id, panel_member_name, grades, checkboxes=None, feedback=""):
    if not panel_member_id:
        raise ValidationError("panel member id is required", field="panelMemberId")
    if not isinstance(grades, dict):
        raise ValidationError("grades must map question ids to scores", field="grades")
    # a member's mean is over their own scores; no scores, no mean
    if not grades:
        raise ValidationError("score at least one question", field="grades")
    if checkboxes is not None and not isinstance(checkboxes, dict):
        raise ValidationError("checkboxes must map criteria to true/false", field="checkboxes")
    scores = {str(qid): _check_score(v, PANEL_MAX_SCORE, f"score for {qid}")
              for qid, v in grades.items()}
    return {
        'panelMemberId': panel_member_id,
        'panelMemberName': panel_member_name or "",
        'grades': scores,
        'checkboxes': normalize_checkboxes(checkboxes),
        'feedback': feedback or "",
        'submittedAt': SERVER_TIMESTAMP,
    }


def panel_member_mean(grade):
    # 0 is a real score on the 0-5 scale, not "ungraded"
    return mean(_member_scores(grade))


def _member_scores(grade):
    return [v for v in (grade.get('grades') or {}).values() if _is_number(v) and v >= 0]


def interview_average(panel_grades):
    # members with no usable scores have no mean and do not pull the average down
    return mean(panel_member_mean(g) for g in panel_grades if _member_scores(g))


def application_average(executive_grades):
    return mean(g.get('totalScore', 0.0) for g in executive_grades)


def upsert_by(items, key, entry):
    """Replace the entry sharing ``entry[key]`` in place, or append it."""
    out = [dict(i) for i in items]
    for idx, item in enumerate(out):
        if item.get(key) == entry[key]:
            out[idx] = entry
            return out
    out.append(entry)
    return out


def interview_doc_id(candidate_id, round_) -> str:
    return f"{candidate_id}_{round_}"


def total_candidate_score(application, combined_interview):
    """Application score (/10) plus combined interview score (/5): a value out of 15."""
    return float((application or {}).get('score') or 0.0) + float(combined_interview or 0.0)


class ScoreAggregator:

    def __init__(self, store, max_attempts=3, rng=None):
        self.store = store
        self.max_attempts = max(1, int(max_attempts))
        self.rng = rng

    @classmethod
    def from_app(cls):
        return cls(get_store(), current_app.config.get('AGGREGATE_MAX_ATTEMPTS', 3))

    def _read_modify_write(self, collection, doc_id, mutate):
        for attempt in range(1, self.max_attempts + 1):
            current, version = self.store.get_versioned(collection, doc_id)
            updated = mutate(copy.deepcopy(current))
            try:
                self.store.compare_and_set(collection, doc_id, updated, version)
            except VersionConflict as e:
                current_app.logger.warning('%s/%s changed underneath us (attempt %d/%d): %s',
                                           collection, doc_id, attempt, self.max_attempts, e)
                continue
            return self.store.get(collection, doc_id)
        raise ConcurrentUpdateError(f"{collection}/{doc_id}: gave up after {self.max_attempts} attempts")

    # -- application grading

    def get_application_grades(self, application_id):
        return self.store.get(APPLICATION_GRADES, application_id)

    def upsert_executive_grade(self, application_id, grade):
        if self.store.get(APPLICATIONS, application_id) is None:
            raise DocumentNotFound(APPLICATIONS, application_id)
        grade = dict(grade)
        grade['totalScore'] = executive_total((g['score'] for g in grade.get('grades', [])),
                                              grade.get('overallScore', 0.0))

        def mutate(doc):
            doc = doc or {'applicationId': application_id, 'executiveGrades': []}
            doc['executiveGrades'] = upsert_by(doc.get('executiveGrades') or [], 'executiveId', grade)
            doc['averageScore'] = application_average(doc['executiveGrades'])
            doc['updatedAt'] = SERVER_TIMESTAMP
            return doc

        saved = self._read_modify_write(APPLICATION_GRADES, application_id, mutate)
        self.store.update(APPLICATIONS, application_id, {
            'score': saved['averageScore'],
            'updatedAt': SERVER_TIMESTAMP,
        })
        current_app.logger.info('application %s graded by %s: total %.2f, average %.2f',
                                application_id, grade.get('executiveId'), grade['totalScore'],
                                saved['averageScore'])
        return saved

    def recompute_application_average(self, application_id):
        if self.store.get(APPLICATION_GRADES, application_id) is None:
            return None

        def mutate(doc):
            grades = []
            for g in doc.get('executiveGrades') or []:
                g = dict(g)
                g['totalScore'] = executive_total((q['score'] for q in g.get('grades', [])),
                                                  g.get('overallScore', 0.0))
                grades.append(g)
            doc['executiveGrades'] = grades
            doc['averageScore'] = application_average(grades)
            doc['updatedAt'] = SERVER_TIMESTAMP
            return doc

        saved = self._read_modify_write(APPLICATION_GRADES, application_id, mutate)
        self.store.update(APPLICATIONS, application_id, {'score': saved['averageScore']})
        return saved

    # -- interview grading

    def get_interview_grades(self, candidate_id, round_):
        return self.store.get(INTERVIEW_GRADES, interview_doc_id(candidate_id, check_round(round_)))

    def ensure_master_questions(self, candidate_id):
        """Return the candidate's round-two questions, drawing and freezing them on first use."""
        doc_id = interview_doc_id(candidate_id, ROUND_TWO)
        for _ in range(self.max_attempts):
            current, version = self.store.get_versioned(INTERVIEW_GRADES, doc_id)
            if current and current.get('masterQuestions'):
                return current['masterQuestions']
            questions = draw_questions(load_pools(self.store), self.rng)
            doc = current or {
                'candidateId': candidate_id,
                'round': ROUND_TWO,
                'panelGrades': [],
                'averageScore': 0.0,
            }
            doc['masterQuestions'] = questions
            try:
                self.store.compare_and_set(INTERVIEW_GRADES, doc_id, doc, version)
            except VersionConflict:
                # another panelist froze a set first; read theirs
                continue
            current_app.logger.info('froze round-two questions for %s: %s',
                                    candidate_id, [q['id'] for q in questions])
            return questions
        raise ConcurrentUpdateError(f"{INTERVIEW_GRADES}/{doc_id}: could not freeze questions")

    def upsert_panel_grade(self, candidate_id, round_, grade):
        check_round(round_)
        if round_ == ROUND_TWO:
            self.ensure_master_questions(candidate_id)
        grade = dict(grade)

        def mutate(doc):
            doc = doc or {'candidateId': candidate_id, 'round': round_, 'panelGrades': []}
            doc['panelGrades'] = upsert_by(doc.get('panelGrades') or [], 'panelMemberId', grade)
            doc['averageScore'] = interview_average(doc['panelGrades'])
            doc['updatedAt'] = SERVER_TIMESTAMP
            return doc

        saved = self._read_modify_write(INTERVIEW_GRADES, interview_doc_id(candidate_id, round_), mutate)
        current_app.logger.info('round %s for %s graded by %s: average %.2f',
                                round_, candidate_id, grade.get('panelMemberId'), saved['averageScore'])
        return saved

    def recompute_interview_average(self, candidate_id, round_):
        doc_id = interview_doc_id(candidate_id, check_round(round_))
        if self.store.get(INTERVIEW_GRADES, doc_id) is None:
            return None

        def mutate(doc):
            doc['averageScore'] = interview_average(doc.get('panelGrades') or [])
            doc['updatedAt'] = SERVER_TIMESTAMP
            return doc

        return self._read_modify_write(INTERVIEW_GRADES, doc_id, mutate)

    # -- totals

    def combined_interview_score(self, candidate_id):
        averages = []
        for r in ROUNDS:
            doc = self.get_interview_grades(candidate_id, r)
            if doc and any(_member_scores(g) for g in doc.get('panelGrades') or []):
                averages.append(float(doc.get('averageScore') or 0.0))
        return mean(averages)

    def rank_candidates(self, position):
        """Non-draft applications for a position by total score, ties left in document order."""
        rows = []
        for snap in self.store.query(APPLICATIONS, [('position', '==', position)]):
            app = snap.data
            if app.get('status') == 'draft':
                continue
            combined = self.combined_interview_score(snap.id)
            rows.append({
                'applicationId': snap.id,
                'fullName': (app.get('userProfile') or {}).get('fullName', ''),
                'status': app.get('status'),
                'interviewScheduled': bool(app.get('interviewScheduled')),
                'applicationScore': float(app.get('score') or 0.0),
                'interviewScore': combined,
                'totalScore': total_candidate_score(app, combined),
            })
        rows.sort(key=lambda r: r['totalScore'], reverse=True)
        return rows
