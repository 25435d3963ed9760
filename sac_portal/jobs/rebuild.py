from flask import current_app, has_app_context
from ..services.grading import APPLICATIONS, ScoreAggregator
from ..services.slots import ROUNDS


def _run_rebuild(position: str):
    """Recompute every stored average for one position from its grade sets.

    Repairs application ``score`` fields that drifted from their grade
    aggregates, e.g. after a write failed between the two documents.
    """
    aggregator = ScoreAggregator.from_app()
    summary = {'position': position, 'applications': 0, 'interviews': 0}
    for snap in aggregator.store.query(APPLICATIONS, [('position', '==', position)]):
        if aggregator.recompute_application_average(snap.id) is not None:
            summary['applications'] += 1
        for r in ROUNDS:
            if aggregator.recompute_interview_average(snap.id, r) is not None:
                summary['interviews'] += 1
    current_app.logger.info('rebuilt aggregates: %s', summary)
    return summary


def rebuild_aggregates(position: str):
    """Entrypoint that ensures execution inside a Flask app context for workers."""
    if has_app_context():
        return _run_rebuild(position)
    from sac_portal import create_app
    app = create_app()
    with app.app_context():
        return _run_rebuild(position)
