"""Print what the document store currently holds for one position.

Usage:
  python scripts/db_inspect.py "Secretary"
"""
import os, sys

ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from sac_portal import create_app
from sac_portal.services.grading import ScoreAggregator
from sac_portal.services.scheduler import SlotScheduler
from sac_portal.services.store import get_store

COLLECTIONS = ('applications', 'applicationGrades', 'scheduledInterviews', 'interviewGrades', 'settings')


def inspect(position):
    store = get_store()
    for name in COLLECTIONS:
        print(f"{name}: {len(store.query(name))} documents")
    print(f"\n=== schedule: {position} ===")
    for row in SlotScheduler.from_app().list_assignments(position=position):
        print(f"  {row['date']} {row['timeSlot']:>9} round {row['round']}  {row['candidateId']}  "
              f"room={row['room']} panel={','.join(row['panelMembers'])}")
    print(f"\n=== ranking: {position} ===")
    for i, row in enumerate(ScoreAggregator.from_app().rank_candidates(position), start=1):
        print(f"  {i:>2}. {row['fullName'] or row['applicationId']:<30} "
              f"app={row['applicationScore']:.2f} interview={row['interviewScore']:.2f} "
              f"total={row['totalScore']:.2f}/15")


if __name__ == '__main__':
    if len(sys.argv) < 2:
        print(__doc__)
        sys.exit(1)
    app = create_app()
    with app.app_context():
        inspect(sys.argv[1])
    print('\nDone.')
