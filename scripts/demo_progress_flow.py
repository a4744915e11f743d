"""Demo: walk a learner through a course and print the dashboard.

Run with:
    python scripts/demo_progress_flow.py
"""

from __future__ import annotations

from fastapi.testclient import TestClient

from learning_progress.main import app
from learning_progress.services.token_service import create_access_token

COURSE_ID = "aiml-engineering"


def main() -> None:
    client = TestClient(app)
    learner = {"Authorization": f"Bearer {create_access_token(sub='demo-learner')}"}
    admin = {
        "Authorization": f"Bearer {create_access_token(sub='demo-admin', roles=['admin'])}"
    }

    # ── Step 1: empty dashboard ─────────────────────────────────────
    r = client.get(f"/v1/dashboard/{COURSE_ID}", headers=learner)
    print(f"1. GET  dashboard          → {r.status_code}  overall={r.json()['overall_progress']}%")

    # ── Step 2: finish the Python module ────────────────────────────
    for n in range(1, 5):
        r = client.put(
            "/v1/progress/lessons",
            json={
                "course_id": COURSE_ID,
                "module_id": "aiml-python",
                "lesson_id": f"aiml-python-l{n}",
            },
            headers=learner,
        )
    print(f"2. PUT  4 lessons          → {r.status_code}")

    # ── Step 3: one lesson into Machine Learning ────────────────────
    r = client.put(
        "/v1/progress/lessons",
        json={"course_id": COURSE_ID, "module_id": "aiml-ml", "lesson_id": "aiml-ml-l1"},
        headers=learner,
    )
    print(f"3. PUT  aiml-ml-l1         → {r.status_code}")

    # ── Step 4: a few activity ticks ────────────────────────────────
    for _ in range(4):
        r = client.post("/v1/activity/ticks", json={"seconds": 30}, headers=learner)
    print(f"4. POST 4 ticks of 30s     → {r.status_code}")

    # ── Step 5: dashboard again ─────────────────────────────────────
    dashboard = client.get(f"/v1/dashboard/{COURSE_ID}", headers=learner).json()
    print(
        f"5. GET  dashboard          → overall={dashboard['overall_progress']}% "
        f"modules={dashboard['modules_completed']}/{dashboard['total_modules']}"
    )
    for point in dashboard["progress"]:
        print(f"     {point['name']:<18} {point['progress']:>3}%")
    for slice_ in dashboard["completion"]:
        print(f"     {slice_['name']:<18} {slice_['value']:>3}%  {slice_['color']}")

    # ── Step 6: activity summary ────────────────────────────────────
    summary = client.get("/v1/activity/summary", headers=learner).json()
    print(f"6. GET  summary            → today={summary['today']} 7d={summary['last_7_days']}")

    # ── Step 7: admin user list ─────────────────────────────────────
    for row in client.get("/v1/admin/users/activity", headers=admin).json():
        print(f"7. admin: {row['user_id']:<14} {row['activity']}")


if __name__ == "__main__":
    main()
