"""Demo: import two progress reports and read the analytics back.

Run with:
    python scripts/demo_import_flow.py
"""

from __future__ import annotations

from fastapi.testclient import TestClient

from dashboard.main import app


def _row(user_id: int, first: str, course: str, completion: float) -> dict:
    return {
        "User ID": user_id,
        "User First Name": first,
        "User Last Name": "Demo",
        "User Email": f"{first.lower()}@example.com",
        "District": "North",
        "Curriculum Title (Transcript)": course,
        "Transcript Status Group": "Completed" if completion >= 100 else "In Progress",
        "Curriculum Completion Percentage": completion,
    }


SEPTEMBER = [
    _row(1, "Alice", "Math", 40),
    _row(2, "Bob", "Math", 100),
    _row(3, "Cy", "Math", 30),
    _row(3, "Cy", "Art", 0),
]
OCTOBER = [
    _row(1, "Alice", "Math", 60),
    _row(2, "Bob", "Math", 100),
    _row(3, "Cy", "Math", 10),
    _row(3, "Cy", "Art", 0),
]


def main() -> None:
    client = TestClient(app)

    # ── Step 1: import both reports ─────────────────────────────────
    r = client.post(
        "/v1/snapshots",
        json={
            "reports": [
                {"name": "september.xlsx", "rows": SEPTEMBER},
                {"name": "october.xlsx", "rows": OCTOBER},
            ]
        },
    )
    print(f"1. POST /v1/snapshots        → {r.status_code}  {r.json()['message']}")

    # ── Step 2: analytics ───────────────────────────────────────────
    r = client.get("/v1/analytics")
    body = r.json()
    print(f"2. GET  /v1/analytics        → {r.status_code}")
    print(f"     learners={body['totalLearners']}  avg={body['averageCompletion']}%")
    for key in ("improvedList", "supportList", "finishedStudents", "failedStudents"):
        names = ", ".join(l["name"] for l in body[key]) or "-"
        print(f"     {key:<17} {names}")

    # ── Step 3: CSV export ──────────────────────────────────────────
    r = client.get("/v1/analytics/export", params={"list": "total", "mode": "detailed"})
    print(f"3. GET  /v1/analytics/export → {r.status_code}")
    print(r.text)

    # ── Step 4: drop the first report ───────────────────────────────
    r = client.delete("/v1/snapshots/0")
    remaining = [s["name"] for s in r.json()]
    print(f"4. DELETE /v1/snapshots/0    → {r.status_code}  remaining={remaining}")
    body = client.get("/v1/analytics").json()
    print(f"     improved after delete: {body['improvedLearners']}")


if __name__ == "__main__":
    main()
