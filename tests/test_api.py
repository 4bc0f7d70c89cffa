from datetime import datetime, timedelta, timezone

from actionscore.engine.recurrence import weekday_index

# Tasks created through the API start existing today, in UTC
TODAY = datetime.now(timezone.utc).date()
DAY = TODAY.isoformat()
NEXT_DAY = (TODAY + timedelta(days=1)).isoformat()


def create_pillar(client, headers, name="Body", weight=100):
    r = client.post("/api/v1/pillars", json={"name": name, "weight": weight}, headers=headers)
    assert r.status_code == 200
    return r.json()


def create_task(client, headers, **fields):
    r = client.post("/api/v1/tasks", json=fields, headers=headers)
    assert r.status_code == 200, r.text
    return r.json()


def test_health_check(client):
    r = client.get("/api/v1/health-check")
    assert r.status_code == 200
    assert r.json()["status"] == "ok"


def test_requires_token(client):
    r = client.get("/api/v1/daily-score", params={"date": "2024-01-01"})
    assert r.status_code == 401


def test_complete_and_score(client, auth_headers):
    pillar = create_pillar(client, auth_headers)
    task = create_task(client, auth_headers, name="Stretch", pillar_id=pillar["id"])

    r = client.post("/api/v1/tasks/complete", json={"task_id": task["id"], "date": DAY, "completed": True},
                    headers=auth_headers)
    assert r.status_code == 200
    assert r.json()["daily_score"]["score_tier"] == "LEGENDARY"

    r = client.get("/api/v1/daily-score", params={"date": DAY}, headers=auth_headers)
    assert r.json()["action_score"] == 100

    r = client.post("/api/v1/tasks/complete/undo", json={"task_id": task["id"], "date": DAY},
                    headers=auth_headers)
    assert r.json()["daily_score"]["action_score"] == 0

    r = client.get("/api/v1/daily-score/history", params={"start": DAY, "end": DAY},
                   headers=auth_headers)
    assert [d["date"] for d in r.json()] == [DAY]


def test_two_weighted_pillars(client, auth_headers):
    a = create_pillar(client, auth_headers, "Mind", 60)
    b = create_pillar(client, auth_headers, "Body", 40)
    reading = create_task(client, auth_headers, name="Read", pillar_id=a["id"], completion_type="count", target=10)
    walk = create_task(client, auth_headers, name="Walk", pillar_id=b["id"])

    client.post("/api/v1/tasks/complete", json={"task_id": reading["id"], "date": DAY, "value": 5},
                headers=auth_headers)
    r = client.post("/api/v1/tasks/complete", json={"task_id": walk["id"], "date": DAY, "completed": True},
                    headers=auth_headers)
    score = r.json()["daily_score"]
    assert score["action_score"] == 70.0
    assert score["score_tier"] == "Good"


def test_due_tasks_and_close_day(client, auth_headers):
    task = create_task(client, auth_headers, name="Plan week", frequency="weekly", weekly_day=weekday_index(TODAY))

    due = client.get("/api/v1/tasks/due", params={"date": DAY}, headers=auth_headers).json()
    assert [d["task"]["id"] for d in due] == [task["id"]]
    assert client.get("/api/v1/tasks/due", params={"date": NEXT_DAY}, headers=auth_headers).json() == []

    client.post("/api/v1/tasks/complete", json={"task_id": task["id"], "date": DAY}, headers=auth_headers)
    r = client.post("/api/v1/days/close", json={"date": DAY}, headers=auth_headers)
    assert r.status_code == 200
    assert r.json()["total_xp"] == 100
    assert r.json()["current_streak"] == 1

    stats = client.get("/api/v1/user-stats", headers=auth_headers).json()
    assert stats["level_info"]["level"] == 2

    r = client.post("/api/v1/tasks/complete", json={"task_id": task["id"], "date": DAY}, headers=auth_headers)
    assert r.status_code == 400


def test_errors_map_to_status_codes(client, auth_headers):
    r = client.get("/api/v1/daily-score", params={"date": "not-a-date"}, headers=auth_headers)
    assert r.status_code == 400
    assert "YYYY-MM-DD" in r.json()["detail"]

    r = client.get("/api/v1/tasks/42", headers=auth_headers)
    assert r.status_code == 404

    r = client.post("/api/v1/tasks", json={"name": "Run", "completion_type": "teleport"}, headers=auth_headers)
    assert r.status_code == 400


def test_cycle_flow(client, auth_headers):
    cycle = client.post("/api/v1/cycles", json={"name": "Q1", "start_date": "2024-01-01"}, headers=auth_headers).json()
    assert cycle["end_date"] == "2024-03-24"

    goal = client.post(f"/api/v1/cycles/{cycle['id']}/goals", json={"name": "Workouts", "target_value": 84},
                       headers=auth_headers).json()
    assert len(goal["weekly_targets"]) == 12

    r = client.put(
        f"/api/v1/cycles/{cycle['id']}/weekly/5",
        json={"overrides": [{"goal_id": goal["id"], "target_value": 14}],
              "actuals": [{"goal_id": goal["id"], "actual_value": 16}],
              "notes": "strong week"},
        headers=auth_headers,
    )
    assert r.status_code == 200
    week5 = [t for t in r.json()["weekly_targets"] if t["week_number"] == 5][0]
    assert week5["target_value"] == 14
    assert week5["score"] == "exceeded"

    targets = client.post(f"/api/v1/cycles/goals/{goal['id']}/distribute", headers=auth_headers).json()
    assert [t["target_value"] for t in targets if t["week_number"] != 5] == [7] * 11

    analytics = client.get(f"/api/v1/cycles/{cycle['id']}/analytics", params={"today": "2024-02-05"},
                           headers=auth_headers).json()
    assert analytics["current_week"] == 6
    assert analytics["total_reviewed_weeks"] == 1
    assert analytics["consistent_weeks"] == 1

    r = client.put(f"/api/v1/cycles/{cycle['id']}/weekly/20", json={}, headers=auth_headers)
    assert r.status_code == 400


def test_analytics_over_supplied_rows(client, auth_headers):
    body = {
        "goals": [{"id": 1, "name": "Pages", "target_value": 0, "current_value": 0}],
        "weekly_targets": [],
        "current_week": 1,
        "total_weeks": 12,
    }
    r = client.post("/api/v1/analytics/cycle", json=body, headers=auth_headers)
    assert r.status_code == 200
    assert r.json()["overall_completion"] == 100.0


def test_settings_round_trip(client, auth_headers):
    assert client.get("/api/v1/settings", headers=auth_headers).json()["weekday_pass_threshold"] == 70
    r = client.put("/api/v1/settings", json={"weekday_pass_threshold": 80}, headers=auth_headers)
    assert r.json()["weekday_pass_threshold"] == 80


def test_report_run_requires_cron_secret(client, auth_headers):
    assert client.post("/api/v1/reports/run", params={"type": "weekly"}, headers=auth_headers).status_code == 401
    r = client.post("/api/v1/reports/run", params={"type": "weekly"},
                    headers={"Authorization": "Bearer test-cron-secret"})
    assert r.status_code == 200
    assert r.json()["type"] == "weekly"
    assert client.get("/api/v1/reports", headers=auth_headers).json() == []
