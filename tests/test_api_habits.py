from habit_engine.settings import settings


def test_requires_user_id(client):
    resp = client.get("/habits")
    assert resp.status_code == 401


def test_api_key_enforced(client, user_headers, monkeypatch):
    monkeypatch.setattr(settings, "API_KEY", "secret")
    assert client.get("/habits", headers=user_headers).status_code == 401
    resp = client.get("/habits", headers={**user_headers, "X-API-Key": "secret"})
    assert resp.status_code == 200


def test_health_reports_cache_backend(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json() == {"ok": True, "cache": "memory"}


def test_create_complete_and_list(client, user_headers):
    resp = client.post("/habits", json={"title": "Beber 2L de água", "emoji": "💧", "color": "blue"}, headers=user_headers)
    assert resp.status_code == 200
    body = resp.json()
    habit_id = body["habit"]["id"]
    assert body["unlocked_achievements"] == ["first_habit"]

    resp = client.post(f"/habits/{habit_id}/complete", headers=user_headers)
    assert resp.status_code == 200
    data = resp.json()
    assert data["changed"] is True
    assert data["stats"]["xp"] == settings.XP_PER_COMPLETION
    assert data["stats"]["current_streak"] == 1
    assert data["stats"]["xp_to_next_level"] == settings.XP_PER_LEVEL - settings.XP_PER_COMPLETION

    resp = client.post(f"/habits/{habit_id}/complete", headers=user_headers)
    assert resp.json()["already_completed"] is True

    habits = client.get("/habits", headers=user_headers).json()
    assert len(habits) == 1
    assert habits[0]["completed_today"] is True
    assert habits[0]["streak"] == 1

    week = client.get("/habits/week-stats", headers=user_headers).json()
    assert week == {"completed": 1, "total": 7}


def test_uncomplete_and_stats(client, user_headers):
    habit_id = client.post("/habits", json={"title": "Alongamento"}, headers=user_headers).json()["habit"]["id"]
    client.post(f"/habits/{habit_id}/complete", headers=user_headers)

    resp = client.delete(f"/habits/{habit_id}/complete", headers=user_headers)
    assert resp.status_code == 200
    assert resp.json()["stats"]["xp"] == 0

    stats = client.get("/stats", headers=user_headers).json()
    assert stats["xp"] == 0
    assert stats["level"] == 1
    assert stats["total_completions"] == 0


def test_stats_default_for_new_user(client, user_headers):
    stats = client.get("/stats", headers=user_headers).json()
    assert stats["xp"] == 0
    assert stats["level"] == 1
    assert stats["current_streak"] == 0
    assert stats["longest_streak"] == 0
    assert stats["last_activity_date"] is None


def test_habit_limit_returns_400(client, user_headers):
    for i in range(settings.MAX_HABITS):
        assert client.post("/habits", json={"title": f"H{i}"}, headers=user_headers).status_code == 200
    resp = client.post("/habits", json={"title": "One too many"}, headers=user_headers)
    assert resp.status_code == 400
    assert len(client.get("/habits", headers=user_headers).json()) == settings.MAX_HABITS


def test_title_validation(client, user_headers):
    assert client.post("/habits", json={"title": "x" * 51}, headers=user_headers).status_code == 422
    assert client.post("/habits", json={"title": "   "}, headers=user_headers).status_code == 422


def test_other_user_cannot_touch_habit(client, user_headers):
    habit_id = client.post("/habits", json={"title": "Meu hábito"}, headers=user_headers).json()["habit"]["id"]
    other = {"X-User-Id": "mae-2"}

    assert client.post(f"/habits/{habit_id}/complete", headers=other).status_code == 404
    assert client.delete(f"/habits/{habit_id}", headers=other).status_code == 404
    assert client.delete(f"/habits/{habit_id}", headers=user_headers).status_code == 200
    assert client.get("/habits", headers=user_headers).json() == []


def test_achievements_listing(client, user_headers):
    client.post("/habits", json={"title": "Leitura"}, headers=user_headers)
    achievements = client.get("/achievements", headers=user_headers).json()
    by_id = {a["id"]: a for a in achievements}
    assert by_id["first_habit"]["unlocked"] is True
    assert by_id["streak_30"]["unlocked"] is False


def test_history_validation(client, user_headers):
    resp = client.get(
        "/habits/history",
        params={"start_date": "2024-03-10", "end_date": "2024-03-01"},
        headers=user_headers,
    )
    assert resp.status_code == 400

    resp = client.get(
        "/habits/history",
        params={"start_date": "2024-03-01", "end_date": "2024-03-10"},
        headers=user_headers,
    )
    assert resp.status_code == 200
    assert resp.json() == []


def test_reorder_endpoint(client, user_headers):
    habit_id = client.post("/habits", json={"title": "Respirar"}, headers=user_headers).json()["habit"]["id"]
    resp = client.patch(f"/habits/{habit_id}/order", json={"order": 7}, headers=user_headers)
    assert resp.status_code == 200
    assert resp.json()["order"] == 7
