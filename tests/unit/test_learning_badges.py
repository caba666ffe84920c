"""
Unit tests for lesson completion, XP, streaks and badge awarding against a
seeded SQLite database.
"""
from datetime import date

import pytest
from fastapi import HTTPException

from permaculture_planner.services import badges, learning, model_settings
from permaculture_planner.services.db_operations import execute, fetch_all, new_id, now_ts
from permaculture_planner.services.seed import seed_database


async def create_user(email="learner@example.com"):
    user_id = new_id()
    ts = now_ts()
    await execute(
        "INSERT INTO users (id, name, email, password_hash, created_at, updated_at) "
        "VALUES (:id, 'Learner', :email, 'x', :ts, :ts)",
        {"id": user_id, "email": email, "ts": ts},
    )
    return user_id


async def badge_slugs(badge_ids):
    rows = await fetch_all("SELECT id, slug FROM badges")
    slugs = {row["id"]: row["slug"] for row in rows}
    return [slugs[badge_id] for badge_id in badge_ids]


@pytest.mark.asyncio
async def test_seeding_is_idempotent(seeded_db):
    added = await seed_database()
    assert added == {
        "model_settings": 0, "species": 0, "topics": 0, "lessons": 0, "learning_paths": 0, "badges": 0,
    }
    paths = await learning.list_paths()
    assert {p["slug"]: p["lesson_count"] for p in paths} == {
        "homesteader-basics": 4,
        "water-wise-designer": 3,
    }


@pytest.mark.asyncio
async def test_completing_lessons_awards_xp_streaks_and_badges(seeded_db):
    user_id = await create_user()
    day = date(2026, 5, 1)

    first = await learning.complete_lesson(user_id, "three-ethics", today=day)
    assert first["xp_earned"] == 10
    assert first["progress"]["total_xp"] == 10
    assert first["progress"]["current_streak"] == 1
    assert await badge_slugs(first["badges_earned"]) == ["first-steps"]

    await learning.complete_lesson(user_id, "roof-catchment", today=day)
    water = await learning.complete_lesson(user_id, "swales-on-contour", today=date(2026, 5, 2))
    assert await badge_slugs(water["badges_earned"]) == ["water-keeper"]
    assert water["progress"]["current_streak"] == 2

    await learning.complete_lesson(user_id, "observe-and-interact", today=date(2026, 5, 3))
    fifth = await learning.complete_lesson(user_id, "seven-layers", today=date(2026, 5, 3))
    assert sorted(await badge_slugs(fifth["badges_earned"])) == ["dedicated-learner", "homesteader-graduate"]
    assert fifth["progress"]["total_xp"] == 75
    assert fifth["progress"]["current_level"] == 0

    last = await learning.complete_lesson(user_id, "building-guilds", today=date(2026, 5, 10))
    assert await badge_slugs(last["badges_earned"]) == ["xp-100"]
    assert last["progress"]["total_xp"] == 100
    assert last["progress"]["current_level"] == 1
    assert last["progress"]["current_streak"] == 1
    assert last["progress"]["longest_streak"] == 3

    earned = [b["slug"] for b in await learning.list_badges(user_id) if b["earned"]]
    assert len(earned) == 5
    # nothing left to award
    assert await badges.check_all_badges(user_id) == []


@pytest.mark.asyncio
async def test_lesson_cannot_be_completed_twice(seeded_db):
    user_id = await create_user()
    await learning.complete_lesson(user_id, "three-ethics")

    with pytest.raises(HTTPException) as exc_info:
        await learning.complete_lesson(user_id, "three-ethics")
    assert exc_info.value.status_code == 400

    with pytest.raises(HTTPException) as exc_info:
        await learning.complete_lesson(user_id, "no-such-lesson")
    assert exc_info.value.status_code == 404


@pytest.mark.asyncio
async def test_xp_is_added_to_the_stored_total(seeded_db, monkeypatch):
    user_id = await create_user()
    stale = await learning.ensure_progress(user_id)
    # another completion lands after the progress row was read
    await execute("UPDATE user_progress SET total_xp = 95 WHERE user_id = :user_id", {"user_id": user_id})

    async def stale_progress(_user_id):
        return stale

    monkeypatch.setattr(learning, "ensure_progress", stale_progress)
    result = await learning.complete_lesson(user_id, "three-ethics")

    assert result["progress"]["total_xp"] == 105
    assert result["progress"]["current_level"] == 1


@pytest.mark.asyncio
async def test_duplicate_completion_race_is_a_client_error(seeded_db, monkeypatch):
    user_id = await create_user()
    await learning.complete_lesson(user_id, "three-ethics")
    real_fetch_one = learning.fetch_one

    async def miss_existing_completion(sql, params=None):
        if "FROM lesson_completions" in sql:
            return None
        return await real_fetch_one(sql, params)

    monkeypatch.setattr(learning, "fetch_one", miss_existing_completion)
    with pytest.raises(HTTPException) as exc_info:
        await learning.complete_lesson(user_id, "three-ethics")
    assert exc_info.value.status_code == 400

    progress = await real_fetch_one("SELECT total_xp FROM user_progress WHERE user_id = :id", {"id": user_id})
    assert progress["total_xp"] == 10


@pytest.mark.asyncio
async def test_enroll_and_progress(seeded_db):
    user_id = await create_user()
    progress = await learning.enroll_in_path(user_id, "water-wise-designer")
    path = await learning.get_path("water-wise-designer")

    assert progress["learning_path_id"] == path["id"]
    assert [lesson["slug"] for lesson in path["lessons"]] == [
        "observe-and-interact", "roof-catchment", "swales-on-contour",
    ]

    await learning.complete_lesson(user_id, "roof-catchment")
    summary = await learning.get_progress(user_id)
    assert [c["slug"] for c in summary["completed_lessons"]] == ["roof-catchment"]

    with pytest.raises(HTTPException):
        await learning.enroll_in_path(user_id, "missing-path")


@pytest.mark.asyncio
async def test_unknown_badge_criteria_never_match(seeded_db):
    user_id = await create_user()
    assert await badges.meets_criteria(user_id, {"type": "moon_phase"}) is False
    assert await badges.meets_criteria(user_id, {"type": "topic_complete", "topic_slug": "nope"}) is False


@pytest.mark.asyncio
async def test_model_chain_and_updates(seeded_db):
    chain = await model_settings.get_chat_model_chain()
    settings = await model_settings.get_model_settings()
    assert chain[-1] == settings["ai_tutor_model"]

    updated = await model_settings.update_model_setting("fallback_models", '["model-one"]', "admin-1")
    assert updated["value"] == '["model-one"]'
    assert updated["updated_by"] == "admin-1"
    assert (await model_settings.get_chat_model_chain())[0] == "model-one"

    assert await model_settings.update_model_setting("nope", "x", "admin-1") is None
