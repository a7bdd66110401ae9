"""
Integration tests for API endpoints against a per-test in-memory runtime.
"""
import json

import httpx

from tests.conftest import completion


class TestHealth:
    def test_health(self, client):
        r = client.get("/health")
        assert r.status_code == 200
        body = r.json()
        assert body["status"] == "ok"
        assert body["llm"] == "fallback-only"


class TestRewards:
    def test_empty_balance(self, client):
        r = client.get("/rewards/1")
        assert r.status_code == 200
        assert r.json() == {"user_id": 1, "points": 0, "gems": 0, "streak_days": 0, "level": 1}

    def test_award(self, client):
        r = client.post("/rewards/1/award", json={"amount": 50, "reason": "Buddy challenge sent"})
        assert r.status_code == 200
        body = r.json()
        assert body["balance"]["gems"] == 50
        assert body["balance"]["points"] == 100
        assert len(body["notifications"]) == 1
        assert body["notifications"][0]["message"] == "💎 +50 gems - Buddy challenge sent"

    def test_award_crossing_level_adds_bonus(self, client):
        r = client.post("/rewards/1/award", json={"amount": 500, "reason": "Big session"})
        body = r.json()
        kinds = [n["kind"] for n in body["notifications"]]
        assert kinds == ["gems", "level_up"]
        assert body["balance"]["gems"] == 700
        assert body["balance"]["points"] == 1400
        assert body["balance"]["level"] == 2

    def test_award_without_level_check(self, client):
        r = client.post(
            "/rewards/1/award",
            json={"amount": 500, "reason": "Big session", "check_level_up": False},
        )
        assert [n["kind"] for n in r.json()["notifications"]] == ["gems"]
        assert r.json()["balance"]["gems"] == 500

    def test_negative_amount_rejected(self, client):
        r = client.post("/rewards/1/award", json={"amount": -5, "reason": "nope"})
        assert r.status_code == 422
        assert r.json()["code"] == "VALIDATION_ERROR"
        assert client.get("/rewards/1").json()["gems"] == 0

    def test_achievement(self, client):
        r = client.post(
            "/rewards/1/achievements",
            json={"name": "first_challenge", "message": "First challenge sent!"},
        )
        assert r.status_code == 200
        body = r.json()
        assert body["kind"] == "achievement"
        assert body["message"] == "🏆 First challenge sent!"
        assert body["is_big"] is True
        assert client.get("/rewards/1").json()["gems"] == 50

    def test_streak_milestone_once(self, client):
        first = client.post("/rewards/1/streak", json={"streak_days": 7}).json()
        second = client.post("/rewards/1/streak", json={"streak_days": 7}).json()
        assert first["awarded"] is True
        assert first["notification"]["message"] == "🔥 7 day streak unlocked! +100 gems"
        assert second["awarded"] is False
        assert second["notification"] is None
        assert second["balance"]["gems"] == 100
        assert second["balance"]["streak_days"] == 7

    def test_non_milestone_streak(self, client):
        body = client.post("/rewards/1/streak", json={"streak_days": 5}).json()
        assert body["awarded"] is False
        assert body["balance"]["streak_days"] == 5

    def test_level_check(self, client):
        r = client.post(
            "/rewards/1/level-check",
            json={"previous_points": 950, "current_points": 1050},
        )
        body = r.json()
        assert body["awarded"] is True
        assert body["notification"]["message"] == "⭐ Level 2 unlocked! +200 gems"

    def test_level_check_same_level(self, client):
        r = client.post(
            "/rewards/1/level-check",
            json={"previous_points": 100, "current_points": 900},
        )
        assert r.json()["awarded"] is False

    def test_level_check_decreasing_points_rejected(self, client):
        r = client.post(
            "/rewards/1/level-check",
            json={"previous_points": 1500, "current_points": 900},
        )
        assert r.status_code == 422

    def test_progress(self, client):
        r = client.get("/rewards/progress", params={"points": 1250})
        assert r.status_code == 200
        assert r.json() == {"points": 1250, "level": 2, "next_level": 3, "progress_percent": 25.0}


class TestInvites:
    def _create(self, client, **overrides):
        body = {
            "session_id": "sess_1",
            "sender_id": 7,
            "sender_name": "Maya",
            "subject": "Algebra",
        }
        body.update(overrides)
        return client.post("/invite", json=body)

    def test_create_invite(self, client):
        r = self._create(client, recipient_id=8)
        assert r.status_code == 201
        body = r.json()
        assert body["link"].startswith("https://buddyloop.test/invite?")
        assert body["code"].startswith("BUDDY_")
        assert body["recipient_id"] == 8
        assert body["recipient_label"] == "Friend"
        assert body["challenge"]["reward_amount"] == 50
        assert body["challenge"]["challenge_type"] == "beat_score"
        assert "challengeType=beat_score" in body["link"]
        parsed = client.get("/invite/parse", params={"url": body["link"]}).json()
        assert parsed["code"] == body["code"]

    def test_create_invite_with_email(self, client):
        body = self._create(client, recipient_email="sam@example.com").json()
        assert body["recipient_label"] == "sam@example.com"

    def test_create_tracks_link_created(self, client):
        code = self._create(client, message="Bet you can't beat me").json()["code"]
        events = client.get("/funnel/events", params={"name": "link_created"}).json()
        assert events["total"] == 1
        assert events["items"][0]["payload"]["code"] == code
        assert events["items"][0]["payload"]["message"] == "Bet you can't beat me"

    def test_create_invite_rejects_bad_email(self, client):
        r = self._create(client, recipient_email="not-an-email")
        assert r.status_code == 422
        assert r.json()["code"] == "VALIDATION_ERROR"

    def test_parse_round_trip(self, client):
        link = self._create(client, challenge_type="time_challenge", reward_amount=75).json()["link"]
        r = client.get("/invite/parse", params={"url": link})
        assert r.status_code == 200
        body = r.json()
        assert body["from_user_name"] == "Maya"
        assert body["from_user_id"] == 7
        assert body["challenge_type"] == "time_challenge"
        assert body["reward_amount"] == 75
        assert body["campaign"]["utm_source"] == "buddy_challenge"

    def test_parse_invalid_link(self, client):
        r = client.get("/invite/parse", params={"url": "https://buddyloop.test/invite?from=Maya"})
        assert r.status_code == 422
        body = r.json()
        assert body["code"] == "INVALID_CHALLENGE_LINK"
        assert body["details"]["url"] == "https://buddyloop.test/invite?from=Maya"

    def test_parse_oversized_reward(self, client):
        url = "https://buddyloop.test/invite?code=C&from=A&subject=S&reward=" + "9" * 5000
        r = client.get("/invite/parse", params={"url": url})
        assert r.status_code == 422
        assert r.json()["code"] == "INVALID_CHALLENGE_LINK"

    def test_click(self, client):
        r = client.post("/invite/BUDDY_X_ABCDEF/click")
        assert r.status_code == 200
        assert r.json() == {"code": "BUDDY_X_ABCDEF", "tracked": True}
        summary = client.get("/funnel/summary").json()["counts"]
        assert summary["link_clicked"] == 1


class TestLoops:
    def test_select(self, client):
        r = client.post(
            "/loops/select",
            json={"user_id": 1, "event": "session_completed", "data": {"score": 85}},
        )
        assert r.status_code == 200
        assert r.json() == {"event": "session_completed", "loop_type": "buddy_challenge"}

    def test_select_does_not_consume_quota(self, client):
        for _ in range(5):
            client.post("/loops/select", json={"user_id": 1, "event": "buddy_challenge_accepted"})
        r = client.post("/loops/decide", json={"user_id": 1, "loop_type": "voice_room_invite"})
        assert r.json()["should_trigger"] is True

    def test_decide_then_cooldown(self, client):
        first = client.post("/loops/decide", json={"user_id": 1, "loop_type": "buddy_challenge"}).json()
        second = client.post("/loops/decide", json={"user_id": 1, "loop_type": "buddy_challenge"}).json()
        assert first["should_trigger"] is True
        assert first["loop_type"] == "buddy_challenge"
        assert second["should_trigger"] is False
        assert second["cooldown"] is True
        assert second["reason"] == "Cooldown active (120 minutes remaining)"

    def test_daily_cap(self, client):
        for loop in ("buddy_challenge", "voice_room_invite", "tutor_spotlight"):
            client.post("/loops/decide", json={"user_id": 1, "loop_type": loop})
        body = client.post(
            "/loops/decide", json={"user_id": 1, "loop_type": "proud_parent_share"}
        ).json()
        assert body["throttled"] is True
        assert body["reason"] == "Daily limit reached (3/3 invites today)"

    def test_decide_unknown_loop_rejected(self, client):
        r = client.post("/loops/decide", json={"user_id": 1, "loop_type": "skywriting"})
        assert r.status_code == 422
        assert r.json()["code"] == "VALIDATION_ERROR"

    def test_evaluate(self, client):
        r = client.post(
            "/loops/evaluate",
            json={"user_id": 1, "event": "voice_room_15_min", "data": {"minutesInRoom": 30}},
        )
        body = r.json()
        assert body["should_trigger"] is True
        assert body["loop_type"] == "tutor_spotlight"

    def test_evaluate_no_match(self, client):
        body = client.post(
            "/loops/evaluate", json={"user_id": 1, "event": "logged_in"}
        ).json()
        assert body["should_trigger"] is False
        assert body["loop_type"] is None

    def test_reset(self, client):
        client.post("/loops/decide", json={"user_id": 1, "loop_type": "buddy_challenge"})
        r = client.post("/loops/reset")
        assert r.status_code == 200
        assert r.json()["keys_cleared"] == 2
        again = client.post("/loops/decide", json={"user_id": 1, "loop_type": "buddy_challenge"})
        assert again.json()["should_trigger"] is True

    def test_decisions_newest_first_and_filtered(self, client):
        client.post("/loops/decide", json={"user_id": 1, "loop_type": "buddy_challenge"})
        client.post("/loops/decide", json={"user_id": 1, "loop_type": "buddy_challenge"})
        client.post("/invite/BUDDY_X_ABCDEF/click")

        body = client.get(
            "/loops/decisions", params={"agent": "Viral Loop Orchestrator"}
        ).json()
        assert body["total"] == 2
        assert [i["status"] for i in body["items"]] == ["blocked", "triggered"]

        limited = client.get("/loops/decisions", params={"limit": 1}).json()
        assert limited["total"] == 4
        assert len(limited["items"]) == 1
        assert limited["items"][0]["agent"] == "Funnel"


class TestFunnel:
    def test_track_event(self, client):
        r = client.post("/funnel/events", json={"name": "signup", "payload": {"user_id": 9}})
        assert r.status_code == 201
        body = r.json()
        assert body["name"] == "signup"
        assert body["payload"] == {"user_id": 9}
        assert body["timestamp"].startswith("2026-03-10T09:00:00")

    def test_unknown_event_rejected(self, client):
        r = client.post("/funnel/events", json={"name": "page_view"})
        assert r.status_code == 422

    def test_list_in_insertion_order(self, client):
        for name in ("link_created", "link_clicked", "signup"):
            client.post("/funnel/events", json={"name": name})
        body = client.get("/funnel/events").json()
        assert [i["name"] for i in body["items"]] == ["link_created", "link_clicked", "signup"]

    def test_summary(self, client):
        client.post("/funnel/events", json={"name": "conversion"})
        counts = client.get("/funnel/summary").json()["counts"]
        assert counts["conversion"] == 1
        assert counts["signup"] == 0


class TestAIFallback:
    SESSION = {
        "session_id": "s1",
        "subject": "Algebra",
        "duration": 20,
        "questions_answered": 10,
        "correct_answers": 9,
    }

    def test_analyze_session(self, client):
        r = client.post("/ai/analyze-session", json=self.SESSION)
        assert r.status_code == 200
        body = r.json()
        assert body["fallback"] is True
        assert "Algebra" in body["insights"]["achievement_summary"]

    def test_personalize_message(self, client):
        r = client.post(
            "/ai/personalize-message",
            json={"sender": {"name": "Maya", "role": "student"}, "loop_type": "voice_room_invite"},
        )
        assert r.status_code == 200
        assert r.json() == {
            "message": "Come join our study room! Let's learn together 🎧",
            "fallback": True,
        }

    def test_orchestrate(self, client):
        r = client.post(
            "/ai/orchestrate",
            json={
                "event": "session_completed",
                "user_context": {"user_id": 1, "role": "student", "name": "Maya"},
                "session_data": self.SESSION,
            },
        )
        body = r.json()
        assert body["fallback"] is True
        assert body["should_trigger"] is True
        assert body["loop_type"] == "buddy_challenge"
        assert body["confidence"] == 50

    def test_fallbacks_appear_in_decision_log(self, client):
        client.post("/ai/analyze-session", json=self.SESSION)
        items = client.get("/loops/decisions", params={"agent": "Copy Service"}).json()["items"]
        assert items[0]["status"] == "fallback"
        assert items[0]["action"] == "summarize_session fallback"


class TestAIWithModel:
    def test_personalize_message_from_model(self, llm_runtime):
        from fastapi.testclient import TestClient

        from buddyloop.core.runtime import get_runtime
        from buddyloop.main import app

        def handler(request: httpx.Request) -> httpx.Response:
            assert json.loads(request.content)["model"]
            return completion("Beat my 90% in Algebra, Sam! 🎯")

        rt = llm_runtime(handler)
        app.dependency_overrides[get_runtime] = lambda: rt
        try:
            with TestClient(app) as c:
                assert c.get("/health").json()["llm"] == "configured"
                r = c.post(
                    "/ai/personalize-message",
                    json={
                        "sender": {"name": "Maya", "role": "student"},
                        "recipient": {"name": "Sam", "role": "student"},
                        "loop_type": "buddy_challenge",
                    },
                )
        finally:
            app.dependency_overrides.clear()

        assert r.status_code == 200
        assert r.json() == {"message": "Beat my 90% in Algebra, Sam! 🎯", "fallback": False}
