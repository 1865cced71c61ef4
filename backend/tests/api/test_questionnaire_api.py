"""Integration tests for question, response and contradiction endpoints.

Tests cover:
- Question generation with lazy progress initialization
- Answer submission, verdicts and the contradiction gate
- Clarifying questions and resolution checks
- Versioned edits and answer history
- Error mapping (400 / 404 / 409 / 422 / 500) with debug_id
- User isolation
"""

import uuid

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from app.api.deps import get_gateway
from app.core.auth import ClerkUser, require_auth
from app.llm.gateway_fake import FAKE_CLARIFYING_QUESTION, FAKE_QUESTION, GatewayFake

pytestmark = pytest.mark.integration

ANSWERS = [
    "Honesty is the most important value.",
    "Promises must always be kept.",
]


def override_auth(user: ClerkUser):
    """Create auth override for a specific user."""

    async def _override():
        return user

    return _override


def _use(api_client: TestClient, user: ClerkUser, gateway: GatewayFake) -> TestClient:
    app: FastAPI = api_client.app
    app.dependency_overrides[require_auth] = override_auth(user)
    app.dependency_overrides[get_gateway] = lambda: gateway
    return api_client


def _ask_and_answer(client: TestClient, answer: str) -> dict:
    question = client.post("/api/questions").json()
    response = client.patch("/api/responses", json={"response_id": question["response_id"], "answer": answer})
    assert response.status_code == 200, response.text
    return response.json()


class TestQuestions:
    def test_first_question_initializes_progress(self, api_client, user_a, gateway_fake):
        client = _use(api_client, user_a, gateway_fake)

        response = client.post("/api/questions")

        assert response.status_code == 200
        data = response.json()
        assert data["question"] == FAKE_QUESTION
        assert data["stage"] == 1
        uuid.UUID(data["response_id"])
        assert client.get("/api/progress").json()["progress"]["stage"] == 1

    def test_model_down_still_returns_question(self, api_client, user_a, gateway_fake_failing):
        client = _use(api_client, user_a, gateway_fake_failing)

        response = client.post("/api/questions")

        assert response.status_code == 200
        assert response.json()["question"]

    def test_custom_question(self, api_client, user_a, gateway_fake):
        client = _use(api_client, user_a, gateway_fake)

        response = client.post("/api/questions/custom", json={"theme": "honesty at work"})

        assert response.status_code == 200
        assert response.json()["question"] == FAKE_QUESTION
        assert '"honesty at work"' in gateway_fake.prompts[-1]

    def test_custom_question_blank_theme(self, api_client, user_a, gateway_fake):
        client = _use(api_client, user_a, gateway_fake)

        assert client.post("/api/questions/custom", json={"theme": ""}).status_code == 422
        response = client.post("/api/questions/custom", json={"theme": "   "})
        assert response.status_code == 400
        assert "debug_id" in response.json()

    def test_unanswered_questions_listed(self, api_client, user_a, gateway_fake):
        client = _use(api_client, user_a, gateway_fake)
        client.post("/api/questions")
        client.post("/api/questions")

        responses = client.get("/api/responses").json()["responses"]

        assert len(responses) == 2
        assert all(r["answer"] == "" for r in responses)
        assert all(r["version"] == 1 for r in responses)


class TestAnswers:
    def test_consistent_answer(self, api_client, user_a, gateway_fake):
        client = _use(api_client, user_a, gateway_fake)

        data = _ask_and_answer(client, ANSWERS[0])

        assert data["contradiction"] is False
        assert data["details"] is None
        assert data["contradiction_pending"] is False
        assert data["response"]["answer"] == ANSWERS[0]
        assert client.get("/api/progress").json()["progress"]["response_count"] == 1

    def test_contradiction_blocks_new_questions(self, api_client, user_a):
        gateway = GatewayFake(scenario="contradiction")
        client = _use(api_client, user_a, gateway)
        for answer in ANSWERS:
            _ask_and_answer(client, answer)

        data = _ask_and_answer(client, "Lying is fine when it helps me.")

        assert data["contradiction"] is True
        assert data["details"]
        assert data["contradiction_pending"] is True
        assert client.get("/api/progress").json()["progress"]["contradiction_flag"] is True

        blocked = client.post("/api/questions")
        assert blocked.status_code == 409
        assert "debug_id" in blocked.json()
        assert client.post("/api/progress/evaluate").json()["advanced"] is False

    def test_blank_answer(self, api_client, user_a, gateway_fake):
        client = _use(api_client, user_a, gateway_fake)
        question = client.post("/api/questions").json()

        assert client.patch("/api/responses", json={"response_id": question["response_id"], "answer": ""}).status_code == 422
        response = client.patch("/api/responses", json={"response_id": question["response_id"], "answer": "  "})
        assert response.status_code == 400

    def test_missing_or_malformed_id(self, api_client, user_a, gateway_fake):
        client = _use(api_client, user_a, gateway_fake)

        assert client.patch("/api/responses", json={"answer": "x"}).status_code == 422
        assert client.patch("/api/responses", json={"response_id": "not-a-uuid", "answer": "x"}).status_code == 422

    def test_unknown_id(self, api_client, user_a, gateway_fake):
        client = _use(api_client, user_a, gateway_fake)
        client.get("/api/progress")

        response = client.patch("/api/responses", json={"response_id": str(uuid.uuid4()), "answer": "x"})

        assert response.status_code == 404

    def test_answering_twice_conflicts(self, api_client, user_a, gateway_fake):
        client = _use(api_client, user_a, gateway_fake)
        data = _ask_and_answer(client, ANSWERS[0])

        response = client.patch("/api/responses", json={"response_id": data["response"]["id"], "answer": "again"})

        assert response.status_code == 409

    def test_other_users_response_not_found(self, api_client, user_a, user_b, gateway_fake):
        client = _use(api_client, user_a, gateway_fake)
        question = client.post("/api/questions").json()

        _use(api_client, user_b, gateway_fake)
        client.get("/api/progress")
        response = client.patch("/api/responses", json={"response_id": question["response_id"], "answer": "mine now"})

        assert response.status_code == 404
        assert client.get("/api/responses").json()["responses"] == []


class TestResolution:
    def _contradict(self, client: TestClient) -> None:
        for answer in ANSWERS:
            _ask_and_answer(client, answer)
        _ask_and_answer(client, "Lying is fine when it helps me.")

    def test_resolve_and_check(self, api_client, user_a):
        gateway = GatewayFake(scenario="contradiction")
        client = _use(api_client, user_a, gateway)
        self._contradict(client)

        clarifying = client.post("/api/contradictions/resolve")
        assert clarifying.status_code == 200
        assert clarifying.json()["question"] == FAKE_CLARIFYING_QUESTION

        check = client.post(
            "/api/contradictions/check-resolution",
            json={"resolution_text": "I value honesty, but small kindnesses can matter more."},
        )
        assert check.status_code == 200
        assert check.json()["resolved"] is True
        assert check.json()["message"]
        assert client.get("/api/progress").json()["progress"]["contradiction_flag"] is False
        assert client.post("/api/questions").status_code == 200

    def test_unresolved_keeps_gate_closed(self, api_client, user_a):
        client = _use(api_client, user_a, GatewayFake(scenario="contradiction"))
        self._contradict(client)
        _use(api_client, user_a, GatewayFake(scenario="unresolved"))

        check = client.post("/api/contradictions/check-resolution", json={"resolution_text": "I changed my mind."})

        assert check.json()["resolved"] is False
        assert client.post("/api/questions").status_code == 409

    def test_model_down_keeps_gate_closed(self, api_client, user_a):
        client = _use(api_client, user_a, GatewayFake(scenario="contradiction"))
        self._contradict(client)
        _use(api_client, user_a, GatewayFake(scenario="llm_failure"))

        assert client.post("/api/contradictions/resolve").status_code == 200
        check = client.post("/api/contradictions/check-resolution", json={"resolution_text": "Context matters."})

        assert check.status_code == 200
        assert check.json()["resolved"] is False
        assert client.get("/api/progress").json()["progress"]["contradiction_flag"] is True

    def test_nothing_to_resolve(self, api_client, user_a, gateway_fake):
        client = _use(api_client, user_a, gateway_fake)
        client.get("/api/progress")

        assert client.post("/api/contradictions/resolve").status_code == 409
        response = client.post("/api/contradictions/check-resolution", json={"resolution_text": "x"})
        assert response.status_code == 409

    def test_resolution_text_required(self, api_client, user_a, gateway_fake):
        client = _use(api_client, user_a, gateway_fake)

        assert client.post("/api/contradictions/check-resolution", json={}).status_code == 422


class TestEdits:
    def test_edit_keeps_history(self, api_client, user_a, gateway_fake):
        client = _use(api_client, user_a, gateway_fake)
        original = _ask_and_answer(client, ANSWERS[0])["response"]

        response = client.post(
            "/api/responses/edit",
            json={"response_id": original["id"], "new_answer": "Honesty matters, but not above kindness."},
        )

        assert response.status_code == 200
        edited = response.json()["response"]
        assert edited["version"] == 2
        assert edited["slot_id"] == original["slot_id"]
        assert edited["id"] != original["id"]

        active = client.get("/api/responses").json()["responses"]
        assert [r["answer"] for r in active] == ["Honesty matters, but not above kindness."]

        history = client.get("/api/responses", params={"include_superseded": True}).json()["responses"]
        assert [(r["version"], r["superseded"]) for r in history] == [(1, True), (2, False)]
        assert history[0]["answer"] == ANSWERS[0]

    def test_edit_resolves_contradiction(self, api_client, user_a):
        client = _use(api_client, user_a, GatewayFake(scenario="contradiction"))
        for answer in ANSWERS:
            _ask_and_answer(client, answer)
        bad = _ask_and_answer(client, "Lying is fine when it helps me.")["response"]
        _use(api_client, user_a, GatewayFake())

        response = client.post(
            "/api/responses/edit",
            json={"response_id": bad["id"], "new_answer": "Lying is wrong even when it helps me."},
        )

        assert response.status_code == 200
        assert response.json()["contradiction_pending"] is False
        assert client.post("/api/questions").status_code == 200

    def test_superseded_version_conflicts(self, api_client, user_a, gateway_fake):
        client = _use(api_client, user_a, gateway_fake)
        original = _ask_and_answer(client, ANSWERS[0])["response"]
        client.post("/api/responses/edit", json={"response_id": original["id"], "new_answer": "Changed"})

        response = client.post("/api/responses/edit", json={"response_id": original["id"], "new_answer": "Again"})

        assert response.status_code == 409

    def test_unanswered_question_cannot_be_edited(self, api_client, user_a, gateway_fake):
        client = _use(api_client, user_a, gateway_fake)
        question = client.post("/api/questions").json()

        response = client.post("/api/responses/edit", json={"response_id": question["response_id"], "new_answer": "x"})

        assert response.status_code == 409


def test_unexpected_error_returns_sanitized_500(api_client, user_a):
    class ExplodingGateway:
        async def generate(self, prompt, temperature=None):
            raise RuntimeError("secret connection string leaked")

    client = _use(api_client, user_a, ExplodingGateway())

    response = client.post("/api/questions")

    assert response.status_code == 500
    body = response.json()
    assert body["detail"] == "Internal server error"
    assert "debug_id" in body
    assert "secret" not in response.text
