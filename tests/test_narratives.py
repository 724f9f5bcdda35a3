from __future__ import annotations

import json
from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient
from openai import APIConnectionError

from resplan.core.errors import NarrativeGenerationError
from resplan.repositories.llm_repository import LLMRepository, ModelTier
from resplan.services.evaluation_service import CRITERIA_KEYS
from resplan.services.narrative_service import EMPTY_ANNUAL_REPORT


def _chat_response(content: str | None) -> MagicMock:
    response = MagicMock()
    response.choices = [MagicMock()]
    response.choices[0].message.content = content
    return response


def _settings(**overrides: object) -> MagicMock:
    settings = MagicMock()
    settings.llm_api_key = "test-key"
    settings.llm_base_url = None
    settings.llm_light_model = "gpt-4o-mini"
    settings.llm_heavy_model = "gpt-4o"
    settings.llm_timeout_seconds = 60.0
    for key, value in overrides.items():
        setattr(settings, key, value)
    return settings


def _create_person(client: TestClient) -> str:
    return client.post("/api/v1/people", json={"code": "P-1", "display_name": "Kim"}).json()["id"]


def _create_project(client: TestClient, code: str, name: str, status: str = "active") -> str:
    return client.post(
        "/api/v1/projects",
        json={
            "code": code,
            "name": name,
            "status": status,
            "start_date": "2025-01-01",
            "end_date": "2025-12-31",
        },
    ).json()["id"]


def _criteria(score: str = "4.0") -> dict[str, dict[str, str]]:
    return {key: {"score": score, "comment": ""} for key in CRITERIA_KEYS}


class TestLLMRepository:
    def test_client_is_created_lazily(self) -> None:
        repo = LLMRepository(_settings())

        assert repo._client is None
        assert repo._get_model(ModelTier.LIGHT) == "gpt-4o-mini"
        assert repo._get_model(ModelTier.HEAVY) == "gpt-4o"

    def test_missing_api_key_fails_on_first_request(self) -> None:
        repo = LLMRepository(_settings(llm_api_key=None))

        with pytest.raises(NarrativeGenerationError):
            repo.generate_text(system_prompt="Test", user_prompt="Test")

    def test_generate_json_parses_structured_output(self) -> None:
        repo = LLMRepository(_settings())
        repo._client = MagicMock()
        repo._client.chat.completions.create.return_value = _chat_response('{"entries": []}')

        result = repo.generate_json(
            system_prompt="Return JSON",
            user_prompt="Test",
            schema_name="probe",
            schema={"type": "object"},
        )

        assert result == {"entries": []}
        call_kwargs = repo._client.chat.completions.create.call_args.kwargs
        assert call_kwargs["model"] == "gpt-4o-mini"
        assert call_kwargs["response_format"]["type"] == "json_schema"
        assert call_kwargs["response_format"]["json_schema"]["name"] == "probe"

    def test_invalid_json_raises(self) -> None:
        repo = LLMRepository(_settings())
        repo._client = MagicMock()
        repo._client.chat.completions.create.return_value = _chat_response("not valid json")

        with pytest.raises(NarrativeGenerationError) as exc_info:
            repo.generate_json(system_prompt="Test", user_prompt="Test", schema_name="probe", schema={})
        assert "Invalid JSON" in exc_info.value.message

    def test_empty_choices_raise(self) -> None:
        repo = LLMRepository(_settings())
        repo._client = MagicMock()
        response = MagicMock()
        response.choices = []
        repo._client.chat.completions.create.return_value = response

        with pytest.raises(NarrativeGenerationError):
            repo.generate_text(system_prompt="Test", user_prompt="Test")

    def test_connection_error_is_translated(self) -> None:
        repo = LLMRepository(_settings())
        repo._client = MagicMock()
        repo._client.chat.completions.create.side_effect = APIConnectionError(request=MagicMock())

        with pytest.raises(NarrativeGenerationError):
            repo.generate_text(system_prompt="Test", user_prompt="Test", temperature=0.2)


def test_worklog_drafts_match_active_projects(client: TestClient, llm_client: MagicMock) -> None:
    alpha = _create_project(client, "A", "Alpha")
    platform = _create_project(client, "DP", "Data Platform")
    _create_project(client, "L", "Legacy", status="archived")
    llm_client.chat.completions.create.return_value = _chat_response(
        json.dumps(
            {
                "entries": [
                    {"project_name": "alpha", "task": "planning", "hours": 4},
                    {"project_name": "data  platform", "task": "pipeline fix", "hours": 2.5},
                    {"project_name": "Unknown", "task": "misc", "hours": 1},
                ]
            }
        )
    )

    response = client.post(
        "/api/v1/narratives/worklog-drafts",
        json={"report_text": "Alpha planning 4h, data platform pipeline fix 2.5h, misc 1h", "context": "actual"},
    )

    assert response.status_code == 200
    assert response.json()["items"] == [
        {"project_id": alpha, "project_name": "Alpha", "task": "planning", "hours": "4.00"},
        {"project_id": platform, "project_name": "Data Platform", "task": "pipeline fix", "hours": "2.50"},
        {"project_id": None, "project_name": "Unknown", "task": "misc", "hours": "1.00"},
    ]
    user_prompt = llm_client.chat.completions.create.call_args.kwargs["messages"][1]["content"]
    assert "Data Platform" in user_prompt
    assert "Legacy" not in user_prompt


def test_worklog_drafts_reject_empty_text(client: TestClient, llm_client: MagicMock) -> None:
    response = client.post("/api/v1/narratives/worklog-drafts", json={"report_text": "   "})

    assert response.status_code == 422
    llm_client.chat.completions.create.assert_not_called()


def test_worklog_drafts_surface_generation_failure(client: TestClient, llm_client: MagicMock) -> None:
    llm_client.chat.completions.create.return_value = _chat_response("not valid json")

    response = client.post("/api/v1/narratives/worklog-drafts", json={"report_text": "Alpha 4h"})

    assert response.status_code == 502
    assert response.json()["code"] == "narrative_generation_failed"


def test_monthly_narrative_uses_stored_scores(client: TestClient, llm_client: MagicMock) -> None:
    kim = _create_person(client)
    client.put(f"/api/v1/people/{kim}/evaluations/2025-03", json={"criteria": _criteria("4.5")})
    comments = {key: f"{key} feedback" for key in CRITERIA_KEYS}
    llm_client.chat.completions.create.return_value = _chat_response(
        json.dumps({"criteria_comments": comments, "final_comment": "Strong month overall."})
    )

    response = client.post(f"/api/v1/people/{kim}/evaluations/2025-03/narrative")

    assert response.status_code == 200
    body = response.json()
    assert body["criteria_comments"] == comments
    assert body["final_comment"] == "Strong month overall."
    user_prompt = llm_client.chat.completions.create.call_args.kwargs["messages"][1]["content"]
    assert "업무 성과: 4.5/5" in user_prompt
    assert "2025-03" in user_prompt


def test_monthly_narrative_missing_criterion_fails(client: TestClient, llm_client: MagicMock) -> None:
    kim = _create_person(client)
    comments = {key: "ok" for key in CRITERIA_KEYS if key != "culture_fit"}
    llm_client.chat.completions.create.return_value = _chat_response(
        json.dumps({"criteria_comments": comments, "final_comment": "Fine."})
    )

    response = client.post(
        f"/api/v1/people/{kim}/evaluations/2025-03/narrative",
        json={"scores": {key: "3.5" for key in CRITERIA_KEYS}},
    )

    assert response.status_code == 502
    assert "culture_fit" in response.json()["detail"]


def test_monthly_narrative_validates_supplied_scores(client: TestClient, llm_client: MagicMock) -> None:
    kim = _create_person(client)

    response = client.post(
        f"/api/v1/people/{kim}/evaluations/2025-03/narrative",
        json={"scores": {"work_performance": "4"}},
    )

    assert response.status_code == 422
    llm_client.chat.completions.create.assert_not_called()


def test_annual_report_without_evaluations_skips_generation(client: TestClient, llm_client: MagicMock) -> None:
    kim = _create_person(client)

    response = client.post(f"/api/v1/people/{kim}/evaluations/annual-report", params={"year": 2025})

    assert response.status_code == 200
    assert response.json() == {"year": 2025, "report": EMPTY_ANNUAL_REPORT}
    llm_client.chat.completions.create.assert_not_called()


def test_annual_report_summarizes_stored_months(client: TestClient, llm_client: MagicMock) -> None:
    kim = _create_person(client)
    client.put(
        f"/api/v1/people/{kim}/evaluations/2025-01",
        json={"criteria": _criteria("4"), "final_comment": "Reliable delivery."},
    )
    client.put(f"/api/v1/people/{kim}/evaluations/2025-02", json={"criteria": _criteria("3")})
    llm_client.chat.completions.create.return_value = _chat_response("## Annual summary\nSteady growth.")

    response = client.post(f"/api/v1/people/{kim}/evaluations/annual-report", params={"year": 2025})

    assert response.status_code == 200
    assert response.json()["report"] == "## Annual summary\nSteady growth."
    call_kwargs = llm_client.chat.completions.create.call_args.kwargs
    assert call_kwargs["model"] == "gpt-4o"
    assert call_kwargs["temperature"] == 0.6
    user_prompt = call_kwargs["messages"][1]["content"]
    assert "### 2025-01" in user_prompt
    assert "Average score: 4.0/5.0" in user_prompt
    assert "Reliable delivery." in user_prompt
