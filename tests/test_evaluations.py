from __future__ import annotations

from fastapi.testclient import TestClient

from resplan.services.evaluation_service import CRITERIA_KEYS


def _seed(client: TestClient) -> str:
    kim = client.post("/api/v1/people", json={"code": "P-1", "display_name": "Kim"}).json()["id"]
    alpha = client.post(
        "/api/v1/projects",
        json={"code": "A", "name": "Alpha", "start_date": "2025-01-01", "end_date": "2025-12-31"},
    ).json()["id"]
    ops = client.post(
        "/api/v1/projects",
        json={
            "code": "OPS",
            "name": "Operations",
            "project_type": "direct",
            "start_date": "2025-01-01",
            "end_date": "2025-12-31",
        },
    ).json()["id"]
    client.put(f"/api/v1/projects/{alpha}/assignees", json={"person_ids": [kim]})
    client.put(
        f"/api/v1/projects/{alpha}/monthly-plan",
        json={"entries": [{"month": "2025-03", "person_id": kim, "planned_mm": "0.5"}]},
    )
    client.put(
        "/api/v1/worklogs/bulk",
        json={
            "entries": [
                {"person_id": kim, "project_id": alpha, "work_date": "2025-03-03", "actual_hours": "8"},
                {"person_id": kim, "project_id": alpha, "work_date": "2025-03-04", "actual_hours": "8"},
                {"person_id": kim, "project_id": ops, "work_date": "2025-03-05", "actual_hours": "8"},
            ]
        },
    )
    return kim


def _criteria(score: str = "4.0") -> dict[str, dict[str, str]]:
    return {key: {"score": score, "comment": f"{key} comment"} for key in CRITERIA_KEYS}


def test_criteria_catalog(client: TestClient) -> None:
    items = client.get("/api/v1/evaluations/criteria").json()["items"]

    assert [item["key"] for item in items] == list(CRITERIA_KEYS)
    assert items[0] == {"key": "work_performance", "label": "업무 성과"}
    assert items[-1]["label"] == "조직 문화 기여"


def test_unsaved_month_returns_draft_with_metrics(client: TestClient) -> None:
    kim = _seed(client)

    response = client.get(f"/api/v1/people/{kim}/evaluations/2025-03")

    assert response.status_code == 200
    body = response.json()
    assert body["saved"] is False
    assert body["id"] is None
    assert body["status"] == "draft"
    assert {criterion["score"] for criterion in body["criteria"].values()} == {"3.0"}
    assert body["criteria"]["collaboration"]["label"] == "협업 및 커뮤니케이션"
    assert body["metrics"]["plan_mm"] == "0.50"
    assert body["metrics"]["actual_mm"] == "0.15"
    assert body["metrics"]["delta_mm"] == "-0.35"
    assert body["metrics"]["pa"] == "30.00"
    assert body["metrics"]["direct_share"] == "33.33"
    assert [project["name"] for project in body["metrics"]["top_projects"]] == ["Alpha", "Operations"]
    assert body["metrics"]["top_projects"][0]["actual_mm"] == "0.10"


def test_save_requires_every_criterion_and_valid_scores(client: TestClient) -> None:
    kim = _seed(client)

    partial = _criteria()
    partial.pop("culture_fit")
    missing = client.put(f"/api/v1/people/{kim}/evaluations/2025-03", json={"criteria": partial})
    assert missing.status_code == 422
    assert "culture_fit" in missing.json()["detail"]

    off_step = _criteria()
    off_step["development"]["score"] = "4.3"
    assert client.put(f"/api/v1/people/{kim}/evaluations/2025-03", json={"criteria": off_step}).status_code == 422

    out_of_range = _criteria("5.5")
    assert client.put(f"/api/v1/people/{kim}/evaluations/2025-03", json={"criteria": out_of_range}).status_code == 422


def test_save_confirm_and_no_return_to_draft(client: TestClient) -> None:
    kim = _seed(client)

    saved = client.put(
        f"/api/v1/people/{kim}/evaluations/2025-03",
        json={"criteria": _criteria("4.5"), "final_comment": "Solid month."},
    )
    assert saved.status_code == 200
    body = saved.json()
    assert body["saved"] is True
    assert body["status"] == "draft"
    assert body["criteria"]["work_performance"] == {
        "label": "업무 성과",
        "score": "4.5",
        "comment": "work_performance comment",
    }
    assert body["metrics"]["actual_mm"] == "0.15"

    confirmed = client.put(
        f"/api/v1/people/{kim}/evaluations/2025-03",
        json={"status": "confirmed", "criteria": _criteria("5"), "final_comment": "Great month."},
    )
    assert confirmed.status_code == 200
    assert confirmed.json()["id"] == body["id"]
    assert confirmed.json()["criteria"]["task_completion"]["score"] == "5.0"

    reverted = client.put(
        f"/api/v1/people/{kim}/evaluations/2025-03",
        json={"status": "draft", "criteria": _criteria()},
    )
    assert reverted.status_code == 409

    stored = client.get(f"/api/v1/people/{kim}/evaluations/2025-03").json()
    assert stored["status"] == "confirmed"
    assert stored["final_comment"] == "Great month."


def test_yearly_evaluations_are_ordered_by_month(client: TestClient) -> None:
    kim = _seed(client)
    client.put(f"/api/v1/people/{kim}/evaluations/2025-05", json={"criteria": _criteria("3.5")})
    client.put(f"/api/v1/people/{kim}/evaluations/2025-03", json={"criteria": _criteria("4")})
    client.put(f"/api/v1/people/{kim}/evaluations/2024-12", json={"criteria": _criteria("2")})

    items = client.get(f"/api/v1/people/{kim}/evaluations", params={"year": 2025}).json()["items"]

    assert [item["month"] for item in items] == ["2025-03", "2025-05"]


def test_evaluation_for_unknown_person(client: TestClient) -> None:
    response = client.get("/api/v1/people/00000000-0000-0000-0000-000000000000/evaluations/2025-03")

    assert response.status_code == 404
