"""Unit tests for the Flask API: insight and opportunity-assist endpoints."""

from __future__ import annotations

from datetime import datetime
from unittest.mock import MagicMock, patch

import pytest

from auth import issue_token
from llm.client import ConfigurationError
from llm.intent_planner import PlannerSchemaViolation
from llm.opportunity_extractor import ExtractionError
from llm.summarizer import SummarizerUnavailable
from schemas.extraction import OpportunityExtraction
from schemas.insight import InsightPlan
from services import insight_executor

ASK_URL = "/api/ai/insights/ask"
ASSIST_URL = "/api/ai/opportunities/assist"


@pytest.fixture
def flask_client(test_db_path):
    """Flask test client with the DB path patched to the test DB and AI configured."""
    with patch("services.opportunity_store.DATABASE_PATH", str(test_db_path)), patch(
        "llm.client.GEMINI_API_KEY", "test-key"
    ):
        from flask_app import app

        app.config["TESTING"] = True
        with app.test_client() as client:
            yield client


def _headers(user_id: int = 7, role: str = "user", team_id=None):
    headers = {"Authorization": f"Bearer {issue_token(user_id, role)}"}
    if team_id is not None:
        headers["Teamid"] = str(team_id)
    return headers


def _plan(payload) -> InsightPlan:
    return InsightPlan.model_validate(payload)


class TestAskPreconditions:
    """Configuration, auth and body checks run before any collaborator."""

    @patch("flask_app.scope_resolver.resolve_scope")
    @patch("flask_app.opportunity_store.get_db_connection")
    @patch("flask_app.intent_planner.plan_question")
    def test_unconfigured_ai_returns_503_without_touching_anything(
        self, mock_plan: MagicMock, mock_conn: MagicMock, mock_scope: MagicMock, flask_client
    ) -> None:
        with patch("llm.client.GEMINI_API_KEY", None):
            r = flask_client.post(ASK_URL, json={"question": "How many deals?"}, headers=_headers())
        assert r.status_code == 503
        assert "error" in r.get_json()
        mock_plan.assert_not_called()
        mock_conn.assert_not_called()
        mock_scope.assert_not_called()

    def test_unconfigured_is_checked_before_auth(self, flask_client) -> None:
        with patch("llm.client.GEMINI_API_KEY", None):
            r = flask_client.post(ASK_URL, json={"question": "How many deals?"})
        assert r.status_code == 503

    @patch("flask_app.intent_planner.plan_question")
    def test_missing_token_returns_401(self, mock_plan: MagicMock, flask_client) -> None:
        r = flask_client.post(ASK_URL, json={"question": "How many deals?"})
        assert r.status_code == 401
        mock_plan.assert_not_called()

    @pytest.mark.parametrize("body", [{}, {"question": 42}, {"question": "   "}, ["question"]])
    @patch("flask_app.intent_planner.plan_question")
    def test_bad_question_returns_400(self, mock_plan: MagicMock, body, flask_client) -> None:
        r = flask_client.post(ASK_URL, json=body, headers=_headers())
        assert r.status_code == 400
        mock_plan.assert_not_called()

    @patch("flask_app.intent_planner.plan_question")
    def test_non_json_body_returns_400(self, mock_plan: MagicMock, flask_client) -> None:
        r = flask_client.post(ASK_URL, data="question=hi", headers=_headers())
        assert r.status_code == 400
        mock_plan.assert_not_called()


class TestAskSuccess:
    @patch("flask_app.summarizer.summarize", return_value="You have 1 closed opportunity.")
    @patch("flask_app.intent_planner.plan_question")
    def test_solo_user_counts_own_closed_opportunities(
        self, mock_plan: MagicMock, mock_summarize: MagicMock, flask_client
    ) -> None:
        mock_plan.return_value = _plan(
            {"intent": "count_opportunities", "filters": {"status": ["closed_won", "closed_lost"]}}
        )

        r = flask_client.post(
            ASK_URL,
            json={"question": "How many opportunities are currently closed?"},
            headers=_headers(7, "user"),
        )

        assert r.status_code == 200
        data = r.get_json()
        assert data == {
            "success": True,
            "intent": "count_opportunities",
            "filters": {"status": ["closed_won", "closed_lost"]},
            "data": {"value": 1},
            "answer": "You have 1 closed opportunity.",
        }
        mock_summarize.assert_called_once_with(
            "How many opportunities are currently closed?",
            "count_opportunities",
            {"status": ["closed_won", "closed_lost"]},
            {"value": 1},
        )

    @patch("flask_app.summarizer.summarize", return_value="Pipeline is 1000.")
    @patch("flask_app.intent_planner.plan_question")
    def test_selected_team_scopes_sum(
        self, mock_plan: MagicMock, mock_summarize: MagicMock, flask_client
    ) -> None:
        mock_plan.return_value = _plan(
            {
                "intent": "sum_expected_amount",
                "filters": {"timeframe": {"scope": "last_days", "lastDays": 90}},
            }
        )
        real_execute = insight_executor.execute

        def execute_at_fixed_time(conn, scope, plan):
            return real_execute(conn, scope, plan, now=datetime(2024, 7, 1))

        with patch("flask_app.insight_executor.execute", side_effect=execute_at_fixed_time):
            r = flask_client.post(
                ASK_URL,
                json={"question": "What's our total pipeline value this quarter?"},
                headers=_headers(1, "admin", team_id=3),
            )

        assert r.status_code == 200
        assert r.get_json()["data"] == {"value": 1000.0}

    @patch("flask_app.summarizer.summarize", return_value="Breakdown.")
    @patch("flask_app.intent_planner.plan_question")
    def test_admin_without_team_sees_everything(
        self, mock_plan: MagicMock, mock_summarize: MagicMock, flask_client
    ) -> None:
        mock_plan.return_value = _plan({"intent": "status_breakdown"})

        r = flask_client.post(ASK_URL, json={"question": "Deals by status?"}, headers=_headers(1, "admin"))

        assert r.status_code == 200
        body = r.get_json()
        assert body["filters"] == {}
        assert sum(entry["count"] for entry in body["data"]) == 5

    @patch("flask_app.summarizer.summarize", return_value="Team breakdown.")
    @patch("flask_app.intent_planner.plan_question")
    def test_member_sees_team_opportunities(
        self, mock_plan: MagicMock, mock_summarize: MagicMock, flask_client
    ) -> None:
        mock_plan.return_value = _plan({"intent": "count_opportunities"})

        r = flask_client.post(ASK_URL, json={"question": "How many deals?"}, headers=_headers(8, "user"))

        assert r.get_json()["data"] == {"value": 2}


class TestAskFailures:
    @patch("flask_app.summarizer.summarize")
    @patch("flask_app.intent_planner.plan_question")
    def test_schema_violation_returns_generic_500(
        self, mock_plan: MagicMock, mock_summarize: MagicMock, flask_client
    ) -> None:
        mock_plan.side_effect = PlannerSchemaViolation("LLM output failed schema validation: secret detail")

        r = flask_client.post(ASK_URL, json={"question": "How many deals?"}, headers=_headers())

        assert r.status_code == 500
        assert "secret detail" not in r.get_json()["error"]
        mock_summarize.assert_not_called()

    @patch("flask_app.summarizer.summarize")
    @patch("flask_app.intent_planner.plan_question")
    def test_summarizer_failure_discards_data(
        self, mock_plan: MagicMock, mock_summarize: MagicMock, flask_client
    ) -> None:
        mock_plan.return_value = _plan({"intent": "count_opportunities"})
        mock_summarize.side_effect = SummarizerUnavailable("quota exceeded")

        r = flask_client.post(ASK_URL, json={"question": "How many deals?"}, headers=_headers())

        assert r.status_code == 500
        assert set(r.get_json()) == {"error"}

    @patch("flask_app.intent_planner.plan_question")
    def test_configuration_error_during_pipeline_returns_503(
        self, mock_plan: MagicMock, flask_client
    ) -> None:
        mock_plan.side_effect = ConfigurationError("GEMINI_API_KEY is missing.")

        r = flask_client.post(ASK_URL, json={"question": "How many deals?"}, headers=_headers())

        assert r.status_code == 503
        assert r.get_json()["error"] == "GEMINI_API_KEY is missing."

    @patch("flask_app.intent_planner.plan_question")
    def test_unsupported_intent_returns_400(self, mock_plan: MagicMock, flask_client) -> None:
        mock_plan.return_value = InsightPlan.model_construct(
            intent="average_deal_size", filters=None, rationale=None
        )

        r = flask_client.post(ASK_URL, json={"question": "Average deal?"}, headers=_headers())

        assert r.status_code == 400

    @patch("flask_app.summarizer.summarize")
    @patch("flask_app.intent_planner.plan_question")
    def test_bad_timeframe_date_returns_500(
        self, mock_plan: MagicMock, mock_summarize: MagicMock, flask_client
    ) -> None:
        mock_plan.return_value = _plan(
            {
                "intent": "count_opportunities",
                "filters": {"timeframe": {"scope": "between", "startDate": "spring", "endDate": "summer"}},
            }
        )

        r = flask_client.post(ASK_URL, json={"question": "Deals this spring?"}, headers=_headers())

        assert r.status_code == 500
        mock_summarize.assert_not_called()


class TestAssistOpportunity:
    @patch("flask_app.opportunity_extractor.extract_opportunity")
    def test_extract_only(self, mock_extract: MagicMock, flask_client) -> None:
        mock_extract.return_value = OpportunityExtraction.model_validate(
            {"opportunity": {"companyName": "Initech", "expectedAmount": "5000"}, "confidence": 0.9}
        )

        r = flask_client.post(
            ASSIST_URL,
            json={"input": "Met Initech today, they want 5000 worth of licenses."},
            headers=_headers(),
        )

        assert r.status_code == 200
        body = r.get_json()
        assert body["success"] is True
        assert body["autoCreated"] is False
        assert body["opportunity"] is None
        assert body["structured"]["opportunity"]["companyName"] == "Initech"

    @patch("flask_app.opportunity_extractor.extract_opportunity")
    def test_auto_create_persists_opportunity(self, mock_extract: MagicMock, flask_client) -> None:
        mock_extract.return_value = OpportunityExtraction.model_validate(
            {"opportunity": {"companyName": "Initech", "expectedAmount": "5000"}}
        )

        r = flask_client.post(
            ASSIST_URL,
            json={"input": "Met Initech today, they want 5000 worth of licenses.", "autoCreate": True},
            headers=_headers(8, "user", team_id=3),
        )

        assert r.status_code == 200
        body = r.get_json()
        assert body["autoCreated"] is True
        assert body["opportunity"]["company_name"] == "Initech"
        assert body["opportunity"]["owner_id"] == 8
        assert body["opportunity"]["team_id"] == 3
        assert body["opportunity"]["expected_amount"] == "5000.00"

    @patch("flask_app.opportunity_extractor.extract_opportunity")
    def test_auto_create_without_company_returns_400(self, mock_extract: MagicMock, flask_client) -> None:
        mock_extract.return_value = OpportunityExtraction.model_validate({"opportunity": {"region": "East"}})

        r = flask_client.post(
            ASSIST_URL,
            json={"input": "Someone in the east called about pricing.", "autoCreate": True},
            headers=_headers(),
        )

        assert r.status_code == 400

    @patch("flask_app.opportunity_extractor.extract_opportunity")
    def test_short_input_returns_400(self, mock_extract: MagicMock, flask_client) -> None:
        r = flask_client.post(ASSIST_URL, json={"input": "hi"}, headers=_headers())

        assert r.status_code == 400
        mock_extract.assert_not_called()

    @patch("flask_app.opportunity_extractor.extract_opportunity")
    def test_extraction_failure_returns_500(self, mock_extract: MagicMock, flask_client) -> None:
        mock_extract.side_effect = ExtractionError("LLM returned empty response while extracting.")

        r = flask_client.post(
            ASSIST_URL,
            json={"input": "Met Initech today, they want licenses."},
            headers=_headers(),
        )

        assert r.status_code == 500

    def test_missing_token_returns_401(self, flask_client) -> None:
        r = flask_client.post(ASSIST_URL, json={"input": "Met Initech today, they want licenses."})
        assert r.status_code == 401
