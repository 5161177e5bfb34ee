"""REST API exposing AI-assisted analytics over the CRM opportunity store.

Run:
    export FLASK_APP=flask_app.py
    flask run --reload

The API expects the SQLite database to already exist, created via `init_db.py`.
Every endpoint requires `Authorization: Bearer <token>` (see `auth.issue_token`);
an optional `Teamid` header scopes the request to one team.
"""

from __future__ import annotations

import logging

from flask import Flask, jsonify, request
from pydantic import ValidationError

import auth
from config import LOG_LEVEL
from llm import client as llm_client
from llm import intent_planner, opportunity_extractor, summarizer
from schemas.extraction import AssistRequest
from services import insight_executor, opportunity_store, scope_resolver

logger = logging.getLogger(__name__)

AI_NOT_CONFIGURED = "AI features are not configured. Please contact an administrator."
UNAUTHORIZED = "Unauthorized"

app = Flask(__name__)


@app.route("/api/ai/insights/ask", methods=["POST"])
def ask_insight():
    """Answer a free-text question about the caller's opportunities.

    Body: {"question": "..."}. The question is planned into one of three
    aggregates, executed within the caller's scope, and summarized in prose.
    """
    if not llm_client.is_ai_configured():
        return jsonify({"error": AI_NOT_CONFIGURED}), 503

    caller = auth.caller_from_request(request)
    if caller is None:
        return jsonify({"error": UNAUTHORIZED}), 401

    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        payload = {}
    question = payload.get("question")
    if not isinstance(question, str) or not question.strip():
        return jsonify({"error": "Field 'question' (non-empty string) is required."}), 400

    try:
        # 1) Plan the question with Gemini
        plan = intent_planner.plan_question(question)

        # 2) Resolve the caller's scope and run the aggregate
        conn = opportunity_store.get_db_connection()
        try:
            scope = scope_resolver.resolve_scope(
                caller, lambda user_id: opportunity_store.team_ids_for_user(conn, user_id)
            )
            data = insight_executor.execute(conn, scope, plan)
        finally:
            conn.close()

        # 3) Explain the result with Gemini
        filters = plan.filters_dict()
        answer = summarizer.summarize(question, plan.intent, filters, data)
    except llm_client.ConfigurationError as exc:
        logger.error("AI configuration error: %s", exc)
        return jsonify({"error": str(exc)}), 503
    except insight_executor.UnsupportedIntent as exc:
        logger.warning("Unsupported insight intent: %s", exc)
        return jsonify({"error": "This type of question is not supported yet."}), 400
    except Exception:  # noqa: BLE001
        logger.exception("Failed to answer insight question for user %s", caller.id)
        return jsonify({"error": "Unable to process this question, please try again later."}), 500

    return jsonify(
        {
            "success": True,
            "intent": plan.intent,
            "filters": filters,
            "data": data,
            "answer": answer,
        }
    )


@app.route("/api/ai/opportunities/assist", methods=["POST"])
def assist_opportunity():
    """Extract opportunity fields from free-text notes, optionally creating the record.

    Body: {"input": "...", "autoCreate": false}.
    """
    if not llm_client.is_ai_configured():
        return jsonify({"error": AI_NOT_CONFIGURED}), 503

    caller = auth.caller_from_request(request)
    if caller is None:
        return jsonify({"error": UNAUTHORIZED}), 401

    try:
        body = AssistRequest.model_validate(request.get_json(silent=True) or {})
    except ValidationError as exc:
        errors = exc.errors()
        message = errors[0]["msg"] if errors else "Invalid input."
        return jsonify({"error": message}), 400

    try:
        structured = opportunity_extractor.extract_opportunity(body.input)

        created = None
        if body.autoCreate:
            fields = structured.opportunity
            if fields is None or not fields.companyName:
                return (
                    jsonify({"error": "Could not identify the required company name for the opportunity."}),
                    400,
                )
            conn = opportunity_store.get_db_connection()
            try:
                created = opportunity_store.create_opportunity(
                    conn,
                    fields,
                    owner_id=caller.id,
                    team_id=caller.current_team_id,
                )
            finally:
                conn.close()
            logger.info("Created opportunity %s from notes for user %s", created["id"], caller.id)
    except llm_client.ConfigurationError as exc:
        logger.error("AI configuration error: %s", exc)
        return jsonify({"error": str(exc)}), 503
    except Exception:  # noqa: BLE001
        logger.exception("Failed to extract opportunity for user %s", caller.id)
        return jsonify({"error": "Unable to generate the opportunity, please try again later."}), 500

    return jsonify(
        {
            "success": True,
            "structured": structured.model_dump(exclude_none=True),
            "autoCreated": created is not None,
            "opportunity": created,
        }
    )


if __name__ == "__main__":
    # For local development without FLASK_APP env var
    logging.basicConfig(
        level=LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    app.run(debug=True)
