"""
HTTP surface of the eligibility router.
"""

from sqlalchemy import select

from utils.auth_utils import create_token
from eligibility import routes
from eligibility.logic.config_store import load_score_weights
from eligibility.models import Lead, LenderAssignmentHistory


def test_health(client):
    response = client.get("/eligibility/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


class TestRecommendation:

    def test_compute_returns_ranked_lenders_with_insights(self, client, seed):
        alpha = seed.lender("Alpha")
        lead_id = seed.lead()

        response = client.post(f"/eligibility/leads/{lead_id}/recommendation")

        assert response.status_code == 200
        body = response.json()
        assert body["top_lender_id"] == alpha
        top = body["evaluations"][0]
        assert top["score"] == 80
        assert top["insight"]["label"] == "Strong Option"
        assert top["grouped_factors"]["big_wins"]
        assert "components" not in top

    def test_explain_passes_lead_profile_to_explainer(self, client, seed, monkeypatch):
        seed.lender("Alpha")
        lead_id = seed.lead()
        calls = []

        def fake_explanation(cache_key, lead_inputs, recommendation):
            calls.append(lead_inputs)
            return {"summary": "Alpha fits"}

        monkeypatch.setattr(routes.explainer, "get_explanation", fake_explanation)
        response = client.post(f"/eligibility/leads/{lead_id}/recommendation", json={"explain": True})

        assert response.status_code == 200
        assert response.json()["ai_explanation"] == {"summary": "Alpha fits"}
        assert calls[0]["lead_id"] == lead_id
        assert calls[0]["loan_amount"] == 2000000
        assert "bound_lender_id" not in calls[0]

    def test_near_lender_limit_suggests_collateral(self, client, seed):
        seed.lender("Alpha")
        lead_id = seed.lead(loan_amount=4500000)

        body = client.post(f"/eligibility/leads/{lead_id}/recommendation").json()

        assert body["needs_human_review"] is False
        assert body["evaluations"][0]["pro_tip"]["title"] == "Interest Rate Opportunity"

    def test_secured_loan_near_limit_gets_other_tip(self, client, seed):
        seed.lender("Alpha")
        lead_id = seed.lead(loan_amount=4500000, loan_type="secured")

        body = client.post(f"/eligibility/leads/{lead_id}/recommendation").json()

        assert body["evaluations"][0]["pro_tip"]["title"] == "Negotiation Leverage"

    def test_unknown_lead_is_404(self, client, seed):
        seed.lender("Alpha")
        response = client.post("/eligibility/leads/missing/recommendation")
        assert response.status_code == 404

    def test_no_lenders_is_400(self, client, seed):
        lead_id = seed.lead()
        response = client.post(f"/eligibility/leads/{lead_id}/recommendation")
        assert response.status_code == 400

    def test_malformed_lead_is_400(self, client, seed):
        seed.lender("Alpha")
        lead_id = seed.lead(study_destination="Mars")
        response = client.post(f"/eligibility/leads/{lead_id}/recommendation")
        assert response.status_code == 400


class TestEligibility:

    def test_not_scored_yet(self, client, seed):
        response = client.get(f"/eligibility/leads/{seed.lead()}/eligibility")
        assert response.status_code == 404

    def test_after_compute(self, client, seed):
        seed.lender("Alpha")
        lead_id = seed.lead()
        client.post(f"/eligibility/leads/{lead_id}/recommendation")

        response = client.get(f"/eligibility/leads/{lead_id}/eligibility")

        assert response.status_code == 200
        body = response.json()
        assert body["overall_score"] == 80
        assert body["rate_tier"] == "good"
        assert body["stale"] is False


class TestFieldChange:

    def test_small_loan_change_is_ignored(self, client, seed, queue):
        lead_id = seed.lead()
        response = client.post(f"/eligibility/leads/{lead_id}/field-change", json={
            "field": "loan_amount", "old_value": 2000000, "new_value": 2100000,
        })
        assert response.json() == {"lead_id": lead_id, "scheduled": False, "state": "idle"}

    def test_relevant_change_schedules_debounced_recompute(self, client, seed, queue, clock, db):
        seed.lender("Alpha")
        lead_id = seed.lead()

        response = client.post(f"/eligibility/leads/{lead_id}/field-change", json={
            "field": "study_destination", "old_value": "USA", "new_value": "UK",
        })
        assert response.json()["scheduled"] is True
        assert response.json()["state"] == "pending"

        clock.advance(2.0)
        assert queue.run_due() == 1

        eligibility = client.get(f"/eligibility/leads/{lead_id}/eligibility")
        assert eligibility.status_code == 200

    def test_unknown_lead(self, client):
        response = client.post("/eligibility/leads/missing/field-change", json={"field": "loan_type"})
        assert response.status_code == 404


class TestAdminAuth:

    def test_missing_token(self, client):
        response = client.put("/eligibility/config/score-weights", json={})
        assert response.status_code == 401

    def test_invalid_token(self, client):
        response = client.put("/eligibility/config/score-weights", json={},
                              headers={"Authorization": "Bearer not-a-jwt"})
        assert response.status_code == 401

    def test_unknown_user(self, client):
        headers = {"Authorization": f"Bearer {create_token('nobody')}"}
        response = client.put("/eligibility/config/score-weights", json={}, headers=headers)
        assert response.status_code == 401

    def test_non_admin_is_forbidden(self, client, partner_headers):
        response = client.post("/eligibility/batch-recompute", json={}, headers=partner_headers)
        assert response.status_code == 403


class TestConfiguration:

    def test_weights_must_sum_to_100(self, client, admin_headers):
        response = client.put("/eligibility/config/score-weights", headers=admin_headers, json={
            "university_weight": 30, "student_weight": 40, "co_applicant_weight": 40,
        })
        assert response.status_code == 422
        assert response.json()["details"]

    def test_valid_weights_saved(self, client, admin_headers):
        response = client.put("/eligibility/config/score-weights", headers=admin_headers, json={
            "university_weight": 25, "student_weight": 45, "co_applicant_weight": 30,
        })
        assert response.status_code == 200
        assert response.json()["student_weight"] == 45

    def test_lender_config_with_gap_rejected(self, client, seed, admin_headers):
        lender_id = seed.lender("Alpha")
        response = client.put(f"/eligibility/lenders/{lender_id}/config", headers=admin_headers, json={
            "max_loan_amount": 4000000,
            "loan_bands": [
                {"score_min": 0, "score_max": 59, "min_percent": 0, "max_percent": 59},
                {"score_min": 61, "score_max": 100, "min_percent": 60, "max_percent": 100},
            ],
            "rate_config": [{"tier": "average", "min_rate": 13, "max_rate": 14, "score_threshold": 0}],
        })
        assert response.status_code == 422

    def test_scalar_legacy_bands_rejected(self, client, seed, admin_headers):
        lender_id = seed.lender("Alpha")
        response = client.put(f"/eligibility/lenders/{lender_id}/config", headers=admin_headers, json={
            "max_loan_amount": 4000000,
            "loan_bands": {"0-100": 5},
            "rate_config": [{"tier": "average", "min_rate": 13, "max_rate": 14, "score_threshold": 0}],
        })
        assert response.status_code == 422
        assert response.json()["details"]

    def test_saved_weights_are_read_back(self, client, db, admin_headers):
        client.put("/eligibility/config/score-weights", headers=admin_headers, json={
            "university_weight": 40, "student_weight": 30, "co_applicant_weight": 30,
        })
        db.expire_all()
        assert load_score_weights(db).university_weight == 40

    def test_unknown_lender_config(self, client, admin_headers):
        response = client.put("/eligibility/lenders/missing/config", headers=admin_headers, json={})
        assert response.status_code == 404

    def test_onboard_lender_with_default_config(self, client, admin_headers):
        response = client.post("/eligibility/lenders", headers=admin_headers, json={
            "name": "Gamma", "code": "GAM", "supported_destinations": ["UK", "USA"],
        })
        assert response.status_code == 201
        assert response.json()["is_active"] is True


def test_admin_reassigns_lender(client, seed, db, admin_headers):
    alpha = seed.lender("Alpha")
    lead_id = seed.lead()

    response = client.post(f"/eligibility/leads/{lead_id}/lender", headers=admin_headers, json={
        "lender_id": alpha, "change_reason": "manual", "assignment_notes": "Called the branch",
    })

    assert response.status_code == 200
    assert response.json()["new_lender_id"] == alpha
    db.expire_all()
    assert db.get(Lead, lead_id).lender_id == alpha
    history = db.execute(select(LenderAssignmentHistory)).scalars().all()
    assert history[0].changed_by is not None


def test_batch_recompute(client, seed, admin_headers):
    seed.lender("Alpha")
    seed.lead()
    seed.lead(study_destination="Mars")

    response = client.post("/eligibility/batch-recompute", headers=admin_headers, json={})

    assert response.status_code == 200
    body = response.json()
    assert (body["total"], body["processed"], body["failed"]) == (2, 1, 1)
    assert set(body["errors"][0]) == {"lead_id", "error"}


def test_explain(client):
    response = client.post("/eligibility/explain", json={"score": 88, "lender_name": "Credila"})
    assert response.status_code == 200
    assert response.json()["variant"] == "excellent"
