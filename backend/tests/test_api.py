"""HTTP-level tests: authentication, error mapping, access checks, audit."""

import pytest
from jose import JWTError, jwt

from caseflow.config import settings
from caseflow.auth.jwt import create_access_token, decode_access_token

TEST_PASSWORD = "Passw0rd!"


# ── JWT utility tests ─────────────────────────────────────────────────────────

class TestJWTUtils:
    def test_create_and_decode_access_token(self):
        token = create_access_token("u-1", "user@caseflow.test", "agent")
        claims = decode_access_token(token)
        assert claims["sub"] == "u-1"
        assert claims["email"] == "user@caseflow.test"
        assert claims["role"] == "agent"
        assert claims["type"] == "access"

    def test_decode_invalid_token_raises(self):
        with pytest.raises(JWTError):
            decode_access_token("invalid.token.here")

    def test_decode_rejects_token_without_role(self):
        token = jwt.encode({"sub": "u-1", "type": "access", "exp": 4102444800}, settings.secret_key, algorithm="HS256")
        with pytest.raises(JWTError, match="role"):
            decode_access_token(token)


# ── Auth endpoints ───────────────────────────────────────────────────────────

@pytest.mark.asyncio
class TestAuth:
    async def test_login_success(self, client, agent):
        resp = await client.post("/api/auth/login", json={"email": agent.email, "password": TEST_PASSWORD})
        assert resp.status_code == 200
        data = resp.json()
        assert data["token_type"] == "bearer"
        assert data["user"]["id"] == agent.id
        assert data["user"]["role"] == "agent"
        assert decode_access_token(data["access_token"])["sub"] == agent.id

    async def test_login_wrong_password(self, client, agent):
        resp = await client.post("/api/auth/login", json={"email": agent.email, "password": "wrong"})
        assert resp.status_code == 401

    async def test_login_disabled_account(self, client, db_session, agent):
        agent.is_active = False
        await db_session.flush()
        resp = await client.post("/api/auth/login", json={"email": agent.email, "password": TEST_PASSWORD})
        assert resp.status_code == 403

    async def test_missing_token(self, client):
        resp = await client.get("/api/cases")
        assert resp.status_code == 401

    async def test_garbage_token(self, client):
        resp = await client.get("/api/cases", headers={"Authorization": "Bearer nope"})
        assert resp.status_code == 401

    async def test_me_lists_permission_tokens(self, client, headers_for, applicant):
        resp = await client.get("/api/auth/me", headers=headers_for(applicant))
        assert resp.status_code == 200
        data = resp.json()
        assert data["id"] == applicant.id
        assert "case:read:self" in data["permissions"]
        assert "case:read" not in data["permissions"]


# ── Cases ────────────────────────────────────────────────────────────────────

@pytest.mark.asyncio
class TestCaseEndpoints:
    async def test_applicant_opens_a_draft(self, client, headers_for, applicant):
        resp = await client.post(
            "/api/cases",
            json={"title": "Family reunion", "visa_type": "family"},
            headers=headers_for(applicant),
        )
        assert resp.status_code == 201
        body = resp.json()
        assert body["status"] == "draft"
        assert body["applicant_id"] == applicant.id

    async def test_agent_cannot_open_cases(self, client, headers_for, agent):
        resp = await client.post(
            "/api/cases", json={"title": "x", "visa_type": "work"}, headers=headers_for(agent),
        )
        assert resp.status_code == 403

    async def test_list_is_scoped_to_caller(self, client, headers_for, make_case, applicant, other_applicant):
        await make_case(applicant)
        await make_case(other_applicant)
        resp = await client.get("/api/cases", headers=headers_for(applicant))
        assert resp.status_code == 200
        assert resp.json()["total"] == 1

    async def test_missing_case_is_404(self, client, headers_for, agent):
        resp = await client.get("/api/cases/no-such-case", headers=headers_for(agent))
        assert resp.status_code == 404

    async def test_unassigned_agent_is_403(self, client, headers_for, assigned_case, other_agent):
        resp = await client.get(f"/api/cases/{assigned_case.id}", headers=headers_for(other_agent))
        assert resp.status_code == 403
        assert resp.json()["detail"] == "Agents can only access cases assigned to them"

    async def test_agent_moves_case_into_review(self, client, headers_for, assigned_case, agent):
        resp = await client.put(
            f"/api/cases/{assigned_case.id}/status",
            json={"status": "in_review"},
            headers=headers_for(agent),
        )
        assert resp.status_code == 200
        assert resp.json()["status"] == "in_review"

    async def test_invalid_transition_is_400(self, client, headers_for, assigned_case, agent):
        resp = await client.put(
            f"/api/cases/{assigned_case.id}/status",
            json={"status": "completed"},
            headers=headers_for(agent),
        )
        assert resp.status_code == 400
        assert "Invalid status transition" in resp.json()["detail"]

    async def test_missing_notes_is_400(self, client, headers_for, make_case, applicant, agent):
        case = await make_case(applicant, "in_review", agent)
        resp = await client.put(
            f"/api/cases/{case.id}/status", json={"status": "approved"}, headers=headers_for(agent),
        )
        assert resp.status_code == 400
        assert "Notes are required" in resp.json()["detail"]

    async def test_applicant_approving_own_case_is_403(self, client, headers_for, make_case, applicant, agent):
        case = await make_case(applicant, "in_review", agent)
        resp = await client.put(
            f"/api/cases/{case.id}/status",
            json={"status": "approved", "notes": "looks great"},
            headers=headers_for(applicant),
        )
        assert resp.status_code == 403

    async def test_history_returns_status_changes(self, client, headers_for, assigned_case, agent):
        await client.put(
            f"/api/cases/{assigned_case.id}/status", json={"status": "in_review"}, headers=headers_for(agent),
        )
        resp = await client.get(f"/api/cases/{assigned_case.id}/history", headers=headers_for(agent))
        assert resp.status_code == 200
        history = resp.json()["history"]
        assert history[0]["action"] == "update_status"
        assert history[0]["details"]["new_status"] == "in_review"

    async def test_only_admins_assign(self, client, headers_for, assigned_case, agent, other_agent, admin):
        body = {"agent_id": other_agent.id}
        resp = await client.put(f"/api/cases/{assigned_case.id}/assign", json=body, headers=headers_for(agent))
        assert resp.status_code == 403

        resp = await client.put(f"/api/cases/{assigned_case.id}/assign", json=body, headers=headers_for(admin))
        assert resp.status_code == 200
        assert resp.json()["agent_id"] == other_agent.id

    async def test_owner_adds_document(self, client, headers_for, assigned_case, applicant):
        resp = await client.post(
            f"/api/cases/{assigned_case.id}/documents",
            json={"name": "birth-certificate.pdf", "document_type": "certificate"},
            headers=headers_for(applicant),
        )
        assert resp.status_code == 201
        resp = await client.get(f"/api/cases/{assigned_case.id}/documents", headers=headers_for(applicant))
        assert [d["name"] for d in resp.json()] == ["birth-certificate.pdf"]


# ── Documents & access checks ────────────────────────────────────────────────

@pytest.mark.asyncio
class TestAccessEndpoints:
    async def test_unassigned_agent_cannot_read_document(self, client, headers_for, document, other_agent):
        resp = await client.get(f"/api/documents/{document.id}", headers=headers_for(other_agent))
        assert resp.status_code == 403
        assert "assigned to them" in resp.json()["detail"]

    async def test_access_check_for_self(self, client, headers_for, assigned_case, other_applicant):
        resp = await client.post(
            "/api/security/access-check",
            json={"resource_type": "case", "resource_id": assigned_case.id, "action": "read"},
            headers=headers_for(other_applicant),
        )
        assert resp.status_code == 200
        assert resp.json() == {"allowed": False, "reason": "Applicants can only access their own cases"}

    async def test_access_check_is_audited(self, client, headers_for, assigned_case, agent, admin):
        await client.post(
            "/api/security/access-check",
            json={"resource_type": "case", "resource_id": assigned_case.id, "action": "access_check"},
            headers=headers_for(agent),
        )
        resp = await client.get("/api/audit", params={"action": "access_check"}, headers=headers_for(admin))
        assert resp.status_code == 200
        items = resp.json()["items"]
        assert len(items) == 1
        assert items[0]["details"]["allowed"] is True

    async def test_checking_others_requires_admin(self, client, headers_for, assigned_case, applicant, agent):
        body = {"resource_type": "case", "resource_id": assigned_case.id, "action": "read", "user_id": applicant.id}
        resp = await client.post("/api/security/access-check", json=body, headers=headers_for(agent))
        assert resp.status_code == 403

    async def test_admin_checks_for_another_user(self, client, headers_for, assigned_case, applicant, admin):
        body = {"resource_type": "case", "resource_id": assigned_case.id, "action": "read", "user_id": applicant.id}
        resp = await client.post("/api/security/access-check", json=body, headers=headers_for(admin))
        assert resp.json()["allowed"] is True

    async def test_bad_action_is_400(self, client, headers_for, applicant):
        resp = await client.post(
            "/api/security/access-check",
            json={"resource_type": "case", "resource_id": "x", "action": "teleport"},
            headers=headers_for(applicant),
        )
        assert resp.status_code == 400

    async def test_permission_group_grant_flow(self, client, headers_for, agent, admin):
        resp = await client.post(
            "/api/security/permission-groups",
            json={"name": "reporting", "permissions": ["analytics:read"]},
            headers=headers_for(admin),
        )
        assert resp.status_code == 201
        group_id = resp.json()["id"]

        resp = await client.post(
            f"/api/security/permission-groups/{group_id}/grants",
            json={"user_id": agent.id},
            headers=headers_for(admin),
        )
        assert resp.status_code == 204

        me = await client.get("/api/auth/me", headers=headers_for(agent))
        assert "analytics:read" in me.json()["permissions"]

        resp = await client.delete(
            f"/api/security/permission-groups/{group_id}/grants/{agent.id}", headers=headers_for(admin),
        )
        assert resp.status_code == 204

    async def test_non_admin_cannot_manage_groups(self, client, headers_for, agent):
        resp = await client.post(
            "/api/security/permission-groups",
            json={"name": "sneaky", "permissions": ["security:write"]},
            headers=headers_for(agent),
        )
        assert resp.status_code == 403


# ── Audit, notifications, ops ────────────────────────────────────────────────

@pytest.mark.asyncio
class TestOperationalEndpoints:
    async def test_audit_requires_security_read(self, client, headers_for, agent):
        resp = await client.get("/api/audit", headers=headers_for(agent))
        assert resp.status_code == 403

    async def test_audit_integrity(self, client, headers_for, assigned_case, agent, admin):
        await client.put(
            f"/api/cases/{assigned_case.id}/status", json={"status": "in_review"}, headers=headers_for(agent),
        )
        resp = await client.get("/api/audit/integrity", headers=headers_for(admin))
        assert resp.status_code == 200
        data = resp.json()
        assert data["valid"] is True
        assert data["entries_checked"] == 1

    async def test_notifications_after_transition(self, client, headers_for, assigned_case, applicant, agent):
        await client.put(
            f"/api/cases/{assigned_case.id}/status", json={"status": "in_review"}, headers=headers_for(agent),
        )
        resp = await client.get("/api/notifications", headers=headers_for(applicant))
        assert resp.status_code == 200
        notifications = resp.json()
        assert len(notifications) == 1
        assert notifications[0]["kind"] == "case_status_change"

        resp = await client.post(
            f"/api/notifications/{notifications[0]['id']}/read", headers=headers_for(applicant),
        )
        assert resp.status_code == 204
        resp = await client.get("/api/notifications", params={"unread_only": True}, headers=headers_for(applicant))
        assert resp.json() == []

    async def test_metrics(self, client):
        resp = await client.get("/metrics")
        assert resp.status_code == 200
        assert "case_transitions_total" in resp.text

    async def test_health(self, client):
        resp = await client.get("/api/health")
        assert resp.status_code == 200
        assert resp.json()["components"]["database"]["status"] == "connected"


# ── Identity comes from the stored user, not the token ───────────────────────

@pytest.mark.asyncio
class TestStoredIdentity:
    async def test_granted_group_opens_audit_log(self, client, headers_for, agent, admin):
        resp = await client.post(
            "/api/security/permission-groups",
            json={"name": "auditors", "permissions": ["security:read"]},
            headers=headers_for(admin),
        )
        group_id = resp.json()["id"]
        await client.post(
            f"/api/security/permission-groups/{group_id}/grants",
            json={"user_id": agent.id},
            headers=headers_for(admin),
        )

        resp = await client.get("/api/audit", headers=headers_for(agent))
        assert resp.status_code == 200
        resp = await client.get("/api/audit/integrity", headers=headers_for(agent))
        assert resp.status_code == 200

    async def test_demoted_user_loses_old_transition_rights(
        self, client, db_session, headers_for, make_case, applicant, admin
    ):
        stale_headers = headers_for(admin)
        admin.role = "agent"
        case = await make_case(applicant, "draft", admin)

        resp = await client.put(
            f"/api/cases/{case.id}/status", json={"status": "submitted"}, headers=stale_headers,
        )
        assert resp.status_code == 403

        resp = await client.get(f"/api/cases/{case.id}", headers=stale_headers)
        assert resp.json()["status"] == "draft"

    async def test_disabled_account_is_locked_out(self, client, db_session, headers_for, assigned_case, agent):
        headers = headers_for(agent)
        agent.is_active = False
        await db_session.commit()

        resp = await client.put(
            f"/api/cases/{assigned_case.id}/status", json={"status": "in_review"}, headers=headers,
        )
        assert resp.status_code == 403
        assert resp.json()["detail"] == "Account is disabled"

    async def test_token_for_deleted_user_is_rejected(self, client):
        headers = {"Authorization": f"Bearer {create_access_token('ghost', 'ghost@caseflow.test', 'admin')}"}
        resp = await client.get("/api/cases", headers=headers)
        assert resp.status_code == 401


@pytest.mark.asyncio
class TestCaseListPaging:
    async def test_total_counts_every_case_not_the_page(self, client, headers_for, make_case, applicant, admin):
        for _ in range(3):
            await make_case(applicant)

        resp = await client.get("/api/cases", params={"size": 2}, headers=headers_for(admin))
        assert resp.status_code == 200
        body = resp.json()
        assert body["total"] == 3
        assert body["pages"] == 2
        assert len(body["items"]) == 2

        resp = await client.get("/api/cases", params={"size": 2, "page": 2}, headers=headers_for(admin))
        assert len(resp.json()["items"]) == 1
