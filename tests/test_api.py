"""
End-to-end HTTP tests through the FastAPI app
"""
from datetime import timedelta

from core.roles import UserRole
from core.validators import utcnow
from models.participant import ParticipantStatus
from models.tournament import Tournament, TournamentStatus

PASSWORD = "correct-horse-42"


def registration(**overrides):
    data = {
        "name": "Rahim Uddin",
        "email": "rahim@example.com",
        "password": "supersecret1",
        "confirm_password": "supersecret1",
        "date_of_birth": "2001-05-20",
        "accepted_terms": True,
        "accepted_privacy": True,
    }
    data.update(overrides)
    return data


class TestAuth:

    def test_register_and_me(self, client):
        response = client.post("/auth/register", json=registration())
        assert response.status_code == 201
        body = response.json()
        assert body["user"]["is_age_verified"] is True
        assert body["user"]["role"] == "user"

        me = client.get("/auth/me", headers={"Authorization": f"Bearer {body['access_token']}"})
        assert me.status_code == 200
        assert me.json()["email"] == "rahim@example.com"

    def test_register_underage(self, client):
        fourteen = utcnow().date() - timedelta(days=14 * 365)
        response = client.post("/auth/register", json=registration(date_of_birth=fourteen.isoformat()))
        assert response.status_code == 403
        assert response.json()["type"] == "age_verification_required"

    def test_register_requires_terms(self, client):
        response = client.post("/auth/register", json=registration(accepted_terms=False))
        assert response.status_code == 400
        assert response.json()["type"] == "validation_error"

    def test_duplicate_email(self, client, player):
        response = client.post("/auth/register", json=registration(email=player.email))
        assert response.status_code == 400

    def test_login(self, client, player):
        response = client.post("/auth/login", json={"email": player.email, "password": PASSWORD})
        assert response.status_code == 200
        assert response.json()["user"]["id"] == player.id

        wrong = client.post("/auth/login", json={"email": player.email, "password": "nope-nope"})
        assert wrong.status_code == 401
        assert wrong.json()["type"] == "unauthorized"

    def test_missing_token(self, client):
        assert client.get("/auth/me").status_code == 401

    def test_verify_age(self, client, make_user, auth_headers):
        user = make_user(age_verified=False)
        response = client.post("/auth/verify-age", json={"date_of_birth": "1999-01-01"},
                               headers=auth_headers(user))
        assert response.status_code == 200
        assert response.json()["is_age_verified"] is True

    def test_verify_age_too_young(self, client, make_user, auth_headers):
        user = make_user(age_verified=False)
        response = client.post("/auth/verify-age", json={"date_of_birth": utcnow().date().isoformat()},
                               headers=auth_headers(user))
        assert response.status_code == 403


class TestTournamentEndpoints:

    def test_public_listing_never_exposes_credentials(self, client, make_tournament):
        make_tournament(status=TournamentStatus.DRAFT, name="Hidden Draft")
        make_tournament(name="Open Cup")

        response = client.get("/tournaments")
        assert response.status_code == 200
        body = response.json()
        assert body["total"] == 1
        assert [t["name"] for t in body["data"]] == ["Open Cup"]
        assert "room_password" not in body["data"][0]
        assert "room_password" not in client.get(f"/tournaments/{body['data'][0]['id']}").json()

    def test_admin_sees_drafts(self, client, admin, auth_headers, make_tournament):
        make_tournament(status=TournamentStatus.DRAFT)
        response = client.get("/tournaments", params={"status": "draft"}, headers=auth_headers(admin))
        assert response.json()["total"] == 1

    def test_status_filter(self, client, make_tournament):
        make_tournament(status=TournamentStatus.LIVE, name="Live One")
        make_tournament(name="Upcoming One")
        response = client.get("/tournaments", params={"status": "live"})
        assert [t["name"] for t in response.json()["data"]] == ["Live One"]

    def test_admin_creates_and_publishes(self, client, admin, auth_headers):
        headers = auth_headers(admin)
        start = (utcnow() + timedelta(days=1)).isoformat()
        created = client.post("/tournaments", headers=headers, json={
            "name": "Weekend Solo", "game_mode": "solo", "start_time": start, "entry_fee": "30",
            "room_id": "1", "room_password": "2", "party_code": "3",
        })
        assert created.status_code == 201
        assert created.json()["status"] == "draft"
        assert created.json()["room_password"] == "2"

        published = client.patch(f"/tournaments/{created.json()['id']}/status", headers=headers,
                                 json={"status": "published"})
        assert published.status_code == 200
        assert published.json()["status"] == "published"

    def test_invalid_transition_is_conflict(self, client, admin, auth_headers, make_tournament):
        tournament = make_tournament(status=TournamentStatus.FINISHED)
        response = client.patch(f"/tournaments/{tournament.id}/status", headers=auth_headers(admin),
                                json={"status": "live"})
        assert response.status_code == 409
        assert response.json()["type"] == "invalid_transition"

    def test_clearing_name_is_a_validation_error(self, client, admin, auth_headers, make_tournament):
        tournament = make_tournament()
        response = client.patch(f"/tournaments/{tournament.id}", headers=auth_headers(admin),
                                json={"name": None})
        assert response.status_code == 400
        assert response.json()["type"] == "validation_error"


    def test_players_cannot_manage(self, client, player, auth_headers, make_tournament):
        tournament = make_tournament()
        headers = auth_headers(player)
        assert client.post("/tournaments", headers=headers, json={"name": "Mine Now"}).status_code == 403
        assert client.delete(f"/tournaments/{tournament.id}", headers=headers).status_code == 403
        assert client.get(f"/admin/tournaments/{tournament.id}", headers=headers).status_code == 403

    def test_admin_detail_has_credentials_and_summary(self, client, admin, auth_headers, make_tournament):
        tournament = make_tournament()
        response = client.get(f"/admin/tournaments/{tournament.id}", headers=auth_headers(admin))
        assert response.status_code == 200
        body = response.json()
        assert body["tournament"]["room_password"] == "ff-2024"
        assert body["summary"]["allowed_transitions"] == ["cancelled", "live"]


class TestParticipationFlow:

    def test_join_pay_approve_and_reveal(self, client, db_session, admin, player, auth_headers,
                                         make_tournament, notifier):
        tournament = make_tournament()
        headers = auth_headers(player)

        joined = client.post(f"/tournaments/{tournament.id}/join", headers=headers)
        assert joined.status_code == 200
        assert joined.json()["status"] == "pending_payment"

        paid = client.post("/payments", headers=headers, json={
            "tournament_id": tournament.id, "method": "bkash", "payer_number": "01712345678",
            "txn_id": "8N7X6C5V4B", "amount": "50.00",
        })
        assert paid.status_code == 201
        assert paid.json()["participant"]["status"] == "pending_verify"
        payment_id = paid.json()["payment"]["id"]

        pending = client.get("/admin/payments/pending", headers=auth_headers(admin))
        assert [p["id"] for p in pending.json()] == [payment_id]

        approved = client.post(f"/payments/{payment_id}/approve", headers=auth_headers(admin))
        assert approved.status_code == 200
        assert approved.json()["status"] == "approved"
        assert notifier.of_kind("payment_status")[0][2]["status"] == "approved"

        again = client.post(f"/payments/{payment_id}/reject", headers=auth_headers(admin))
        assert again.status_code == 409
        assert again.json()["type"] == "already_resolved"

        mine = client.get("/user/tournaments", headers=headers).json()
        assert mine[0]["participant"]["status"] == "approved"
        assert mine[0]["credentials"] is None

        db_session.query(Tournament).filter(Tournament.id == tournament.id).update(
            {Tournament.start_time: utcnow() + timedelta(minutes=3)}, synchronize_session=False
        )
        db_session.commit()

        mine = client.get("/user/tournaments", headers=headers).json()
        assert mine[0]["credentials"]["room_id"] == "884213"

    def test_join_needs_age_verification(self, client, make_user, auth_headers, make_tournament):
        tournament = make_tournament()
        response = client.post(f"/tournaments/{tournament.id}/join", headers=auth_headers(make_user(age_verified=False)))
        assert response.status_code == 403
        assert response.json()["type"] == "age_verification_required"

    def test_wrong_amount(self, client, player, auth_headers, make_tournament, make_participant):
        tournament = make_tournament()
        make_participant(player, tournament, ParticipantStatus.PENDING_PAYMENT)

        response = client.post("/payments", headers=auth_headers(player), json={
            "tournament_id": tournament.id, "method": "nagad", "payer_number": "01712345678",
            "txn_id": "ZZ11YY22", "amount": "45",
        })
        assert response.status_code == 400

    def test_bad_payer_number_is_rejected_by_schema(self, client, player, auth_headers, make_tournament):
        tournament = make_tournament()
        response = client.post("/payments", headers=auth_headers(player), json={
            "tournament_id": tournament.id, "method": "bkash", "payer_number": "12345",
            "txn_id": "ZZ11YY22", "amount": "50",
        })
        assert response.status_code == 422

    def test_reject_with_reason(self, client, admin, player, auth_headers, make_tournament, make_participant):
        tournament = make_tournament()
        participant = make_participant(player, tournament, ParticipantStatus.PENDING_VERIFY)

        response = client.post(f"/payments/{participant.payment_id}/reject", headers=auth_headers(admin),
                               json={"reason": "Amount not received"})
        assert response.status_code == 200
        assert response.json()["rejection_reason"] == "Amount not received"


class TestWebsiteOrders:

    def test_order_approve_download(self, client, admin, player, auth_headers, notifier):
        created = client.post("/website-orders", headers=auth_headers(player), json={
            "method": "bkash", "payer_number": "01712345678", "txn_id": "SITE12345", "amount": "15000",
        })
        assert created.status_code == 201
        order_id = created.json()["id"]

        pending = client.get("/admin/website-orders/pending", headers=auth_headers(admin)).json()
        assert [o["id"] for o in pending] == [order_id]

        approved = client.post(f"/website-orders/{order_id}/approve", headers=auth_headers(admin))
        assert approved.status_code == 200
        assert approved.json()["status"] == "approved"

        link = notifier.of_kind("website_order_approved")[0][2]["download_url"]
        token = link.rsplit("/", 1)[-1]
        first = client.get(f"/download/{token}")
        assert first.status_code == 200
        assert first.json()["status"] == "delivered"
        assert client.get(f"/download/{token}").status_code == 404

    def test_player_cannot_approve_orders(self, client, player, auth_headers):
        created = client.post("/website-orders", headers=auth_headers(player), json={
            "method": "bkash", "payer_number": "01712345678", "txn_id": "SITE12345", "amount": "15000",
        })
        response = client.post(f"/website-orders/{created.json()['id']}/approve", headers=auth_headers(player))
        assert response.status_code == 403

    def test_unknown_download(self, client):
        response = client.get("/download/nothing-here")
        assert response.status_code == 404
        assert response.json()["type"] == "not_found"


class TestAdmin:

    def test_reminders_run_on_demand(self, client, admin, player, auth_headers, make_tournament,
                                     make_participant, notifier):
        tournament = make_tournament(start_time=utcnow() + timedelta(minutes=15))
        participant = make_participant(player, tournament, ParticipantStatus.APPROVED)

        response = client.post("/admin/reminders/run", headers=auth_headers(admin))
        assert response.status_code == 200
        assert response.json()["dispatched"] == [
            {"participant_id": participant.id, "milestone": "m30"},
            {"participant_id": participant.id, "milestone": "m20"},
        ]
        assert client.post("/admin/reminders/run", headers=auth_headers(admin)).json()["count"] == 0

    def test_audit_log_filter(self, client, admin, auth_headers):
        client.post("/tournaments", headers=auth_headers(admin), json={"name": "Logged Cup"})
        response = client.get("/admin/audit-logs", params={"action": "tournament_created"},
                              headers=auth_headers(admin))
        assert response.status_code == 200
        assert response.json()["total"] == 1
        assert response.json()["data"][0]["meta"]["name"] == "Logged Cup"

    def test_role_change_requires_super_admin(self, client, admin, player, make_user, auth_headers):
        denied = client.patch(f"/admin/users/{player.id}/role", headers=auth_headers(admin), json={"role": "admin"})
        assert denied.status_code == 403

        boss = make_user(role=UserRole.SUPER_ADMIN)
        allowed = client.patch(f"/admin/users/{player.id}/role", headers=auth_headers(boss), json={"role": "admin"})
        assert allowed.status_code == 200
        assert allowed.json()["role"] == "admin"

    def test_notifications_listing(self, client, player, auth_headers, db_session):
        from api.crud.notification_crud import create_notification
        create_notification(db_session, player.id, "payment_status", {"status": "approved"}, "sent")

        response = client.get("/user/notifications", headers=auth_headers(player))
        assert response.status_code == 200
        assert response.json()[0]["kind"] == "payment_status"
