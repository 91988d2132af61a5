"""Tests for the owner dashboard API."""

from datetime import datetime, timezone

from fastapi.testclient import TestClient

from cafebook.models import Cafe, Profile


API = "/api/v1/owner"
OWNER_PASSWORD = "owner-pass-123"
TODAY = datetime.now(timezone.utc).date().isoformat()


def _walk_in(client: TestClient, cafe: Cafe, headers: dict, start: str = "11:00", quantity: int = 1):
    return client.post(f"{API}/walk-in", headers=headers, json={
        "cafeId": cafe.id,
        "bookingDate": TODAY,
        "startTime": start,
        "tickets": [{"console": "ps5", "quantity": quantity}],
        "customerName": "Counter",
    })


class TestLogin:
    def test_login_returns_session(self, client: TestClient, cafe: Cafe, owner: Profile, fake_mail):
        response = client.post(f"{API}/login", json={"username": "owner", "password": OWNER_PASSWORD})

        assert response.status_code == 200
        data = response.json()
        assert data["userId"] == owner.id
        assert data["username"] == "owner"
        assert data["token"]
        assert data["expiresAt"]
        assert fake_mail.subjects == ["New login to your Gaming App account"]

        me = client.get(f"{API}/bookings", params={"cafeId": cafe.id}, headers={"Authorization": f"Bearer {data['token']}"})
        assert me.status_code == 200

    def test_wrong_password(self, client: TestClient, owner: Profile):
        response = client.post(f"{API}/login", json={"username": "owner", "password": "nope"})
        assert response.status_code == 401
        assert response.json() == {"error": "Invalid username or password"}

    def test_guest_cannot_log_in(self, client: TestClient, guest: Profile):
        response = client.post(f"{API}/login", json={"username": "player", "password": OWNER_PASSWORD})
        assert response.status_code == 403

    def test_verify(self, client: TestClient, owner: Profile, guest: Profile):
        assert client.post(f"{API}/verify", json={"userId": owner.id}).json() == {"role": "owner", "isOwner": True}
        assert client.post(f"{API}/verify", json={"userId": guest.id}).json() == {"role": "guest", "isOwner": False}
        assert client.post(f"{API}/verify", json={"userId": 9999}).json() == {"role": "guest", "isOwner": False}

        missing = client.post(f"{API}/verify", json={})
        assert missing.status_code == 400
        assert missing.json() == {"error": "userId is required"}


class TestAccessControl:
    def test_requires_session(self, client: TestClient, cafe: Cafe):
        response = client.get(f"{API}/cafes", params={"cafeId": cafe.id})
        assert response.status_code == 401
        assert response.json() == {"error": "Login required"}

    def test_guest_role_forbidden(self, client: TestClient, cafe: Cafe, guest_headers: dict):
        response = client.get(f"{API}/cafes", params={"cafeId": cafe.id}, headers=guest_headers)
        assert response.status_code == 403

    def test_other_owner_forbidden(self, client: TestClient, cafe: Cafe, other_owner_headers: dict):
        response = client.get(f"{API}/cafes", params={"cafeId": cafe.id}, headers=other_owner_headers)
        assert response.status_code == 403
        assert response.json() == {"error": "You do not manage this cafe"}

    def test_admin_may_manage_any_cafe(self, client: TestClient, cafe: Cafe, admin_headers: dict):
        response = client.get(f"{API}/cafes", params={"cafeId": cafe.id}, headers=admin_headers)
        assert response.status_code == 200

    def test_cookie_session(self, client: TestClient, cafe: Cafe, owner_headers: dict):
        token = owner_headers["Authorization"].split(" ", 1)[1]
        response = client.get(
            f"{API}/cafes", params={"cafeId": cafe.id}, headers={"Cookie": f"owner_session={token}"}
        )
        assert response.status_code == 200


class TestCafeSettings:
    def test_get_and_update(self, client: TestClient, cafe: Cafe, owner_headers: dict):
        response = client.get(f"{API}/cafes", params={"cafeId": cafe.id}, headers=owner_headers)
        assert response.json()["cafe"]["ps5_count"] == 4

        response = client.put(f"{API}/cafes", headers=owner_headers, json={
            "cafeId": cafe.id,
            "updates": {"description": "Late night gaming", "ps5_count": 6},
        })
        assert response.status_code == 200

        cafe_data = client.get(f"{API}/cafes", params={"cafeId": cafe.id}, headers=owner_headers).json()["cafe"]
        assert cafe_data["ps5_count"] == 6
        assert cafe_data["description"] == "Late night gaming"

    def test_unknown_fields_rejected(self, client: TestClient, cafe: Cafe, owner_headers: dict):
        response = client.put(f"{API}/cafes", headers=owner_headers, json={
            "cafeId": cafe.id,
            "updates": {"owner_id": 99},
        })
        assert response.status_code == 400

    def test_pricing(self, client: TestClient, cafe: Cafe, owner_headers: dict):
        response = client.put(f"{API}/pricing", headers=owner_headers, json={
            "cafeId": cafe.id,
            "cells": [{"console_type": "pool", "quantity": 1, "duration_minutes": 60, "price": 120}],
        })
        assert response.json() == {"success": True, "saved": 1}

        cells = client.get(f"{API}/pricing", params={"cafeId": cafe.id}, headers=owner_headers).json()
        assert {"console_type": "pool", "quantity": 1, "duration_minutes": 60, "price": 120.0}.items() <= cells[0].items()


class TestOwnerBookings:
    def test_walk_in_and_complete(self, client: TestClient, cafe: Cafe, owner_headers: dict):
        response = _walk_in(client, cafe, owner_headers)
        assert response.status_code == 201
        booking = response.json()
        assert booking["status"] == "confirmed"
        assert booking["payment_mode"] == "cash"

        listed = client.get(f"{API}/bookings", params={"cafeId": cafe.id, "date": TODAY}, headers=owner_headers)
        assert [b["id"] for b in listed.json()] == [booking["id"]]

        done = client.post(f"{API}/bookings/{booking['id']}/complete", headers=owner_headers)
        assert done.status_code == 200
        assert done.json()["status"] == "completed"

    def test_start_session(self, client: TestClient, cafe: Cafe, owner_headers: dict, other_owner_headers: dict):
        booking_id = _walk_in(client, cafe, owner_headers).json()["id"]

        assert client.post(f"{API}/bookings/{booking_id}/start", headers=other_owner_headers).status_code == 403

        started = client.post(f"{API}/bookings/{booking_id}/start", headers=owner_headers)
        assert started.status_code == 200
        assert started.json()["status"] == "in_progress"

        again = client.post(f"{API}/bookings/{booking_id}/start", headers=owner_headers)
        assert again.status_code == 409

        done = client.post(f"{API}/bookings/{booking_id}/complete", headers=owner_headers)
        assert done.json()["status"] == "completed"

    def test_complete_other_cafe_booking_forbidden(self, client: TestClient, cafe: Cafe, owner_headers: dict,
                                                   other_owner_headers: dict):
        booking_id = _walk_in(client, cafe, owner_headers).json()["id"]
        response = client.post(f"{API}/bookings/{booking_id}/complete", headers=other_owner_headers)
        assert response.status_code == 403


class TestCoupons:
    def test_coupon_lifecycle(self, client: TestClient, cafe: Cafe, owner_headers: dict):
        created = client.post(f"{API}/coupons", headers=owner_headers, json={
            "cafeId": cafe.id, "code": "late20", "discount_type": "percentage", "discount_value": 20,
        })
        assert created.status_code == 200
        coupon_id = created.json()["id"]

        duplicate = client.post(f"{API}/coupons", headers=owner_headers, json={
            "cafeId": cafe.id, "code": "LATE20", "discount_type": "flat", "discount_value": 5,
        })
        assert duplicate.status_code == 409

        toggled = client.patch(f"{API}/coupons", headers=owner_headers, json={"id": coupon_id, "is_active": False})
        assert toggled.status_code == 200

        coupons = client.get(f"{API}/coupons", params={"cafeId": cafe.id}, headers=owner_headers).json()
        assert coupons[0]["code"] == "LATE20"
        assert coupons[0]["is_active"] is False

        usage = client.get(f"{API}/coupons/usage", params={"couponId": coupon_id}, headers=owner_headers)
        assert usage.json() == []

        assert client.delete(f"{API}/coupons", params={"id": coupon_id}, headers=owner_headers).status_code == 200
        assert client.get(f"{API}/coupons", params={"cafeId": cafe.id}, headers=owner_headers).json() == []

    def test_delete_requires_id(self, client: TestClient, owner_headers: dict):
        response = client.delete(f"{API}/coupons", headers=owner_headers)
        assert response.status_code == 400
        assert response.json() == {"error": "id required"}


class TestMemberships:
    def test_plans_and_subscriptions(self, client: TestClient, cafe: Cafe, owner_headers: dict):
        plan = client.post(f"{API}/membership-plans", headers=owner_headers, json={
            "cafeId": cafe.id, "name": "Weekend Pass", "price": 499, "hours": 5, "validity_days": 7,
            "console_type": "ps5",
        })
        assert plan.status_code == 200
        plan_id = plan.json()["id"]

        sub = client.post(f"{API}/subscriptions", headers=owner_headers, json={
            "cafeId": cafe.id, "membershipPlanId": plan_id, "customerName": "Ravi", "paymentMode": "upi",
        })
        assert sub.status_code == 201
        assert sub.json()["hours_remaining"] == 5.0
        assert sub.json()["amount_paid"] == 499.0

        subs = client.get(f"{API}/subscriptions", params={"cafeId": cafe.id}, headers=owner_headers).json()
        assert len(subs) == 1

        deleted = client.delete(f"{API}/subscriptions", params={"id": sub.json()["id"]}, headers=owner_headers)
        assert deleted.status_code == 200
        assert client.delete(f"{API}/membership-plans", params={"id": plan_id}, headers=owner_headers).status_code == 200
        assert client.get(f"{API}/membership-plans", params={"cafeId": cafe.id}, headers=owner_headers).json() == []


class TestCashDrawerRoutes:
    def test_collect_and_verify(self, client: TestClient, cafe: Cafe, owner_headers: dict):
        _walk_in(client, cafe, owner_headers, quantity=2)

        status = client.get(f"{API}/cash-drawer", params={"cafeId": cafe.id, "date": TODAY}, headers=owner_headers)
        assert status.status_code == 200
        assert status.json()["cashSalesToday"] == 280.0
        assert status.json()["hasCollected"] is False

        collected = client.post(f"{API}/cash-drawer/collect", headers=owner_headers, json={
            "cafeId": cafe.id, "date": TODAY, "amountCollected": 200, "changeLeft": 80,
        })
        assert collected.status_code == 200
        assert collected.json()["collected_by"] == "owner"

        again = client.post(f"{API}/cash-drawer/collect", headers=owner_headers, json={
            "cafeId": cafe.id, "date": TODAY, "amountCollected": 10, "changeLeft": 0,
        })
        assert again.status_code == 409

        closed = client.post(f"{API}/cash-drawer/verify", headers=owner_headers, json={
            "cafeId": cafe.id, "date": TODAY, "actualClosing": 200,
        })
        assert closed.status_code == 200
        assert closed.json()["expected_closing"] == 200.0
        assert closed.json()["has_discrepancy"] is False

    def test_history(self, client: TestClient, cafe: Cafe, owner_headers: dict, other_owner_headers: dict):
        client.get(f"{API}/cash-drawer", params={"cafeId": cafe.id, "date": "2026-10-01"}, headers=owner_headers)
        client.get(f"{API}/cash-drawer", params={"cafeId": cafe.id, "date": "2026-10-02"}, headers=owner_headers)

        history = client.get(f"{API}/cash-drawer/history", params={"cafeId": cafe.id}, headers=owner_headers)
        assert history.status_code == 200
        assert [r["record_date"] for r in history.json()] == ["2026-10-02", "2026-10-01"]

        limited = client.get(f"{API}/cash-drawer/history", params={"cafeId": cafe.id, "limit": 1}, headers=owner_headers)
        assert len(limited.json()) == 1

        rival = client.get(f"{API}/cash-drawer/history", params={"cafeId": cafe.id}, headers=other_owner_headers)
        assert rival.status_code == 403
