from datetime import date

import pytest
from jose import jwt

from app.models import Appointment, Customer, User

FAR_DATE = date(2099, 1, 5)


@pytest.fixture
def booked_day(session, catalog):
    customer = Customer(name="Priya", phone="9876500000")
    session.add(customer)
    session.flush()
    session.add_all([
        Appointment(customer_id=customer.id, service_id=catalog["haircut"].id,
                    staff_id=catalog["anna"].id, appointment_date=FAR_DATE,
                    start_time="10:00", end_time="11:00", status="confirmed"),
        Appointment(customer_id=customer.id, service_id=catalog["haircut"].id,
                    staff_id=None, appointment_date=FAR_DATE,
                    start_time="15:00", end_time="15:30"),
        Appointment(customer_id=customer.id, service_id=catalog["haircut"].id,
                    staff_id=catalog["anna"].id, appointment_date=FAR_DATE,
                    start_time="17:00", end_time="18:00", status="cancelled"),
    ])
    session.commit()
    return catalog


def slot_map(response):
    assert response.status_code == 200, response.text
    return {s["time"]: s["available"] for s in response.json()["slots"]}


def booking(catalog, **overrides):
    body = {
        "service_ids": [catalog["haircut"].id],
        "appointment_date": FAR_DATE.isoformat(),
        "start_time": "12:00",
        "user_name": "Meera",
        "user_phone": "+91 98765 43210",
    }
    body.update(overrides)
    return body


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}


def test_public_catalog_hides_inactive(client, catalog):
    names = [s["name"] for s in client.get("/services").json()]
    assert names == ["Haircut", "Facial"]
    assert {s["name"] for s in client.get("/staff").json()} == {"Anna", "Ravi"}


def test_availability_blocks_overlapping_cells(client, booked_day):
    slots = slot_map(client.get("/availability", params={
        "date": FAR_DATE.isoformat(), "service_ids": booked_day["haircut"].id,
    }))

    assert slots["09:00"] is True
    assert slots["09:30"] is False
    assert slots["10:00"] is False
    assert slots["10:30"] is False
    assert slots["11:00"] is True
    assert slots["14:30"] is False
    assert slots["17:00"] is True  # cancelled appointment frees the slot
    assert max(slots) == "20:00"


def test_availability_for_one_staff_member(client, booked_day):
    slots = slot_map(client.get("/availability", params={
        "date": FAR_DATE.isoformat(),
        "service_ids": booked_day["haircut"].id,
        "staff_id": booked_day["ravi"].id,
    }))

    assert slots["10:00"] is True
    assert slots["15:00"] is False  # unassigned bookings block every stylist


def test_availability_sums_service_durations(client, catalog):
    response = client.get("/availability", params=[
        ("date", FAR_DATE.isoformat()),
        ("service_ids", catalog["haircut"].id),
        ("service_ids", catalog["facial"].id),
    ])
    body = response.json()

    assert body["duration_minutes"] == 105
    assert body["slots"][-1]["time"] == "19:00"


def test_availability_without_services_uses_default_duration(client, catalog):
    body = client.get("/availability", params={"date": FAR_DATE.isoformat()}).json()
    assert body["duration_minutes"] == 30
    assert len(body["slots"]) == 24


def test_availability_rejects_inactive_service(client, catalog):
    response = client.get("/availability", params={
        "date": FAR_DATE.isoformat(), "service_ids": catalog["retired"].id,
    })
    assert response.status_code == 422


def test_booking_creates_appointment_and_customer(client, session, catalog):
    response = client.post("/appointments", json=booking(
        catalog, service_ids=[catalog["haircut"].id, catalog["facial"].id],
    ))

    assert response.status_code == 201, response.text
    body = response.json()
    assert body["start_time"] == "12:00"
    assert body["end_time"] == "13:45"
    assert body["status"] == "pending"
    customer = session.get(Customer, body["customer_id"])
    assert customer.phone == "9876543210"


def test_booking_conflict_is_rejected(client, booked_day):
    response = client.post("/appointments", json=booking(booked_day, start_time="09:30"))
    assert response.status_code == 409


def test_booking_same_slot_twice(client, catalog):
    assert client.post("/appointments", json=booking(catalog)).status_code == 201
    second = client.post("/appointments", json=booking(catalog, user_phone="9123456789"))
    assert second.status_code == 409


def test_booking_outside_hours(client, catalog):
    response = client.post("/appointments", json=booking(catalog, start_time="20:30"))
    assert response.status_code == 422


@pytest.mark.parametrize("field,value", [
    ("user_phone", "12345"),
    ("user_name", "A"),
    ("start_time", "25:00"),
    ("user_email", "not-an-email"),
    ("service_ids", []),
    ("appointment_date", "2020-01-01"),
])
def test_booking_validation(client, catalog, field, value):
    response = client.post("/appointments", json=booking(catalog, **{field: value}))
    assert response.status_code == 422


def test_booking_is_rate_limited(client, catalog):
    for _ in range(5):
        client.post("/appointments", json=booking(catalog))
    response = client.post("/appointments", json=booking(catalog))
    assert response.status_code == 429
    assert 0 < int(response.headers["Retry-After"]) <= 60


def test_login_and_logout(client, super_admin, login):
    headers = login(client, "owner@salon.test", "owner-pass-123")
    assert client.get("/me", headers=headers).json()["email"] == "owner@salon.test"

    assert client.post("/auth/logout", headers=headers).status_code == 204
    assert client.get("/me", headers=headers).status_code == 401


def test_login_wrong_password(client, super_admin):
    response = client.post("/auth/login", data={"username": "owner@salon.test", "password": "nope"})
    assert response.status_code == 401


def test_idle_session_expires(client, super_admin, timers, login):
    headers = login(client, "owner@salon.test", "owner-pass-123")
    expiry = max(timers.live(), key=lambda t: t.interval)
    assert expiry.interval == 30 * 60

    expiry.fire()

    assert client.get("/me", headers=headers).status_code == 401


def test_revoked_tokens_are_forgotten_after_expiry(auth):
    stale = auth.create_access_token({"sub": "owner@salon.test"}, expires_minutes=-1)
    auth.sign_out(stale)
    fresh = auth.create_access_token({"sub": "owner@salon.test"})
    auth.sign_out(fresh)

    assert list(auth._revoked) == [jwt.get_unverified_claims(fresh)["jti"]]


def test_activity_restarts_idle_timer(client, super_admin, timers, login):
    headers = login(client, "owner@salon.test", "owner-pass-123")
    first = list(timers.live())

    client.get("/me", headers=headers)

    assert all(t.cancelled for t in first)
    assert len(timers.live()) == 2


def test_super_admin_has_every_permission(client, owner_headers):
    body = client.get("/admin/me/permissions", headers=owner_headers).json()
    assert body["is_super_admin"] is True
    assert all(body["permissions"].values())


def test_user_without_admin_record_gets_view_only(client, session, auth, login):
    session.add(User(email="visitor@salon.test", password_hash=auth.hash_password("visitor-123")))
    session.commit()
    headers = login(client, "visitor@salon.test", "visitor-123")

    body = client.get("/admin/me/permissions", headers=headers).json()
    assert body["is_super_admin"] is False
    assert body["permissions"]["view_bookings"] is True
    assert body["permissions"]["manage_bookings"] is False
    assert client.get("/admin/users", headers=headers).status_code == 403


def test_staff_needs_manage_bookings_to_change_status(client, owner_headers, make_admin, booked_day, login):
    staff = make_admin("stylist@salon.test")
    headers = login(client, "stylist@salon.test", "staff-pass-123")

    listed = client.get("/admin/appointments", params={"on_date": FAR_DATE.isoformat()},
                        headers=headers)
    assert listed.status_code == 200
    pending = next(a for a in listed.json() if a["status"] == "pending")

    url = f"/admin/appointments/{pending['id']}/status"
    assert client.patch(url, json={"status": "confirmed"}, headers=headers).status_code == 403

    granted = client.patch(f"/admin/users/{staff.id}/permissions",
                           json={"permissions": {"manage_bookings": True}}, headers=owner_headers)
    assert granted.status_code == 200
    assert granted.json()["permissions"] == {"manage_bookings": True}

    response = client.patch(url, json={"status": "confirmed"}, headers=headers)
    assert response.status_code == 200
    assert response.json()["status"] == "confirmed"


def test_status_transition_rules(client, owner_headers, booked_day):
    cancelled = client.get("/admin/appointments", params={"status": "cancelled"},
                           headers=owner_headers).json()
    assert len(cancelled) == 1

    response = client.patch(f"/admin/appointments/{cancelled[0]['id']}/status",
                            json={"status": "confirmed"}, headers=owner_headers)
    assert response.status_code == 409


def test_manage_services_permission(client, owner_headers, make_admin, catalog, login):
    make_admin("desk@salon.test", permissions={"manage_services": True})
    desk = login(client, "desk@salon.test", "staff-pass-123")
    make_admin("junior@salon.test")
    junior = login(client, "junior@salon.test", "staff-pass-123")

    new_service = {"name": "Beard Trim", "duration_minutes": 15, "price": 150, "category": "men"}
    assert client.post("/admin/services", json=new_service, headers=junior).status_code == 403

    created = client.post("/admin/services", json=new_service, headers=desk)
    assert created.status_code == 201
    service_id = created.json()["id"]

    updated = client.patch(f"/admin/services/{service_id}", json={"price": 200}, headers=desk)
    assert updated.json()["price"] == 200
    assert client.delete(f"/admin/services/{service_id}", headers=desk).status_code == 204
    assert len(client.get("/admin/services", headers=junior).json()) == 3


def test_manage_staff_permission(client, owner_headers, catalog):
    response = client.patch(f"/admin/staff/{catalog['ravi'].id}", json={"is_active": False},
                            headers=owner_headers)
    assert response.status_code == 200
    assert [s["name"] for s in client.get("/staff").json()] == ["Anna"]


def test_invite_requires_super_admin(client, owner_headers, make_admin, login):
    make_admin("manager@salon.test", role="admin", permissions={"manage_users": True})
    manager = login(client, "manager@salon.test", "staff-pass-123")
    invite = {"email": "New@Salon.in", "role": "staff", "password": "welcome-123"}

    assert client.post("/admin/users", json=invite, headers=manager).status_code == 403

    created = client.post("/admin/users", json=invite, headers=owner_headers)
    assert created.status_code == 201
    assert created.json()["email"] == "new@salon.in"
    assert created.json()["role"] == "staff"

    again = client.post("/admin/users", json=invite, headers=owner_headers)
    assert again.status_code == 409

    new_headers = login(client, "new@salon.in", "welcome-123")
    perms = client.get("/admin/me/permissions", headers=new_headers).json()["permissions"]
    assert perms["manage_users"] is False


def test_invite_rejects_super_admin_role(client, owner_headers):
    invite = {"email": "boss@salon.test", "role": "super_admin", "password": "welcome-123"}
    assert client.post("/admin/users", json=invite, headers=owner_headers).status_code == 422


def test_permission_update_rejects_unknown_keys(client, owner_headers, make_admin):
    staff = make_admin("stylist@salon.test")
    response = client.patch(f"/admin/users/{staff.id}/permissions",
                            json={"permissions": {"launch_rockets": True}}, headers=owner_headers)
    assert response.status_code == 422


def test_super_admin_permissions_are_not_editable(client, owner_headers, super_admin):
    response = client.patch(f"/admin/users/{super_admin.id}/permissions",
                            json={"permissions": {"manage_users": False}}, headers=owner_headers)
    assert response.status_code == 409


def test_deactivated_admin_falls_back_to_defaults(client, owner_headers, make_admin, login):
    manager = make_admin("manager@salon.test", role="admin",
                         permissions={"manage_bookings": True, "view_users": True})
    headers = login(client, "manager@salon.test", "staff-pass-123")
    assert client.get("/admin/users", headers=headers).status_code == 200

    response = client.patch(f"/admin/users/{manager.id}/active", json={"is_active": False},
                            headers=owner_headers)
    assert response.status_code == 200

    perms = client.get("/admin/me/permissions", headers=headers).json()["permissions"]
    assert perms["manage_bookings"] is False
    assert client.get("/admin/users", headers=headers).status_code == 403


def test_super_admin_cannot_deactivate_self(client, owner_headers, super_admin):
    response = client.patch(f"/admin/users/{super_admin.id}/active", json={"is_active": False},
                            headers=owner_headers)
    assert response.status_code == 409


def test_permission_categories(client, owner_headers):
    categories = client.get("/admin/permission-categories", headers=owner_headers).json()
    assert [c["name"] for c in categories][0] == "Dashboard"
    assert client.get("/admin/permission-categories").status_code == 401


def test_standard_admin_cannot_edit_permissions(client, owner_headers, make_admin, login):
    manager = make_admin("manager@salon.test", role="admin",
                         permissions={"manage_users": True, "view_users": True})
    headers = login(client, "manager@salon.test", "staff-pass-123")

    response = client.patch(
        f"/admin/users/{manager.id}/permissions",
        json={"permissions": {"manage_bookings": True, "manage_services": True, "manage_staff": True}},
        headers=headers,
    )
    assert response.status_code == 403

    perms = client.get("/admin/me/permissions", headers=headers).json()["permissions"]
    assert perms["manage_bookings"] is False
    assert perms["manage_services"] is False


def test_super_admin_accounts_cannot_be_deactivated(client, owner_headers, make_admin):
    partner = make_admin("partner@salon.test", role="super_admin")
    response = client.patch(f"/admin/users/{partner.id}/active", json={"is_active": False},
                            headers=owner_headers)
    assert response.status_code == 409


def test_admin_listing_cleans_stored_permissions(client, owner_headers, make_admin):
    broken = make_admin("broken@salon.test", permissions=["garbage"])
    make_admin("mixed@salon.test",
               permissions={"manage_bookings": "yes", "view_users": True, "launch_rockets": True})

    response = client.get("/admin/users", headers=owner_headers)
    assert response.status_code == 200
    listed = {a["email"]: a["permissions"] for a in response.json()}
    assert listed["broken@salon.test"] == {}
    assert listed["mixed@salon.test"] == {"view_users": True}

    updated = client.patch(f"/admin/users/{broken.id}/permissions",
                           json={"permissions": {"manage_bookings": True}}, headers=owner_headers)
    assert updated.status_code == 200
    assert updated.json()["permissions"] == {"manage_bookings": True}


def test_booking_email_is_optional(client, session, catalog):
    blank = client.post("/appointments", json=booking(catalog, user_email=""))
    assert blank.status_code == 201, blank.text
    assert session.get(Customer, blank.json()["customer_id"]).email is None

    other = client.post("/appointments", json=booking(
        catalog, start_time="14:00", user_phone="9123456780", user_name="Kiran",
        user_email="kiran@mail.in",
    ))
    assert other.status_code == 201, other.text
    assert session.get(Customer, other.json()["customer_id"]).email == "kiran@mail.in"
