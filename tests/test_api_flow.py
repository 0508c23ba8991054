from datetime import date, timedelta

import pytest
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from lessonbook.core.enums import UserRole

from tests.helpers import auth_headers, make_admin, make_shift, make_user


@pytest.mark.asyncio
async def test_shift_booking_report_flow(client: AsyncClient, db_session: AsyncSession, clock, notifier) -> None:
    instructor = await make_user(db_session, UserRole.INSTRUCTOR)
    student = await make_user(db_session, UserRole.STUDENT)
    rival = await make_user(db_session, UserRole.STUDENT)

    created = await client.post(
        "/api/v1/shifts",
        json={"lesson_date": "2026-03-04", "start_time": "10:00", "location": "TACHIKAWA"},
        headers=auth_headers(instructor),
    )
    assert created.status_code == 201
    shift_id = created.json()["id"]

    overlapping = await client.post(
        "/api/v1/shifts",
        json={"lesson_date": "2026-03-04", "start_time": "10:30"},
        headers=auth_headers(instructor),
    )
    assert overlapping.status_code == 409

    available = await client.get(f"/api/v1/shifts/available/{instructor.id}", headers=auth_headers(student))
    assert [s["id"] for s in available.json()] == [shift_id]

    booked = await client.post("/api/v1/bookings", json={"shift_id": shift_id}, headers=auth_headers(student))
    assert booked.status_code == 201
    booking_id = booked.json()["id"]

    taken = await client.post("/api/v1/bookings", json={"shift_id": shift_id}, headers=auth_headers(rival))
    assert taken.status_code == 409

    available = await client.get(f"/api/v1/shifts/available/{instructor.id}", headers=auth_headers(student))
    assert available.json() == []

    mine = await client.get("/api/v1/bookings/mine", headers=auth_headers(student))
    assert [b["id"] for b in mine.json()] == [booking_id]

    too_early = await client.post(
        f"/api/v1/bookings/{booking_id}/report", json={"content": "notes"}, headers=auth_headers(instructor)
    )
    assert too_early.status_code == 400

    clock.advance(timedelta(days=2, hours=2))  # Wednesday 11:00 local
    deadline = await client.get(f"/api/v1/bookings/{booking_id}/report/deadline", headers=auth_headers(instructor))
    assert deadline.json()["is_open"] is True

    filed = await client.post(
        f"/api/v1/bookings/{booking_id}/report",
        json={"content": "Covered perspective drawing", "homework": "Sketch 3 boxes"},
        headers=auth_headers(instructor),
    )
    assert filed.status_code == 201

    duplicate = await client.post(
        f"/api/v1/bookings/{booking_id}/report", json={"content": "again"}, headers=auth_headers(instructor)
    )
    assert duplicate.status_code == 409

    records = await client.get(f"/api/v1/students/{student.id}/records", headers=auth_headers(instructor))
    assert records.status_code == 200
    assert records.json()["bookings"][0]["report"]["homework"] == "Sketch 3 boxes"

    cancel = await client.delete(f"/api/v1/bookings/{booking_id}", headers=auth_headers(student))
    assert cancel.status_code == 409


@pytest.mark.asyncio
async def test_booking_inside_cutoff_is_400(client: AsyncClient, db_session: AsyncSession) -> None:
    instructor = await make_user(db_session, UserRole.INSTRUCTOR)
    student = await make_user(db_session, UserRole.STUDENT)
    shift = await make_shift(db_session, instructor, date(2026, 3, 2), "18:00")

    response = await client.post("/api/v1/bookings", json={"shift_id": str(shift.id)}, headers=auth_headers(student))
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_role_gates_on_routes(client: AsyncClient, db_session: AsyncSession) -> None:
    student = await make_user(db_session, UserRole.STUDENT)
    instructor = await make_user(db_session, UserRole.INSTRUCTOR)

    assert (await client.post(
        "/api/v1/shifts", json={"lesson_date": "2026-03-04", "start_time": "10:00"}, headers=auth_headers(student)
    )).status_code == 403
    assert (await client.get("/api/v1/users", headers=auth_headers(instructor))).status_code == 403
    assert (await client.get("/api/v1/shifts/master", headers=auth_headers(student))).status_code == 403
    assert (await client.get("/api/v1/archives/users", headers=auth_headers(instructor))).status_code == 403


@pytest.mark.asyncio
async def test_request_approval_flow(client: AsyncClient, db_session: AsyncSession, notifier) -> None:
    instructor = await make_user(db_session, UserRole.INSTRUCTOR)
    student = await make_user(db_session, UserRole.STUDENT)

    created = await client.post(
        "/api/v1/schedule-requests",
        json={"instructor_id": str(instructor.id), "lesson_date": "2026-03-06", "start_time": "19:00"},
        headers=auth_headers(student),
    )
    assert created.status_code == 201
    request_id = created.json()["id"]

    pending = await client.get("/api/v1/schedule-requests/pending", headers=auth_headers(instructor))
    assert [r["id"] for r in pending.json()] == [request_id]

    approved = await client.post(f"/api/v1/schedule-requests/{request_id}/approve", headers=auth_headers(instructor))
    assert approved.status_code == 200
    assert approved.json()["request"]["status"] == "APPROVED"

    again = await client.post(f"/api/v1/schedule-requests/{request_id}/reject", headers=auth_headers(instructor))
    assert again.status_code == 409

    mine = await client.get("/api/v1/bookings/mine", headers=auth_headers(student))
    assert [b["id"] for b in mine.json()] == [approved.json()["booking_id"]]


@pytest.mark.asyncio
async def test_archive_routes(client: AsyncClient, db_session: AsyncSession) -> None:
    admin = await make_admin(db_session)
    student = await make_user(db_session, UserRole.STUDENT)

    archived = await client.post(f"/api/v1/archives/users/{student.id}", headers=auth_headers(admin))
    assert archived.status_code == 200
    assert archived.json()["is_active"] is False

    self_archive = await client.post(f"/api/v1/archives/users/{admin.id}", headers=auth_headers(admin))
    assert self_archive.status_code == 400

    found = await client.get("/api/v1/archives/users", params={"role": "STUDENT"}, headers=auth_headers(admin))
    assert [u["id"] for u in found.json()] == [str(student.id)]

    restored = await client.delete(f"/api/v1/archives/users/{student.id}", headers=auth_headers(admin))
    assert restored.json()["is_active"] is True


@pytest.mark.asyncio
async def test_numeric_date_or_time_is_a_validation_error(client: AsyncClient, db_session: AsyncSession) -> None:
    instructor = await make_user(db_session, UserRole.INSTRUCTOR)

    bad_date = await client.post(
        "/api/v1/shifts", json={"lesson_date": 20260304, "start_time": "10:00"}, headers=auth_headers(instructor)
    )
    assert bad_date.status_code == 422

    bad_time = await client.post(
        "/api/v1/shifts", json={"lesson_date": "2026-03-04", "start_time": 1000}, headers=auth_headers(instructor)
    )
    assert bad_time.status_code == 422
