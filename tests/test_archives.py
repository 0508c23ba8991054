from datetime import date

import pytest

from lessonbook.api.v1.admission_results import service as admission_service
from lessonbook.api.v1.admission_results.schemas import AdmissionResultItem, AdmissionResultsReplace
from lessonbook.api.v1.archives import service as archive_service
from lessonbook.api.v1.archives.schemas import ArchiveAccessGrant
from lessonbook.api.v1.students import service as student_service
from lessonbook.core.enums import AdmissionStatus, UserRole
from lessonbook.core.exceptions import NotFoundError, SelfArchiveError, UnauthorizedError

from tests.helpers import NOW, actor, make_admin, make_booking, make_shift, make_user


async def _results(db, admin, student, *items):
    await admission_service.replace_admission_results(
        db, actor(admin), student.id, AdmissionResultsReplace(results=list(items))
    )


@pytest.mark.asyncio
async def test_archive_then_unarchive_restores_user(db_session, clock) -> None:
    admin = await make_admin(db_session)
    student = await make_user(db_session, UserRole.STUDENT)

    archived = await archive_service.archive_user(db_session, actor(admin), student.id, clock)
    assert archived.is_active is False
    assert archived.archived_at == NOW
    assert archived.archive_year == 2026

    restored = await archive_service.unarchive_user(db_session, actor(admin), student.id)
    assert restored.is_active is True
    assert restored.archived_at is None
    assert restored.archive_year is None


@pytest.mark.asyncio
async def test_unarchive_never_archived_is_noop(db_session) -> None:
    admin = await make_admin(db_session)
    student = await make_user(db_session, UserRole.STUDENT)

    result = await archive_service.unarchive_user(db_session, actor(admin), student.id)
    assert result.is_active is True
    assert result.archived_at is None


@pytest.mark.asyncio
async def test_admin_cannot_archive_self(db_session, clock) -> None:
    admin = await make_admin(db_session)

    with pytest.raises(SelfArchiveError):
        await archive_service.archive_user(db_session, actor(admin), admin.id, clock)


@pytest.mark.asyncio
async def test_only_admin_archives(db_session, clock) -> None:
    instructor = await make_user(db_session, UserRole.INSTRUCTOR)
    student = await make_user(db_session, UserRole.STUDENT)

    with pytest.raises(UnauthorizedError):
        await archive_service.archive_user(db_session, actor(instructor), student.id, clock)


@pytest.mark.asyncio
async def test_grant_is_idempotent_and_revoke_of_missing_grant_succeeds(db_session) -> None:
    admin = await make_admin(db_session)
    instructor = await make_user(db_session, UserRole.INSTRUCTOR)
    student = await make_user(db_session, UserRole.STUDENT)
    grant = ArchiveAccessGrant(instructor_id=instructor.id, student_id=student.id)

    first = await archive_service.grant_archive_access(db_session, actor(admin), grant)
    second = await archive_service.grant_archive_access(db_session, actor(admin), grant)
    assert first.id == second.id
    assert len(await archive_service.list_archive_access(db_session, actor(admin), student.id)) == 1

    revoked = await archive_service.revoke_archive_access(db_session, actor(admin), instructor.id, student.id)
    assert revoked.revoked is True
    again = await archive_service.revoke_archive_access(db_session, actor(admin), instructor.id, student.id)
    assert again.success is True
    assert again.revoked is False


@pytest.mark.asyncio
async def test_grant_requires_matching_roles(db_session) -> None:
    admin = await make_admin(db_session)
    instructor = await make_user(db_session, UserRole.INSTRUCTOR)
    student = await make_user(db_session, UserRole.STUDENT)

    with pytest.raises(NotFoundError):
        await archive_service.grant_archive_access(
            db_session, actor(admin), ArchiveAccessGrant(instructor_id=student.id, student_id=student.id)
        )
    with pytest.raises(NotFoundError):
        await archive_service.grant_archive_access(
            db_session, actor(admin), ArchiveAccessGrant(instructor_id=instructor.id, student_id=instructor.id)
        )


@pytest.mark.asyncio
async def test_search_archived_users_filters(db_session, clock) -> None:
    admin = await make_admin(db_session)
    passed_first = await make_user(db_session, UserRole.STUDENT)
    passed_final = await make_user(db_session, UserRole.STUDENT)
    rejected = await make_user(db_session, UserRole.STUDENT)
    instructor = await make_user(db_session, UserRole.INSTRUCTOR)
    active = await make_user(db_session, UserRole.STUDENT)

    await _results(db_session, admin, passed_first, AdmissionResultItem(school_name="Tokyo Arts", rank=1, status=AdmissionStatus.PASSED_FIRST))
    await _results(db_session, admin, passed_final, AdmissionResultItem(school_name="Kyoto Design", rank=1, status=AdmissionStatus.PASSED_FINAL))
    await _results(
        db_session,
        admin,
        rejected,
        AdmissionResultItem(school_name="Tokyo Arts", rank=1, status=AdmissionStatus.REJECTED),
        AdmissionResultItem(school_name="Osaka Fine Arts", rank=2, status=AdmissionStatus.PASSED_FIRST),
    )
    for user in (passed_first, passed_final, rejected, instructor):
        await archive_service.archive_user(db_session, actor(admin), user.id, clock)

    everyone = await archive_service.search_archived_users(db_session, actor(admin))
    assert active.id not in {u.id for u in everyone}
    assert len(everyone) == 4

    students = await archive_service.search_archived_users(db_session, actor(admin), role=UserRole.STUDENT)
    assert {u.id for u in students} == {passed_first.id, passed_final.id, rejected.id}

    passed = await archive_service.search_archived_users(db_session, actor(admin), status="PASSED")
    assert {u.id for u in passed} == {passed_first.id, passed_final.id, rejected.id}

    tokyo_passed = await archive_service.search_archived_users(db_session, actor(admin), school="tokyo", status="PASSED")
    assert [u.id for u in tokyo_passed] == [passed_first.id]

    this_year = await archive_service.search_archived_users(db_session, actor(admin), year=2026)
    assert len(this_year) == 4
    assert await archive_service.search_archived_users(db_session, actor(admin), year=2025) == []


@pytest.mark.asyncio
async def test_instructor_sees_archived_student_only_with_grant(db_session, clock) -> None:
    admin = await make_admin(db_session)
    instructor = await make_user(db_session, UserRole.INSTRUCTOR)
    student = await make_user(db_session, UserRole.STUDENT)
    shift = await make_shift(db_session, instructor, date(2026, 2, 20), "10:00")
    await make_booking(db_session, shift, student)

    records = await student_service.get_student_records(db_session, actor(instructor), student.id)
    assert len(records.bookings) == 1

    await archive_service.archive_user(db_session, actor(admin), student.id, clock)
    with pytest.raises(UnauthorizedError):
        await student_service.get_student_records(db_session, actor(instructor), student.id)
    assert await archive_service.list_licensed_archived_students(db_session, actor(instructor)) == []

    await archive_service.grant_archive_access(
        db_session, actor(admin), ArchiveAccessGrant(instructor_id=instructor.id, student_id=student.id)
    )
    records = await student_service.get_student_records(db_session, actor(instructor), student.id)
    assert records.student.archived_at is not None
    licensed = await archive_service.list_licensed_archived_students(db_session, actor(instructor))
    assert [u.id for u in licensed] == [student.id]


@pytest.mark.asyncio
async def test_students_see_only_their_own_records(db_session) -> None:
    student = await make_user(db_session, UserRole.STUDENT)
    other = await make_user(db_session, UserRole.STUDENT)

    own = await student_service.get_student_records(db_session, actor(student), student.id)
    assert own.student.id == student.id
    with pytest.raises(UnauthorizedError):
        await student_service.get_student_records(db_session, actor(student), other.id)


@pytest.mark.asyncio
async def test_replace_admission_results_replaces_whole_list(db_session) -> None:
    instructor = await make_user(db_session, UserRole.INSTRUCTOR)
    student = await make_user(db_session, UserRole.STUDENT)

    await _results(
        db_session,
        instructor,
        student,
        AdmissionResultItem(school_name="Tokyo Arts", rank=2),
        AdmissionResultItem(school_name="Kyoto Design", department="Graphic", rank=1),
    )
    replaced = await admission_service.replace_admission_results(
        db_session,
        actor(instructor),
        student.id,
        AdmissionResultsReplace(results=[AdmissionResultItem(school_name="Osaka Fine Arts", rank=1)]),
    )

    assert [r.school_name for r in replaced] == ["Osaka Fine Arts"]
    listed = await admission_service.get_admission_results(db_session, actor(instructor), student.id)
    assert [r.school_name for r in listed] == ["Osaka Fine Arts"]


def test_admission_rank_must_be_positive() -> None:
    with pytest.raises(ValueError):
        AdmissionResultItem(school_name="Tokyo Arts", rank=0)
