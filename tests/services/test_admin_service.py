import logging
import pytest
from datetime import timedelta
from sqlalchemy.ext.asyncio import AsyncSession

from app.crud import audit as audit_crud
from app.crud import task as task_crud
from app.crud import user as user_crud
from app.db.models import TaskStatus, UserRole
from app.schemas.audit import AuditLogFilter, EntityType
from app.schemas.profile import ClientProfileCreate, StaffProfileCreate, StaffProfileUpdate
from app.schemas.task import TaskCreate, TaskUpdate, is_task_overdue, task_to_schema
from app.schemas.user import UserCreate, UserUpdate
from app.services.admin_service import (
    AdminService, DuplicateEntityError, EntityNotFoundError, InvalidAssignmentError
)
from app.utils.timestamps import utcnow


@pytest.fixture
def admin(seeded_db: AsyncSession) -> AdminService:
    return AdminService(seeded_db)


async def audit_entries(db: AsyncSession, **filters):
    return await audit_crud.get_audit_logs(db, AuditLogFilter(**filters))


class TestUsers:
    async def test_create_user_is_audited(self, admin: AdminService, seeded_db: AsyncSession):
        user = await admin.create_user("admin1", UserCreate(
            email="New.Staff@Example.com", name="New Staff", role=UserRole.staff
        ))
        assert user.email == "new.staff@example.com"
        assert user.created_by == "admin1"

        entries = await audit_entries(seeded_db, entity_type=EntityType.user)
        assert len(entries) == 1
        assert entries[0].action == "Create User"
        assert "New Staff" in entries[0].details

    async def test_duplicate_email_is_rejected(self, admin: AdminService):
        with pytest.raises(DuplicateEntityError):
            await admin.create_user("admin1", UserCreate(email="client@example.com", name="Copy"))

    async def test_role_cannot_change(self, admin: AdminService):
        user = await admin.update_user("admin1", "staff1", UserUpdate(name="Renamed Staff"))
        assert user.name == "Renamed Staff"
        assert user.role == UserRole.staff

    async def test_deactivate(self, admin: AdminService, seeded_db: AsyncSession):
        user = await admin.set_user_active("admin1", "dev-staff", False)
        assert not user.is_active
        entries = await audit_entries(seeded_db, action="Deactivate User")
        assert entries[0].entity_id == "dev-staff"

    async def test_unknown_user(self, admin: AdminService):
        with pytest.raises(EntityNotFoundError):
            await admin.set_user_active("admin1", "ghost", True)


class TestTasks:
    async def test_create_and_complete(self, admin: AdminService, seeded_db: AsyncSession):
        task = await admin.create_task("admin1", TaskCreate(
            title="Review case1 documents",
            assigned_to_id="staff1",
            case_id="case1",
            due_date=utcnow() + timedelta(days=2),
        ))
        assert task.status == TaskStatus.pending
        assert task.assigned_by_id == "admin1"

        task = await admin.update_task("staff1", task.id, TaskUpdate(status=TaskStatus.completed))
        assert task.completed_at is not None

        actions = [entry.action for entry in await audit_entries(seeded_db, entity_type=EntityType.task)]
        assert sorted(actions) == ["Complete Task", "Create Task"]

    async def test_details_keep_name_at_write_time(self, admin: AdminService, seeded_db: AsyncSession):
        await admin.create_task("admin1", TaskCreate(
            title="Call client", assigned_to_id="staff1", due_date=utcnow() + timedelta(days=1)
        ))
        await admin.update_user("admin1", "staff1", UserUpdate(name="Someone Else"))

        entries = await audit_entries(seeded_db, action="Create Task")
        assert "Test Staff" in entries[0].details

    async def test_reopening_clears_completed_at(self, admin: AdminService):
        task = await admin.create_task("admin1", TaskCreate(
            title="Follow up", assigned_to_id="staff1", due_date=utcnow() + timedelta(days=1)
        ))
        await admin.update_task("admin1", task.id, TaskUpdate(status=TaskStatus.completed))
        task = await admin.update_task("admin1", task.id, TaskUpdate(status=TaskStatus.in_progress))
        assert task.completed_at is None

    async def test_overdue_is_derived(self, admin: AdminService, seeded_db: AsyncSession):
        past = utcnow() - timedelta(days=1)
        task = await admin.create_task("admin1", TaskCreate(title="Late", assigned_to_id="staff1", due_date=past))

        schema = task_to_schema(task)
        assert schema.is_overdue
        assert schema.display_status == "overdue"
        assert [t.id for t in await task_crud.get_tasks(seeded_db, filters={"overdue": True})] == [task.id]

        assert not is_task_overdue(TaskStatus.completed, past)

    async def test_unknown_assignee(self, admin: AdminService):
        with pytest.raises(EntityNotFoundError):
            await admin.create_task("admin1", TaskCreate(
                title="Nobody", assigned_to_id="ghost", due_date=utcnow()
            ))


class TestProfiles:
    async def test_client_profile(self, admin: AdminService, seeded_db: AsyncSession):
        profile = await admin.create_client_profile("admin1", ClientProfileCreate(
            user_id="client1", industry="Retail", assigned_staff_id="staff1"
        ))
        assert profile.onboarding_status == "not-started"

        with pytest.raises(DuplicateEntityError):
            await admin.create_client_profile("admin1", ClientProfileCreate(user_id="client1"))

        entries = await audit_entries(seeded_db, entity_type=EntityType.client)
        assert "Test Client" in entries[0].details

    async def test_client_profile_requires_client_user(self, admin: AdminService):
        with pytest.raises(InvalidAssignmentError):
            await admin.create_client_profile("admin1", ClientProfileCreate(user_id="staff1"))

    async def test_staff_profile_update(self, admin: AdminService):
        profile = await admin.create_staff_profile("admin1", StaffProfileCreate(
            user_id="staff1", department="Compliance", position="Analyst", skills=["KYC"]
        ))
        profile = await admin.update_staff_profile("admin1", profile.id, StaffProfileUpdate(max_case_load=15))
        assert profile.max_case_load == 15
        assert profile.skills == ["KYC"]


class TestCaseAssignment:
    async def test_assign_case(self, admin: AdminService, seeded_db: AsyncSession):
        case = await admin.assign_case_to_staff("admin1", "case1", "staff1")
        assert case.assigned_staff_id == "staff1"

        entries = await audit_entries(seeded_db, action="Assign Case")
        assert entries[0].details == "Case for Test Client Individual assigned to Test Staff"

    async def test_assign_to_client_is_rejected(self, admin: AdminService):
        with pytest.raises(InvalidAssignmentError):
            await admin.assign_case_to_staff("admin1", "case1", "client1")

    async def test_assign_unknown_case(self, admin: AdminService):
        with pytest.raises(EntityNotFoundError):
            await admin.assign_case_to_staff("admin1", "case-missing", "staff1")


class TestAuditQueries:
    async def test_search_matches_actor_name(self, admin: AdminService, seeded_db: AsyncSession):
        await admin.assign_case_to_staff("admin1", "case1", "staff1")
        await admin.set_user_active("staff1", "dev-staff", False)

        entries = await audit_entries(seeded_db, search="test admin")
        assert [e.action for e in entries] == ["Assign Case"]

    async def test_summary(self, admin: AdminService, seeded_db: AsyncSession):
        await admin.assign_case_to_staff("admin1", "case1", "staff1")
        await admin.set_user_active("admin1", "dev-staff", False)

        summary = await audit_crud.get_audit_summary(seeded_db)
        assert summary["total"] == 2
        assert summary["today"] == 2
        assert summary["by_entity_type"] == {"case": 1, "user": 1}
        assert await audit_crud.get_audit_actions(seeded_db) == ["Assign Case", "Deactivate User"]


class TestAuditFailures:
    async def test_missing_audit_entry_is_logged(self, admin: AdminService, monkeypatch, caplog):
        async def failing_audit(db, entry):
            return None

        monkeypatch.setattr(audit_crud, "create_audit_log", failing_audit)
        with caplog.at_level(logging.ERROR, logger="app.services.admin_service"):
            user = await admin.update_user("admin1", "staff1", UserUpdate(name="Renamed Staff"))

        assert user.name == "Renamed Staff"
        errors = [record.getMessage() for record in caplog.records if record.levelno == logging.ERROR]
        assert any("staff1" in message and "Update User" in message for message in errors)
