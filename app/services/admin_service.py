"""
Administrative mutations over users, tasks, profiles and case assignment.

Every successful mutation appends exactly one audit entry. Its ``details``
text is rendered from the names of the people involved as they are at the
time of writing, so later renames do not rewrite history.
"""

from typing import Optional
import logging

from sqlalchemy.ext.asyncio import AsyncSession

from app.crud import audit as audit_crud
from app.crud import case as case_crud
from app.crud import profile as profile_crud
from app.crud import task as task_crud
from app.crud import user as user_crud
from app.db.models import ClientCase, ClientProfile, StaffProfile, Task, TaskStatus, User, UserRole
from app.schemas.audit import AuditLogCreate, EntityType
from app.schemas.profile import ClientProfileCreate, ClientProfileUpdate, StaffProfileCreate, StaffProfileUpdate
from app.schemas.task import TaskCreate, TaskUpdate
from app.schemas.user import UserCreate, UserUpdate

logger = logging.getLogger(__name__)


class AdminError(Exception):
    """Base class for rejected administrative mutations."""


class EntityNotFoundError(AdminError):
    pass


class DuplicateEntityError(AdminError):
    pass


class InvalidAssignmentError(AdminError):
    pass


class AdminStoreError(AdminError):
    """The database rejected the write."""


STAFF_ROLES = {UserRole.staff, UserRole.admin}


class AdminService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def _audit(
        self,
        actor_id: str,
        action: str,
        entity_type: EntityType,
        entity_id: str,
        details: str,
        ip_address: Optional[str] = None
    ) -> None:
        entry = await audit_crud.create_audit_log(self.db, AuditLogCreate(
            user_id=actor_id,
            action=action,
            entity_type=entity_type,
            entity_id=entity_id,
            details=details,
            ip_address=ip_address,
        ))
        if entry is None:
            logger.error(f"Audit entry missing for {action} on {entity_type.value} {entity_id} by {actor_id}")

    async def _name_of(self, user_id: Optional[str]) -> str:
        if not user_id:
            return "nobody"
        names = await user_crud.get_user_names(self.db, [user_id])
        return names.get(user_id, user_id)

    async def _require_user(self, user_id: str) -> User:
        user = await user_crud.get_user(self.db, user_id)
        if user is None:
            raise EntityNotFoundError(f"User not found: {user_id}")
        return user

    # Users

    async def create_user(self, actor_id: str, user_in: UserCreate) -> User:
        if await user_crud.get_user_by_email(self.db, user_in.email):
            raise DuplicateEntityError(f"A user with email {user_in.email} already exists.")

        user = await user_crud.create_user(self.db, user_in, created_by=actor_id)
        if user is None:
            raise AdminStoreError("Failed to create user.")

        await self._audit(
            actor_id, "Create User", EntityType.user, user.id,
            f"Created {user.role.value} account for {user.name} ({user.email})",
        )
        return user

    async def update_user(self, actor_id: str, user_id: str, user_in: UserUpdate) -> User:
        await self._require_user(user_id)
        changes = user_in.model_dump(exclude_unset=True)
        if changes.get("email"):
            existing = await user_crud.get_user_by_email(self.db, changes["email"])
            if existing is not None and existing.id != user_id:
                raise DuplicateEntityError(f"A user with email {changes['email']} already exists.")

        user = await user_crud.update_user(self.db, user_id, user_in)
        if user is None:
            raise AdminStoreError(f"Failed to update user {user_id}.")

        fields = ", ".join(sorted(changes)) or "nothing"
        await self._audit(
            actor_id, "Update User", EntityType.user, user.id,
            f"Updated {user.name or user.email}: {fields}",
        )
        return user

    async def set_user_active(self, actor_id: str, user_id: str, is_active: bool) -> User:
        await self._require_user(user_id)
        user = await user_crud.update_user(self.db, user_id, {"is_active": is_active})
        if user is None:
            raise AdminStoreError(f"Failed to update user {user_id}.")

        action = "Activate User" if is_active else "Deactivate User"
        await self._audit(
            actor_id, action, EntityType.user, user.id,
            f"{'Activated' if is_active else 'Deactivated'} {user.name or user.email}",
        )
        return user

    # Tasks

    async def create_task(self, actor_id: str, task_in: TaskCreate) -> Task:
        assignee = await self._require_user(task_in.assigned_to_id)
        if task_in.case_id and await case_crud.get_case(self.db, task_in.case_id) is None:
            raise EntityNotFoundError(f"Case not found: {task_in.case_id}")

        task = await task_crud.create_task(self.db, task_in, assigned_by_id=actor_id)
        if task is None:
            raise AdminStoreError("Failed to create task.")

        await self._audit(
            actor_id, "Create Task", EntityType.task, task.id,
            f"Assigned '{task.title}' to {assignee.name or assignee.email} "
            f"({task.priority.value} priority, due {task.due_date:%Y-%m-%d})",
        )
        return task

    async def update_task(self, actor_id: str, task_id: str, task_in: TaskUpdate) -> Task:
        existing = await task_crud.get_task(self.db, task_id)
        if existing is None:
            raise EntityNotFoundError(f"Task not found: {task_id}")
        if task_in.assigned_to_id:
            await self._require_user(task_in.assigned_to_id)
        previous_status = existing.status

        task = await task_crud.update_task(self.db, task_id, task_in)
        if task is None:
            raise AdminStoreError(f"Failed to update task {task_id}.")

        if task.status == TaskStatus.completed and previous_status != TaskStatus.completed:
            action = "Complete Task"
            details = f"'{task.title}' completed by {await self._name_of(task.assigned_to_id)}"
        else:
            changes = ", ".join(sorted(task_in.model_dump(exclude_unset=True))) or "nothing"
            action = "Update Task"
            details = f"Updated '{task.title}' assigned to {await self._name_of(task.assigned_to_id)}: {changes}"
        await self._audit(actor_id, action, EntityType.task, task.id, details)
        return task

    # Profiles

    async def create_client_profile(self, actor_id: str, profile_in: ClientProfileCreate) -> ClientProfile:
        user = await self._require_user(profile_in.user_id)
        if user.role != UserRole.client:
            raise InvalidAssignmentError(f"User {user.id} is not a client.")
        if await profile_crud.get_profile_by_user(self.db, ClientProfile, user.id):
            raise DuplicateEntityError(f"Client profile already exists for {user.id}.")
        if profile_in.assigned_staff_id:
            await self._require_staff(profile_in.assigned_staff_id)

        profile = await profile_crud.create_profile(self.db, ClientProfile, profile_in)
        if profile is None:
            raise AdminStoreError("Failed to create client profile.")

        await self._audit(
            actor_id, "Create Client Profile", EntityType.client, profile.id,
            f"Created client profile for {user.name or user.email}",
        )
        return profile

    async def update_client_profile(
        self,
        actor_id: str,
        profile_id: str,
        profile_in: ClientProfileUpdate
    ) -> ClientProfile:
        if await profile_crud.get_profile(self.db, ClientProfile, profile_id) is None:
            raise EntityNotFoundError(f"Client profile not found: {profile_id}")
        if profile_in.assigned_staff_id:
            await self._require_staff(profile_in.assigned_staff_id)

        profile = await profile_crud.update_profile(self.db, ClientProfile, profile_id, profile_in)
        if profile is None:
            raise AdminStoreError(f"Failed to update client profile {profile_id}.")

        changes = ", ".join(sorted(profile_in.model_dump(exclude_unset=True))) or "nothing"
        await self._audit(
            actor_id, "Update Client Profile", EntityType.client, profile.id,
            f"Updated client profile of {await self._name_of(profile.user_id)}: {changes}",
        )
        return profile

    async def create_staff_profile(self, actor_id: str, profile_in: StaffProfileCreate) -> StaffProfile:
        user = await self._require_staff(profile_in.user_id)
        if await profile_crud.get_profile_by_user(self.db, StaffProfile, user.id):
            raise DuplicateEntityError(f"Staff profile already exists for {user.id}.")

        profile = await profile_crud.create_profile(self.db, StaffProfile, profile_in)
        if profile is None:
            raise AdminStoreError("Failed to create staff profile.")

        await self._audit(
            actor_id, "Create Staff Profile", EntityType.user, profile.id,
            f"Created staff profile for {user.name or user.email} ({profile.position}, {profile.department})",
        )
        return profile

    async def update_staff_profile(
        self,
        actor_id: str,
        profile_id: str,
        profile_in: StaffProfileUpdate
    ) -> StaffProfile:
        if await profile_crud.get_profile(self.db, StaffProfile, profile_id) is None:
            raise EntityNotFoundError(f"Staff profile not found: {profile_id}")

        profile = await profile_crud.update_profile(self.db, StaffProfile, profile_id, profile_in)
        if profile is None:
            raise AdminStoreError(f"Failed to update staff profile {profile_id}.")

        changes = ", ".join(sorted(profile_in.model_dump(exclude_unset=True))) or "nothing"
        await self._audit(
            actor_id, "Update Staff Profile", EntityType.user, profile.id,
            f"Updated staff profile of {await self._name_of(profile.user_id)}: {changes}",
        )
        return profile

    # Cases

    async def _require_staff(self, user_id: str) -> User:
        user = await self._require_user(user_id)
        if user.role not in STAFF_ROLES:
            raise InvalidAssignmentError(f"User {user_id} is not a staff member.")
        if not user.is_active:
            raise InvalidAssignmentError(f"User {user_id} is inactive.")
        return user

    async def assign_case_to_staff(self, actor_id: str, case_id: str, staff_id: str) -> ClientCase:
        case = await case_crud.get_case(self.db, case_id)
        if case is None:
            raise EntityNotFoundError(f"Case not found: {case_id}")
        staff = await self._require_staff(staff_id)
        previous = case.assigned_staff_id

        case = await case_crud.update_case(self.db, case_id, {"assigned_staff_id": staff.id})
        if case is None:
            raise AdminStoreError(f"Failed to assign case {case_id}.")

        client_name = case.client_name or await self._name_of(case.client_id)
        details = f"Case for {client_name} assigned to {staff.name or staff.email}"
        if previous and previous != staff.id:
            details += f" (previously {await self._name_of(previous)})"
        await self._audit(actor_id, "Assign Case", EntityType.case, case.id, details)
        logger.info(f"Case {case_id} assigned to {staff_id} by {actor_id}")
        return case
