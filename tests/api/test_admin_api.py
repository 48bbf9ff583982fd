import pytest
from httpx import AsyncClient
from fastapi import status

from app.crud import task as task_crud

pytestmark = pytest.mark.asyncio

FUTURE = "2030-01-15T12:00:00"

class TestUsersApi:
    async def test_admin_creates_user(self, client: AsyncClient, login):
        headers = await login("admin@example.com")
        response = await client.post(
            "/api/v1/users/",
            json={"email": "analyst@example.com", "name": "Risk Analyst", "role": "staff"},
            headers=headers
        )
        assert response.status_code == status.HTTP_201_CREATED
        assert response.json()["role"] == "staff"

    async def test_staff_cannot_create_user(self, client: AsyncClient, login):
        headers = await login("staff@example.com")
        response = await client.post(
            "/api/v1/users/",
            json={"email": "analyst@example.com", "name": "Risk Analyst"},
            headers=headers
        )
        assert response.status_code == status.HTTP_403_FORBIDDEN

    async def test_client_reads_only_self(self, client: AsyncClient, login):
        headers = await login("client@example.com")
        response = await client.get("/api/v1/users/client1", headers=headers)
        assert response.status_code == status.HTTP_200_OK

        response = await client.get("/api/v1/users/staff1", headers=headers)
        assert response.status_code == status.HTTP_403_FORBIDDEN

    async def test_admin_cannot_deactivate_self(self, client: AsyncClient, login):
        headers = await login("admin@example.com")
        response = await client.post("/api/v1/users/admin1/deactivate", headers=headers)
        assert response.status_code == status.HTTP_400_BAD_REQUEST

    async def test_update_rejects_null_email(self, client: AsyncClient, login):
        headers = await login("admin@example.com")
        response = await client.put("/api/v1/users/staff1", json={"email": None}, headers=headers)
        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY

        response = await client.get("/api/v1/users/staff1", headers=headers)
        assert response.json()["email"] == "staff@example.com"

class TestTasksApi:
    async def _create_task(self, client: AsyncClient, headers, **overrides):
        payload = {
            "title": "Review case1 documents",
            "assigned_to_id": "staff1",
            "case_id": "case1",
            "priority": "high",
            "due_date": FUTURE,
        }
        payload.update(overrides)
        return await client.post("/api/v1/tasks/", json=payload, headers=headers)

    async def test_create_and_list(self, client: AsyncClient, login):
        admin_headers = await login("admin@example.com")
        response = await self._create_task(client, admin_headers)
        assert response.status_code == status.HTTP_201_CREATED
        task = response.json()
        assert task["display_status"] == "pending"
        assert not task["is_overdue"]

        staff_headers = await login("staff@example.com")
        response = await client.get("/api/v1/tasks/", headers=staff_headers)
        assert [t["id"] for t in response.json()] == [task["id"]]

        other_headers = await login("dev-staff@test.com")
        response = await client.get("/api/v1/tasks/", headers=other_headers)
        assert response.json() == []

    async def test_staff_updates_status_only(self, client: AsyncClient, login):
        admin_headers = await login("admin@example.com")
        task_id = (await self._create_task(client, admin_headers)).json()["id"]

        staff_headers = await login("staff@example.com")
        response = await client.put(
            f"/api/v1/tasks/{task_id}",
            json={"title": "Something else"},
            headers=staff_headers
        )
        assert response.status_code == status.HTTP_403_FORBIDDEN

        response = await client.put(
            f"/api/v1/tasks/{task_id}",
            json={"status": "completed"},
            headers=staff_headers
        )
        assert response.status_code == status.HTTP_200_OK
        assert response.json()["completed_at"] is not None

    async def test_unknown_assignee(self, client: AsyncClient, login):
        headers = await login("admin@example.com")
        response = await self._create_task(client, headers, assigned_to_id="ghost")
        assert response.status_code == status.HTTP_404_NOT_FOUND

    async def test_update_rejects_null_status(self, client: AsyncClient, login):
        headers = await login("admin@example.com")
        task_id = (await self._create_task(client, headers)).json()["id"]

        response = await client.put(f"/api/v1/tasks/{task_id}", json={"status": None}, headers=headers)
        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY

        response = await client.get(f"/api/v1/tasks/{task_id}", headers=headers)
        assert response.json()["status"] == "pending"

    async def test_store_failure_is_server_error(self, client: AsyncClient, login, monkeypatch):
        headers = await login("admin@example.com")
        task_id = (await self._create_task(client, headers)).json()["id"]

        async def failing_update(db, task_id, task_in):
            return None

        monkeypatch.setattr(task_crud, "update_task", failing_update)
        response = await client.put(f"/api/v1/tasks/{task_id}", json={"priority": "low"}, headers=headers)
        assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR

class TestProfilesApi:
    async def test_client_profile_lifecycle(self, client: AsyncClient, login):
        headers = await login("admin@example.com")
        response = await client.post(
            "/api/v1/profiles/clients",
            json={"user_id": "client1", "industry": "Retail"},
            headers=headers
        )
        assert response.status_code == status.HTTP_201_CREATED
        profile_id = response.json()["id"]

        response = await client.post(
            "/api/v1/profiles/clients",
            json={"user_id": "client1"},
            headers=headers
        )
        assert response.status_code == status.HTTP_409_CONFLICT

        response = await client.put(
            f"/api/v1/profiles/clients/{profile_id}",
            json={"onboarding_status": "in-progress"},
            headers=headers
        )
        assert response.status_code == status.HTTP_200_OK
        assert response.json()["onboarding_status"] == "in-progress"

    async def test_staff_profile_requires_staff_user(self, client: AsyncClient, login):
        headers = await login("admin@example.com")
        response = await client.post(
            "/api/v1/profiles/staff",
            json={"user_id": "client1", "department": "Compliance", "position": "Analyst"},
            headers=headers
        )
        assert response.status_code == status.HTTP_400_BAD_REQUEST

class TestAuditApi:
    async def test_trail_records_admin_actions(self, client: AsyncClient, login):
        headers = await login("admin@example.com")
        await client.put("/api/v1/cases/case1/assign", json={"staff_id": "staff1"}, headers=headers)
        await client.post("/api/v1/users/dev-staff/deactivate", headers=headers)

        response = await client.get("/api/v1/audit/", params={"entity_type": "case"}, headers=headers)
        assert response.status_code == status.HTTP_200_OK
        assert [entry["action"] for entry in response.json()] == ["Assign Case"]

        response = await client.get("/api/v1/audit/actions", headers=headers)
        assert response.json() == ["Assign Case", "Deactivate User"]

        response = await client.get("/api/v1/audit/summary", headers=headers)
        assert response.json()["total"] == 2

    async def test_staff_cannot_read_trail(self, client: AsyncClient, login):
        headers = await login("staff@example.com")
        response = await client.get("/api/v1/audit/", headers=headers)
        assert response.status_code == status.HTTP_403_FORBIDDEN
