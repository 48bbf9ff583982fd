import pytest
from httpx import AsyncClient
from fastapi import status

from app.utils.data_uri import encode_data_uri

pytestmark = pytest.mark.asyncio

PDF_URI = encode_data_uri(b"%PDF-1.4 test", "application/pdf")

JANE_DOE = {
    "client_type": "Individual",
    "full_name": "Jane Doe",
    "id_number": "8001015009087",
    "residential_address": "1 Long Street, Cape Town",
}

class TestOnboardingSchema:
    async def test_schema_for_client_type(self, client: AsyncClient):
        response = await client.get("/api/v1/onboarding/schema/Individual")
        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert len(data["fields"]) == 7
        assert [r["id"] for r in data["document_requirements"]] == [
            "certifiedId", "proofOfAddress", "proofOfIncome", "bankConfirmation"
        ]

    async def test_unknown_client_type(self, client: AsyncClient):
        response = await client.get("/api/v1/onboarding/schema/Partnership")
        assert response.status_code == status.HTTP_404_NOT_FOUND

class TestOnboardingFlow:
    async def test_read_own_case(self, client: AsyncClient, login):
        headers = await login("client@example.com")
        response = await client.get("/api/v1/onboarding/case", headers=headers)
        assert response.status_code == status.HTTP_200_OK
        assert response.json()["id"] == "case1"

    async def test_staff_cannot_use_client_flow(self, client: AsyncClient, login):
        headers = await login("staff@example.com")
        response = await client.get("/api/v1/onboarding/case", headers=headers)
        assert response.status_code == status.HTTP_403_FORBIDDEN

    async def test_new_client_starts_a_case(self, client: AsyncClient, test_user_data: dict):
        response = await client.post("/api/v1/auth/register", json=test_user_data)
        headers = {"Authorization": f"Bearer {response.json()['access_token']}"}

        response = await client.get("/api/v1/onboarding/case", headers=headers)
        assert response.status_code == status.HTTP_404_NOT_FOUND

        response = await client.post(
            "/api/v1/onboarding/client-type",
            json={"client_type": "Trust"},
            headers=headers
        )
        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["success"]
        assert data["step"] == "details"
        assert data["case"]["client_type"] == "Trust"
        assert data["case"]["client_name"] == "New Client"

    async def test_submit_without_documents(self, client: AsyncClient, login):
        headers = await login("client@example.com")
        response = await client.post(
            "/api/v1/onboarding/submit",
            json={"form_data": JANE_DOE},
            headers=headers
        )
        assert response.status_code == status.HTTP_400_BAD_REQUEST
        detail = response.json()["detail"]
        assert detail["error"] == "missing_documents"
        assert detail["step"] == "documents"
        assert "certifiedId" in detail["missing_requirements"]

    async def test_submit_incomplete_form(self, client: AsyncClient, login):
        headers = await login("client@example.com")
        response = await client.post(
            "/api/v1/onboarding/submit",
            json={"form_data": {"client_type": "Individual", "full_name": "Jane Doe"}},
            headers=headers
        )
        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY

    async def test_full_submission(self, client: AsyncClient, login):
        """Save progress, upload every document, submit."""
        headers = await login("client@example.com")

        response = await client.put(
            "/api/v1/onboarding/progress",
            json={"form_data": {"full_name": "Jane Doe"}},
            headers=headers
        )
        assert response.status_code == status.HTTP_200_OK
        assert response.json()["case"]["status"] == "Pending Submission"

        for requirement_id in ("certifiedId", "proofOfAddress", "proofOfIncome"):
            response = await client.post(
                "/api/v1/onboarding/documents",
                json={"requirement_id": requirement_id, "name": f"{requirement_id}.pdf", "data_url": PDF_URI},
                headers=headers
            )
            assert response.status_code == status.HTTP_201_CREATED

        response = await client.post(
            "/api/v1/onboarding/documents/upload",
            data={"requirement_id": "bankConfirmation"},
            files={"file": ("bank.pdf", b"%PDF-1.4 bank", "application/pdf")},
            headers=headers
        )
        assert response.status_code == status.HTTP_201_CREATED

        response = await client.get("/api/v1/onboarding/requirements", headers=headers)
        assert all(item["is_met"] for item in response.json())

        response = await client.post(
            "/api/v1/onboarding/submit",
            json={"form_data": JANE_DOE},
            headers=headers
        )
        assert response.status_code == status.HTTP_200_OK
        case = response.json()["case"]
        assert case["status"] == "Information Submitted"
        assert case["form_data"]["full_name"] == "Jane Doe"
        assert len(case["documents"]) == 4

        response = await client.put(
            "/api/v1/onboarding/progress",
            json={"form_data": {"full_name": "Too Late"}},
            headers=headers
        )
        assert response.status_code == status.HTTP_409_CONFLICT

    async def test_progress_accepts_camel_case_keys(self, client: AsyncClient, login):
        headers = await login("client@example.com")
        response = await client.put(
            "/api/v1/onboarding/progress",
            json={"formData": {"fullName": "Jane Doe", "idNumber": "8001015009087"}},
            headers=headers
        )
        assert response.status_code == status.HTTP_200_OK
        form_data = response.json()["case"]["form_data"]
        assert form_data["full_name"] == "Jane Doe"
        assert form_data["id_number"] == "8001015009087"

    async def test_upload_wrong_file_type(self, client: AsyncClient, login):
        headers = await login("client@example.com")
        response = await client.post(
            "/api/v1/onboarding/documents/upload",
            data={"requirement_id": "bankConfirmation"},
            files={"file": ("bank.png", b"\x89PNG", "image/png")},
            headers=headers
        )
        assert response.status_code == status.HTTP_415_UNSUPPORTED_MEDIA_TYPE
        assert response.json()["detail"]["error"] == "invalid_file_type"

    async def test_remove_document(self, client: AsyncClient, login):
        headers = await login("client@example.com")
        response = await client.post(
            "/api/v1/onboarding/documents",
            json={"requirement_id": "certifiedId", "name": "id.pdf", "data_url": PDF_URI},
            headers=headers
        )
        document_id = response.json()["case"]["documents"][0]["id"]

        response = await client.delete(f"/api/v1/onboarding/documents/{document_id}", headers=headers)
        assert response.status_code == status.HTTP_200_OK
        assert response.json()["case"]["documents"] == []

        response = await client.delete(f"/api/v1/onboarding/documents/{document_id}", headers=headers)
        assert response.status_code == status.HTTP_404_NOT_FOUND
