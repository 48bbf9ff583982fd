import pytest

from app.core.form_config import (
    ClientType, get_document_requirement, get_document_requirements_for_client_type,
    get_form_fields_for_client_type, parse_client_type
)
from app.schemas.onboarding import FormValidationError, validate_draft, validate_submission


class TestFormRegistry:
    @pytest.mark.parametrize("client_type, fields, requirements", [
        (ClientType.individual, 7, 4),
        (ClientType.company, 10, 9),
        (ClientType.trust, 8, 8),
    ])
    def test_lists_per_client_type(self, client_type, fields, requirements):
        """Every client type has a fixed, non-empty field and requirement list."""
        assert len(get_form_fields_for_client_type(client_type)) == fields
        assert len(get_document_requirements_for_client_type(client_type)) == requirements

    def test_accepts_tag_strings(self):
        names = [field.name for field in get_form_fields_for_client_type("Individual")]
        assert names[:2] == ["full_name", "id_number"]

    @pytest.mark.parametrize("client_type", [None, "", "Partnership"])
    def test_missing_or_unknown_type_yields_empty_lists(self, client_type):
        assert get_form_fields_for_client_type(client_type) == []
        assert get_document_requirements_for_client_type(client_type) == []
        assert parse_client_type(client_type) is None

    def test_returned_lists_are_copies(self):
        fields = get_form_fields_for_client_type(ClientType.trust)
        fields.clear()
        assert len(get_form_fields_for_client_type(ClientType.trust)) == 8

    def test_requirement_lookup(self):
        requirement = get_document_requirement(ClientType.individual, "bankConfirmation")
        assert requirement is not None
        assert requirement.file_types == ["application/pdf"]
        assert get_document_requirement(ClientType.company, "certifiedId") is None


class TestFormValidation:
    def test_draft_accepts_partial_data(self):
        cleaned = validate_draft(ClientType.individual, {"full_name": "Jane Doe", "tax_number": "  "})
        assert cleaned == {"full_name": "Jane Doe"}

    def test_draft_rejects_fields_of_other_types(self):
        with pytest.raises(FormValidationError) as exc_info:
            validate_draft(ClientType.individual, {"trust_name": "Family Trust"})
        assert exc_info.value.errors[0]["loc"] == ("trust_name",)

    def test_submission_requires_fields_of_its_type(self):
        with pytest.raises(FormValidationError) as exc_info:
            validate_submission({"client_type": "Company", "registered_company_name": "Acme"})
        missing = {error["loc"][-1] for error in exc_info.value.errors}
        assert {"registration_number", "registered_address"} <= missing

    def test_submission_enforces_minimum_length(self):
        with pytest.raises(FormValidationError):
            validate_submission({
                "client_type": "Individual",
                "full_name": "J",
                "id_number": "8001015009087",
                "residential_address": "1 Long Street, Cape Town",
            })

    def test_submission_dispatches_on_client_type(self):
        cleaned = validate_submission({
            "client_type": "Trust",
            "trust_name": "Doe Family Trust",
            "trust_registration_number": "IT1234/2020",
            "trustee_details": "John Doe (ID: 123456789)",
        })
        assert cleaned["trust_name"] == "Doe Family Trust"
        assert "client_type" not in cleaned

    def test_submission_rejects_unknown_tag(self):
        with pytest.raises(FormValidationError):
            validate_submission({"client_type": "Partnership", "full_name": "Jane Doe"})

    def test_draft_accepts_camel_case_keys(self):
        cleaned = validate_draft(ClientType.individual, {"fullName": "Jane Doe", "taxNumber": "0123456789"})
        assert cleaned == {"full_name": "Jane Doe", "tax_number": "0123456789"}

    def test_submission_accepts_camel_case_keys(self):
        cleaned = validate_submission({
            "clientType": "Company",
            "registeredCompanyName": "Acme (Pty) Ltd",
            "registrationNumber": "2020/123456/07",
            "registeredAddress": "10 Main Road, Johannesburg",
        })
        assert cleaned["registered_company_name"] == "Acme (Pty) Ltd"
        assert "registeredCompanyName" not in cleaned

    def test_camel_case_errors_use_field_names(self):
        with pytest.raises(FormValidationError) as exc_info:
            validate_submission({"clientType": "Trust", "trustName": "Doe Family Trust"})
        missing = {error["loc"][-1] for error in exc_info.value.errors}
        assert "trust_registration_number" in missing
