"""
Onboarding form registry.

Maps each client type to the ordered list of form fields it must capture and
the documents it must supply. The validation schemas in
``app.schemas.onboarding`` are generated from these same tables, so the form
and its validation can never drift apart.
"""

from enum import Enum
from typing import List, Literal, Optional
from pydantic import BaseModel

PDF = "application/pdf"
JPEG = "image/jpeg"
PNG = "image/png"
PDF_OR_IMAGE = [PDF, JPEG, PNG]


class ClientType(str, Enum):
    individual = "Individual"
    company = "Company"
    trust = "Trust"


class FieldConfig(BaseModel):
    name: str
    label: str
    type: Literal["text", "date", "textarea", "email", "tel"]
    required: bool = False
    placeholder: Optional[str] = None
    min_length: Optional[int] = None


class DocumentRequirement(BaseModel):
    id: str
    name: str
    description: str
    file_types: List[str]


INDIVIDUAL_FORM_FIELDS: List[FieldConfig] = [
    FieldConfig(name="full_name", label="Full Name", type="text", required=True, placeholder="e.g., John Doe", min_length=2),
    FieldConfig(name="id_number", label="ID Number / Passport Number", type="text", required=True, placeholder="Your ID or Passport number", min_length=5),
    FieldConfig(name="date_of_birth", label="Date of Birth", type="date", placeholder="YYYY-MM-DD"),
    FieldConfig(name="residential_address", label="Residential Address", type="textarea", required=True, placeholder="Street, City, Postal Code", min_length=5),
    FieldConfig(name="contact_number", label="Contact Number", type="tel", placeholder="+27 12 345 6789", min_length=5),
    FieldConfig(name="tax_number", label="Tax Number (Optional)", type="text", placeholder="Your tax identification number"),
    FieldConfig(name="source_of_funds", label="Source of Funds/Wealth (Optional)", type="text", placeholder="e.g., Salary, Business Income"),
]

COMPANY_FORM_FIELDS: List[FieldConfig] = [
    FieldConfig(name="registered_company_name", label="Registered Company Name", type="text", required=True, min_length=2),
    FieldConfig(name="registration_number", label="Company Registration Number", type="text", required=True, min_length=5),
    FieldConfig(name="trading_name", label="Trading Name (if different)", type="text"),
    FieldConfig(name="registered_address", label="Registered Address", type="textarea", required=True, min_length=5),
    FieldConfig(name="business_address", label="Business Address (if different)", type="textarea"),
    FieldConfig(name="company_contact_number", label="Company Contact Number", type="tel", min_length=5),
    FieldConfig(name="company_tax_number", label="Company Tax Number", type="text"),
    FieldConfig(name="vat_number", label="VAT Number (if applicable)", type="text"),
    FieldConfig(
        name="directors",
        label="Details of Directors (Names & ID Numbers)",
        type="textarea",
        placeholder="e.g., Jane Smith (ID: 987654321), Tom Brown (ID: 123123123)",
    ),
    FieldConfig(
        name="shareholders",
        label="Details of Shareholders (>25% UBOs - Names & ID Numbers or Entity Details)",
        type="textarea",
        placeholder="e.g., UBO One (ID: 555444333) - 30%, Entity ABC (Reg: 2022/123/07) - 40%",
    ),
]

TRUST_FORM_FIELDS: List[FieldConfig] = [
    FieldConfig(name="trust_name", label="Name of Trust", type="text", required=True, min_length=2),
    FieldConfig(name="trust_registration_number", label="Trust Registration Number (Master of High Court)", type="text", required=True, min_length=5),
    FieldConfig(name="trust_type", label="Type of Trust", type="text", placeholder="e.g., Discretionary, Testamentary"),
    FieldConfig(name="founder_details", label="Details of Founder (Name & ID Number or Entity Details)", type="textarea"),
    FieldConfig(
        name="trustee_details",
        label="Details of all Trustees (Names & ID Numbers)",
        type="textarea",
        required=True,
        placeholder="e.g., Trustee A (ID: 111222333), Trustee B (ID: 444555666)",
        min_length=5,
    ),
    FieldConfig(name="beneficiary_details", label="Details of Beneficiaries (especially vested rights/significant control)", type="textarea"),
    FieldConfig(name="trust_source_of_funds", label="Source of Funds of the Trust", type="text"),
    FieldConfig(name="trust_address", label="Physical Address of the Trust", type="textarea", min_length=5),
]

INDIVIDUAL_DOCUMENT_REQUIREMENTS: List[DocumentRequirement] = [
    DocumentRequirement(
        id="certifiedId",
        name="Certified ID Document",
        description="SA ID card/book, or Passport for foreign nationals. Must be certified and not older than 3 months.",
        file_types=PDF_OR_IMAGE,
    ),
    DocumentRequirement(
        id="proofOfAddress",
        name="Proof of Residential Address",
        description="Utility bill, bank statement, lease agreement. Not older than 3 months.",
        file_types=PDF_OR_IMAGE,
    ),
    DocumentRequirement(
        id="proofOfIncome",
        name="Proof of Income/Source of Funds (If applicable)",
        description="Payslip, bank statement showing income.",
        file_types=PDF_OR_IMAGE,
    ),
    DocumentRequirement(
        id="bankConfirmation",
        name="Bank Confirmation Letter (If applicable)",
        description="Official letter from your bank confirming your account details.",
        file_types=[PDF],
    ),
]

COMPANY_DOCUMENT_REQUIREMENTS: List[DocumentRequirement] = [
    DocumentRequirement(
        id="companyRegistrationCert",
        name="Company Registration Certificate (e.g., CoR 14.3)",
        description="Official company registration document.",
        file_types=[PDF],
    ),
    DocumentRequirement(
        id="noticeOfRegisteredAddress",
        name="Notice of Registered Address (CoR 21.1)",
        description="Document confirming the company's registered address.",
        file_types=[PDF],
    ),
    DocumentRequirement(
        id="proofOfBusinessAddress",
        name="Proof of Business Address",
        description="Utility bill or lease agreement for the business premises. Not older than 3 months.",
        file_types=PDF_OR_IMAGE,
    ),
    DocumentRequirement(
        id="proofOfCompanyBankAccount",
        name="Proof of Company Bank Account",
        description="Bank statement or confirmation letter for the company account.",
        file_types=[PDF],
    ),
    DocumentRequirement(
        id="resolutionNominatingRep",
        name="Resolution Nominating Authorised Representative",
        description="Company resolution authorising an individual to act on its behalf.",
        file_types=[PDF],
    ),
    DocumentRequirement(
        id="directorFica",
        name="FICA for all Directors",
        description="Certified ID and Proof of Address for each director (upload as separate files or a combined PDF per director).",
        file_types=PDF_OR_IMAGE,
    ),
    DocumentRequirement(
        id="shareholderFica",
        name="FICA for Shareholders (>25% UBOs)",
        description="FICA documents for individuals or entities holding >25% shares.",
        file_types=PDF_OR_IMAGE,
    ),
    DocumentRequirement(
        id="financialStatements",
        name="Latest Annual Financial Statements (If applicable)",
        description="Most recent AFS.",
        file_types=[PDF],
    ),
    DocumentRequirement(
        id="orgChart",
        name="Organisational Chart (For complex structures)",
        description="Chart showing ownership structure to identify UBOs.",
        file_types=PDF_OR_IMAGE,
    ),
]

TRUST_DOCUMENT_REQUIREMENTS: List[DocumentRequirement] = [
    DocumentRequirement(
        id="trustDeed",
        name="Trust Deed (or other founding document)",
        description="The legal document establishing the trust.",
        file_types=[PDF],
    ),
    DocumentRequirement(
        id="letterOfAuthority",
        name="Letter of Authority (Master of High Court)",
        description="Official letter authorising trustees to act.",
        file_types=[PDF],
    ),
    DocumentRequirement(
        id="resolutionNominatingRepTrust",
        name="Resolution Nominating Authorised Representative",
        description="Trust resolution authorising an individual to act on its behalf.",
        file_types=[PDF],
    ),
    DocumentRequirement(
        id="proofOfTrustBankAccount",
        name="Proof of Trust's Bank Account",
        description="Bank statement or confirmation letter for the trust account.",
        file_types=[PDF],
    ),
    DocumentRequirement(
        id="proofOfAddressTrust",
        name="Proof of Address for the Trust",
        description="Utility bill or similar for the trust's address. Not older than 3 months.",
        file_types=PDF_OR_IMAGE,
    ),
    DocumentRequirement(
        id="founderFica",
        name="FICA for Founder",
        description="Certified ID and Proof of Address for the founder.",
        file_types=PDF_OR_IMAGE,
    ),
    DocumentRequirement(
        id="trusteeFica",
        name="FICA for all Trustees",
        description="Certified ID and Proof of Address for each trustee.",
        file_types=PDF_OR_IMAGE,
    ),
    DocumentRequirement(
        id="beneficiaryFica",
        name="FICA for Beneficiaries (If applicable)",
        description="FICA for beneficiaries with vested rights or significant influence.",
        file_types=PDF_OR_IMAGE,
    ),
]

FORM_FIELDS = {
    ClientType.individual: INDIVIDUAL_FORM_FIELDS,
    ClientType.company: COMPANY_FORM_FIELDS,
    ClientType.trust: TRUST_FORM_FIELDS,
}

DOCUMENT_REQUIREMENTS = {
    ClientType.individual: INDIVIDUAL_DOCUMENT_REQUIREMENTS,
    ClientType.company: COMPANY_DOCUMENT_REQUIREMENTS,
    ClientType.trust: TRUST_DOCUMENT_REQUIREMENTS,
}


def parse_client_type(client_type) -> Optional[ClientType]:
    """Coerce a tag to ClientType; None for missing or unrecognised tags."""
    if client_type is None:
        return None
    if isinstance(client_type, ClientType):
        return client_type
    try:
        return ClientType(client_type)
    except ValueError:
        return None


def get_form_fields_for_client_type(client_type) -> List[FieldConfig]:
    parsed = parse_client_type(client_type)
    if parsed is None:
        return []
    return list(FORM_FIELDS[parsed])


def get_document_requirements_for_client_type(client_type) -> List[DocumentRequirement]:
    parsed = parse_client_type(client_type)
    if parsed is None:
        return []
    return list(DOCUMENT_REQUIREMENTS[parsed])


def get_document_requirement(client_type, requirement_id: str) -> Optional[DocumentRequirement]:
    for requirement in get_document_requirements_for_client_type(client_type):
        if requirement.id == requirement_id:
            return requirement
    return None
