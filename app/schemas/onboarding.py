"""
Validation schemas for onboarding form data.

The models are generated from the field tables in ``app.core.form_config``:
for every client type there is a draft model (all fields optional, used for
saving progress) and a submission model (required fields and minimum lengths
enforced). Submission models form a discriminated union on ``client_type``.
"""

from typing import Annotated, Any, Dict, List, Literal, Optional, Type, Union
from pydantic import BaseModel, Field, TypeAdapter, ValidationError, create_model, model_validator
from pydantic.alias_generators import to_camel

from app.core.form_config import ClientType, FieldConfig, FORM_FIELDS


class OnboardingFormBase(BaseModel):
    """
    Shared behaviour: unknown keys are rejected and blank strings count as
    missing. Keys are accepted in snake_case or in the camelCase the web
    client sends (``fullName``); cleaned data and error locations always use
    snake_case.
    """

    class Config:
        extra = "forbid"
        str_strip_whitespace = True
        alias_generator = to_camel
        populate_by_name = True
        loc_by_alias = False

    @model_validator(mode="before")
    @classmethod
    def blank_strings_to_none(cls, data: Any) -> Any:
        if isinstance(data, dict):
            return {
                key: (None if isinstance(value, str) and not value.strip() else value)
                for key, value in data.items()
            }
        return data


def _build_form_model(client_type: ClientType, fields: List[FieldConfig], draft: bool) -> Type[OnboardingFormBase]:
    tag = Literal[client_type.value]  # type: ignore[valid-type]
    definitions: Dict[str, Any] = {
        # Drafts take their type from the case; submissions must carry the tag
        "client_type": (tag, client_type.value) if draft else (tag, ...),
    }
    for field in fields:
        constraints: Dict[str, Any] = {"description": field.label}
        if not draft and field.min_length:
            constraints["min_length"] = field.min_length
        if field.required and not draft:
            definitions[field.name] = (str, Field(..., **constraints))
        else:
            definitions[field.name] = (Optional[str], Field(None, **constraints))

    suffix = "Draft" if draft else "Submission"
    return create_model(
        f"{client_type.value}{suffix}",
        __base__=OnboardingFormBase,
        **definitions,
    )


DRAFT_MODELS: Dict[ClientType, Type[OnboardingFormBase]] = {
    client_type: _build_form_model(client_type, fields, draft=True)
    for client_type, fields in FORM_FIELDS.items()
}

SUBMISSION_MODELS: Dict[ClientType, Type[OnboardingFormBase]] = {
    client_type: _build_form_model(client_type, fields, draft=False)
    for client_type, fields in FORM_FIELDS.items()
}

IndividualSubmission = SUBMISSION_MODELS[ClientType.individual]
CompanySubmission = SUBMISSION_MODELS[ClientType.company]
TrustSubmission = SUBMISSION_MODELS[ClientType.trust]

OnboardingSubmission = Annotated[
    Union[IndividualSubmission, CompanySubmission, TrustSubmission],  # type: ignore[valid-type]
    Field(discriminator="client_type"),
]

onboarding_submission_adapter = TypeAdapter(OnboardingSubmission)


class FormValidationError(ValueError):
    """Form data does not match the schema of its client type."""

    def __init__(self, errors: List[Dict[str, Any]]):
        self.errors = errors
        fields = ", ".join(".".join(str(part) for part in error["loc"]) for error in errors)
        super().__init__(f"Invalid form data: {fields}")


def _dump(model: BaseModel) -> Dict[str, Any]:
    return model.model_dump(exclude={"client_type"}, exclude_none=True)


def validate_draft(client_type: ClientType, form_data: Dict[str, Any]) -> Dict[str, Any]:
    """
    Check partial form data against the draft schema of ``client_type``.

    Returns:
        The cleaned form data without the ``client_type`` tag

    Raises:
        FormValidationError: On unknown fields or a mismatching tag
    """
    try:
        return _dump(DRAFT_MODELS[client_type].model_validate(form_data))
    except ValidationError as e:
        raise FormValidationError(e.errors(include_url=False, include_context=False)) from e


def validate_submission(form_data: Dict[str, Any]) -> Dict[str, Any]:
    """
    Check complete form data, tagged with ``client_type``, against the
    submission union.

    Raises:
        FormValidationError: On missing required fields or a bad tag
    """
    try:
        return _dump(onboarding_submission_adapter.validate_python(form_data))
    except ValidationError as e:
        raise FormValidationError(e.errors(include_url=False, include_context=False)) from e
