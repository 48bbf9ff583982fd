import logging
from typing import Any, Dict, List, Mapping, Optional, Protocol

from langchain_core.messages import HumanMessage, SystemMessage
from langchain_openai import ChatOpenAI

from app.core.config import settings
from app.core.form_config import ClientType, parse_client_type
from app.schemas.risk import RiskAssessmentRequest, RiskAssessmentResult
from app.utils.logging import log_error

logger = logging.getLogger(__name__)

RISK_ASSESSMENT_SYSTEM_PROMPT = """
You are an expert risk assessment agent specializing in determining risk levels for new clients during onboarding.

You will use the client type, provided information, and uploaded documents to suggest a risk level (Low, Medium, or High) and provide a confidence score (0-1) for the suggestion.

Ensure that the risk_level, confidence_score, and reasoning fields are populated in the output.
"""

RISK_ASSESSMENT_TEMPLATE = """
Client Type: {client_type}
Client Information: {client_information}
Uploaded Documents: {document_count} attached
"""


class RiskAssessmentError(Exception):
    """The risk assessment could not be produced."""


class RiskAssessmentClient(Protocol):
    async def suggest_risk_level(self, request: RiskAssessmentRequest) -> RiskAssessmentResult:
        ...


def humanize_field_name(name: str) -> str:
    """``date_of_birth`` -> ``Date Of Birth``."""
    return " ".join(part.capitalize() for part in name.split("_") if part)


def format_client_information(form_data: Mapping[str, Any], client_type: ClientType) -> str:
    """
    Flatten form data into the free-text profile sent for assessment.
    Empty values are skipped.
    """
    parts = [f"Client Type: {client_type.value}."]
    for key, value in form_data.items():
        if value:
            parts.append(f"{humanize_field_name(key)}: {value}.")
    return " ".join(parts)


def build_risk_request(case) -> RiskAssessmentRequest:
    """
    Build the assessment request for a case.

    Raises:
        RiskAssessmentError: If the case has no client type
    """
    client_type = parse_client_type(case.client_type)
    if client_type is None:
        raise RiskAssessmentError("Client type is missing.")

    documents = [document["data_url"] for document in (case.documents or [])]
    if not documents:
        logger.warning(f"No documents uploaded for assessment of case {case.id}")

    return RiskAssessmentRequest(
        client_type=client_type,
        client_information=format_client_information(case.form_data or {}, client_type),
        uploaded_documents=documents,
    )


async def assess(case, client: RiskAssessmentClient) -> RiskAssessmentResult:
    """
    Suggest a risk level for a case. The case itself is not modified; the
    caller decides whether to record the result. No retries.
    """
    request = build_risk_request(case)
    try:
        result = await client.suggest_risk_level(request)
    except RiskAssessmentError:
        raise
    except Exception as e:
        log_error(e, f"Risk assessment failed for case {case.id}")
        raise RiskAssessmentError("Risk assessment failed. Please try again.") from e

    logger.info(f"Risk assessment for case {case.id}: {result.risk_level.value} ({result.confidence_score:.2f})")
    return result


def _document_block(data_url: str) -> Dict[str, Any]:
    if data_url.startswith("data:image/"):
        return {"type": "image_url", "image_url": {"url": data_url}}
    return {"type": "file", "file": {"filename": "document", "file_data": data_url}}


class LangChainRiskAssessmentClient:
    """Risk assessment backed by an OpenAI chat model with structured output."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        temperature: Optional[float] = None
    ):
        self.api_key = api_key if api_key is not None else settings.OPENAI_API_KEY
        self.model = model or settings.OPENAI_MODEL
        self.temperature = settings.RISK_ASSESSMENT_TEMPERATURE if temperature is None else temperature
        self._chain = None

    def _get_chain(self):
        if self._chain is None:
            if not self.api_key:
                raise RiskAssessmentError("Risk assessment service is not configured.")
            llm = ChatOpenAI(
                model=self.model,
                temperature=self.temperature,
                api_key=self.api_key
            )
            self._chain = llm.with_structured_output(RiskAssessmentResult)
        return self._chain

    def build_messages(self, request: RiskAssessmentRequest) -> List[Any]:
        text = RISK_ASSESSMENT_TEMPLATE.format(
            client_type=request.client_type.value,
            client_information=request.client_information,
            document_count=len(request.uploaded_documents),
        )
        content: List[Dict[str, Any]] = [{"type": "text", "text": text}]
        content.extend(_document_block(document) for document in request.uploaded_documents)
        return [
            SystemMessage(content=RISK_ASSESSMENT_SYSTEM_PROMPT),
            HumanMessage(content=content),
        ]

    async def suggest_risk_level(self, request: RiskAssessmentRequest) -> RiskAssessmentResult:
        chain = self._get_chain()
        result = await chain.ainvoke(self.build_messages(request))
        if isinstance(result, dict):
            result = RiskAssessmentResult.model_validate(result)
        return result


_default_client: Optional[LangChainRiskAssessmentClient] = None


def get_risk_assessment_client() -> RiskAssessmentClient:
    """FastAPI dependency returning the shared assessment client."""
    global _default_client
    if _default_client is None:
        _default_client = LangChainRiskAssessmentClient()
    return _default_client
