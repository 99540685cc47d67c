"""Shared fixtures: sample notes and stub generation gateways."""

from typing import List

import pytest

from clinical_note_update.core.exceptions import GatewayTimeoutError
from clinical_note_update.core.models import GenerationRequest, GenerationResult
from clinical_note_update.parsing import SectionParser
from clinical_note_update.repository import InMemoryProfileRepository


SOAP_NOTE = (
    "SUBJECTIVE:\n"
    "Patient reports improved sleep and less worry since the last visit.\n"
    "\n"
    "OBJECTIVE:\n"
    "BP 128/82, HR 74. Alert, oriented, calm affect.\n"
    "\n"
    "ASSESSMENT:\n"
    "Generalized anxiety disorder, improving on current regimen.\n"
    "\n"
    "PLAN:\n"
    "Continue sertraline 50 mg daily. Return in 4 weeks."
)

PSYCH_NOTE = (
    "Patient: J. Doe   DOB: 01/02/1980\n"
    "\n"
    "Chief Complaint:\n"
    "Worsening anxiety.\n"
    "\n"
    "HPI:\n"
    "Patient reports panic episodes twice weekly since starting a new job.\n"
    "\n"
    "Current Medications:\n"
    "Sertraline 50 mg daily\n"
    "\n"
    "Allergies:\n"
    "No known drug allergies\n"
    "\n"
    "Assessment and Plan:\n"
    "Panic disorder. Increase sertraline to 100 mg daily."
)


class StubGateway:
    """
    Scripted generation gateway.

    Each call consumes the next scripted response; the last one repeats.
    A response is returned as text, raised when it is an exception, or
    called with the request when it is callable.
    """

    def __init__(self, provider_name: str, responses: List[object]):
        self._provider_name = provider_name
        self._responses = list(responses)
        self.requests: List[GenerationRequest] = []

    @property
    def provider_name(self) -> str:
        return self._provider_name

    @property
    def call_count(self) -> int:
        return len(self.requests)

    def generate(self, request: GenerationRequest) -> GenerationResult:
        self.requests.append(request)
        response = self._responses[0] if len(self._responses) == 1 else self._responses.pop(0)
        if isinstance(response, Exception):
            raise response
        if callable(response):
            response = response(request)
        if isinstance(response, GenerationResult):
            return response
        return GenerationResult(text=response, provider=self._provider_name)


def failing_gateway(provider_name: str) -> StubGateway:
    return StubGateway(provider_name, [GatewayTimeoutError(provider_name, timeout_seconds=1.0)])


@pytest.fixture
def parser() -> SectionParser:
    return SectionParser()


@pytest.fixture
def repository() -> InMemoryProfileRepository:
    return InMemoryProfileRepository()


@pytest.fixture
def soap_profile(repository):
    return repository.get_profile("soap")


@pytest.fixture
def credible_profile(repository):
    return repository.get_profile("credible")


@pytest.fixture
def epic_profile(repository):
    return repository.get_profile("epic")


@pytest.fixture
def soap_note(parser):
    return parser.parse(SOAP_NOTE)


@pytest.fixture
def psych_note(parser):
    return parser.parse(PSYCH_NOTE)
