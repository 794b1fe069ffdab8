"""Side-effect intents emitted by commands and executed after commit"""

from dataclasses import dataclass, field
from datetime import date
from typing import Optional


@dataclass(frozen=True)
class Notify:
    user_id: str
    type: str
    title: str
    message: str
    tenancy_id: Optional[str] = None


@dataclass(frozen=True)
class GenerateAgreementPDF:
    tenancy_id: str


@dataclass(frozen=True)
class GenerateBreachLetter:
    tenancy_id: str
    notice_id: str
    breach_type: str
    description: str
    remedy_deadline: date


@dataclass(frozen=True)
class GenerateDeductionStatement:
    tenancy_id: str
    deduction_id: str


@dataclass(frozen=True)
class GenerateExtensionOffer:
    tenancy_id: str
    notice_id: str


DOCUMENT_INTENTS = (GenerateAgreementPDF, GenerateBreachLetter, GenerateDeductionStatement, GenerateExtensionOffer)


def document_kind(intent) -> str:
    """Stable name the document service uses to pick a template"""
    return {
        GenerateAgreementPDF: "agreement",
        GenerateBreachLetter: "breach_letter",
        GenerateDeductionStatement: "deduction_statement",
        GenerateExtensionOffer: "extension_offer",
    }[type(intent)]


@dataclass
class CommandResult:
    """Outcome of a lifecycle command: the touched entity plus post-commit intents"""

    subject: object = None
    intents: list = field(default_factory=list)
