# cool_ikigai/models/session_state.py

from typing import Dict, List, Optional
from pydantic import BaseModel, Field
from cool_ikigai.models.flow_models import (
    ConversationStep,
    Domain,
    IkigaiSummary,
    ResponseRecord,
)


class IkigaiState(BaseModel):
    """
    Everything the dialogue knows about one Ikigai run: the current step,
    the answer history, the distilled summary per domain and the final
    composed summary.
    """
    session_id: str = "local"
    current_step: ConversationStep = ConversationStep.INTRODUCTION
    is_active: bool = False
    responses: List[ResponseRecord] = Field(default_factory=list)
    domain_summaries: Dict[Domain, str] = Field(default_factory=dict)
    domain_keywords: Dict[Domain, List[str]] = Field(default_factory=dict)
    ikigai_summary: Optional[IkigaiSummary] = None
    contact_info: Optional[str] = None
    coaching_request: Optional[str] = None

    def record_response(self, raw_text: str) -> ResponseRecord:
        record = ResponseRecord(step=self.current_step, raw_text=raw_text)
        self.responses.append(record)
        return record

    def prior_response(self) -> Optional[ResponseRecord]:
        """The answer given before the one currently being processed"""
        if len(self.responses) < 2:
            return None
        return self.responses[-2]

    def get_summary(self, domain: Domain) -> Optional[str]:
        return self.domain_summaries.get(domain)

    def set_summary(self, domain: Domain, summary: str, keywords: List[str]):
        self.domain_summaries[domain] = summary
        self.domain_keywords[domain] = list(keywords)

    def has_all_summaries(self) -> bool:
        return all(self.domain_summaries.get(domain) for domain in Domain)

    def clear(self):
        """Drop history, summaries and contact data; back to the introduction"""
        self.current_step = ConversationStep.INTRODUCTION
        self.responses = []
        self.domain_summaries = {}
        self.domain_keywords = {}
        self.ikigai_summary = None
        self.contact_info = None
        self.coaching_request = None
