"""Data model shared by the rule set, grading, orchestrator and HTTP layer."""

from datetime import datetime, timezone
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class Grade(str, Enum):
    A = "A"
    B = "B"
    C = "C"
    D = "D"
    E = "E"
    F = "F"

    @property
    def rank(self) -> int:
        # F is worst, A is best
        return "FEDCBA".index(self.value)

    def __lt__(self, other):
        if not isinstance(other, Grade):
            return NotImplemented
        return self.rank < other.rank

    def __le__(self, other):
        if not isinstance(other, Grade):
            return NotImplemented
        return self.rank <= other.rank

    def __gt__(self, other):
        if not isinstance(other, Grade):
            return NotImplemented
        return self.rank > other.rank

    def __ge__(self, other):
        if not isinstance(other, Grade):
            return NotImplemented
        return self.rank >= other.rank


class RuleOutcome(BaseModel):
    model_config = ConfigDict(frozen=True)

    rule: str
    passed: bool
    message: str = ""


class ComplianceReport(BaseModel):
    """One outcome per evaluated rule, looked up by rule name."""

    model_config = ConfigDict(frozen=True)

    rule_set: str
    outcomes: Dict[str, RuleOutcome] = Field(default_factory=dict)

    def __getitem__(self, rule: str) -> RuleOutcome:
        return self.outcomes[rule]

    def __contains__(self, rule: str) -> bool:
        return rule in self.outcomes

    def __len__(self) -> int:
        return len(self.outcomes)

    @property
    def failures(self) -> List[RuleOutcome]:
        return [o for o in self.outcomes.values() if not o.passed]

    def summary(self) -> Dict[str, str]:
        """Rule name to "Pass" or the failure message, as stored in the event log."""
        return {name: "Pass" if o.passed else o.message for name, o in self.outcomes.items()}


class IpAddresses(BaseModel):
    ipv4: List[str] = Field(default_factory=list)
    ipv6: List[str] = Field(default_factory=list)


class Providers(BaseModel):
    cloudflare: bool = False
    railway: bool = False
    vercel: bool = False


class ProviderInfo(BaseModel):
    providers: Providers = Field(default_factory=Providers)


class ScanRecord(BaseModel):
    """A completed probe as persisted to the event log.

    Records read back from the log may be sparse (older shapes), so every
    field other than the identity of the scan has a default.
    """

    model_config = ConfigDict(frozen=True)

    event_type: str = "result"
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    query: str
    hostname: str
    raw_headers: Dict[str, str] = Field(default_factory=dict)
    ip_address: IpAddresses = Field(default_factory=IpAddresses)
    checks: Dict[str, Dict[str, str]] = Field(default_factory=dict)
    info: ProviderInfo = Field(default_factory=ProviderInfo)
    grade: Optional[Grade] = None


class ScanResult(BaseModel):
    cached: bool
    record: ScanRecord

    def to_response(self) -> dict:
        body = self.record.model_dump(mode="json", exclude_none=True)
        body["cached"] = self.cached
        return body
