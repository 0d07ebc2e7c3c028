"""Letter grade from a compliance report."""

from checks.http_headers import RULE_SETS
from models import ComplianceReport, Grade

_THRESHOLDS = {rs.version: rs.thresholds for rs in RULE_SETS.values()}


def failed_count(report: ComplianceReport) -> int:
    return len(report.failures)


def grade(report: ComplianceReport) -> Grade:
    """Every failed rule counts the same; no weighting and no partial credit.

    The thresholds were tuned for the rule count of the report's rule set, so
    they are looked up by that version rather than shared globally.
    """
    thresholds = _THRESHOLDS.get(report.rule_set)
    if thresholds is None:
        raise ValueError(f"No grade thresholds for rule set {report.rule_set!r}")
    failed = failed_count(report)
    for max_failed, letter in thresholds:
        if failed <= max_failed:
            return Grade(letter)
    return Grade.F
