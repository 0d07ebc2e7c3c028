"""Tests for failure-count grading and grade ordering."""

import pytest

from checks.http_headers import LENIENT, STRICT, RuleMode, run_all
from grading import failed_count, grade
from models import ComplianceReport, Grade, RuleOutcome


def _report(failed: int, passed: int = 0, rule_set: str = STRICT.version) -> ComplianceReport:
    outcomes = {}
    for i in range(failed):
        outcomes[f"fail-{i}"] = RuleOutcome(rule=f"fail-{i}", passed=False, message="Missing")
    for i in range(passed):
        outcomes[f"pass-{i}"] = RuleOutcome(rule=f"pass-{i}", passed=True)
    return ComplianceReport(rule_set=rule_set, outcomes=outcomes)


@pytest.mark.parametrize("failed,expected", [
    (0, Grade.A),
    (1, Grade.B),
    (2, Grade.B),
    (3, Grade.C),
    (4, Grade.C),
    (5, Grade.D),
    (6, Grade.D),
    (7, Grade.E),
    (8, Grade.E),
    (9, Grade.F),
    (16, Grade.F),
])
def test_thresholds(failed, expected):
    assert grade(_report(failed, passed=3)) is expected


def test_passing_outcomes_do_not_count():
    assert failed_count(_report(2, passed=10)) == 2


def test_lenient_reports_use_their_own_thresholds():
    assert grade(_report(0, rule_set=LENIENT.version)) is Grade.A
    assert grade(_report(5, rule_set=LENIENT.version)) is Grade.D


def test_secure_headers_grade_a(secure_headers):
    assert grade(run_all(secure_headers)) is Grade.A


def test_empty_lenient_report_grades_a():
    # Only the server rule is evaluated and an absent server passes
    assert grade(run_all({}, RuleMode.LENIENT)) is Grade.A


def test_partial_headers_grade_f(partial_headers):
    report = run_all(partial_headers, RuleMode.STRICT)
    assert failed_count(report) == 13
    assert grade(report) is Grade.F


def test_strict_never_grades_better_than_lenient(partial_headers):
    assert grade(run_all(partial_headers, RuleMode.STRICT)) <= grade(run_all(partial_headers, RuleMode.LENIENT))


class TestGradeOrder:
    def test_worst_to_best(self):
        assert Grade.F < Grade.E < Grade.D < Grade.C < Grade.B < Grade.A

    def test_sorting(self):
        assert sorted([Grade.A, Grade.F, Grade.C]) == [Grade.F, Grade.C, Grade.A]
        assert max(Grade.B, Grade.D) is Grade.B

    def test_reverse_comparisons_follow_grade_order(self):
        assert Grade.A > Grade.B
        assert Grade.A >= Grade.A
        assert Grade.F <= Grade.E
        assert not Grade.B >= Grade.A

    def test_value_is_letter(self):
        assert Grade("E").value == "E"


def test_unknown_rule_set_version_is_named():
    with pytest.raises(ValueError, match="strict-v0"):
        grade(_report(1, rule_set="strict-v0"))
