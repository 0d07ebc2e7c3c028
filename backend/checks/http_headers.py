"""HTTP security header rules: strict and lenient rule sets."""

import re
from enum import Enum
from typing import Callable, Dict, NamedTuple, Optional, Tuple

from models import ComplianceReport, RuleOutcome

MISSING = "Missing"

REQUIRED = "required"
PASSTHROUGH = "passthrough"
FORBIDDEN = "forbidden"


class RuleMode(str, Enum):
    STRICT = "strict"
    LENIENT = "lenient"


class Rule(NamedTuple):
    name: str
    kind: str
    check: Callable[[str], bool]
    message: str = ""


class RuleSet(NamedTuple):
    """A versioned rule configuration and the grade thresholds tuned for it."""

    version: str
    mode: RuleMode
    rules: Tuple[Rule, ...]
    # (max failures, grade letter), first match wins
    thresholds: Tuple[Tuple[int, str], ...] = ((0, "A"), (2, "B"), (4, "C"), (6, "D"), (8, "E"))

    def names(self) -> Tuple[str, ...]:
        return tuple(r.name for r in self.rules)


REFERRER_POLICIES = {
    "no-referrer",
    "no-referrer-when-downgrade",
    "same-origin",
    "origin",
    "strict-origin",
    "origin-when-cross-origin",
    "strict-origin-when-cross-origin",
    "unsafe-url",
}

SERVER_DENYLIST = ("cloudflare", "apache", "caddy", "iis")

_HSTS_RE = re.compile(r"^max-age=\d+; includeSubDomains$")


def _has_csp_directive(value: str) -> bool:
    v = value.lower()
    return "default-src" in v or "script-src" in v


def _any_of(*needles: str) -> Callable[[str], bool]:
    return lambda value: any(n in value.lower() for n in needles)


def _all_of(*needles: str) -> Callable[[str], bool]:
    return lambda value: all(n in value.lower() for n in needles)


def _one_of(*values: str) -> Callable[[str], bool]:
    return lambda value: value in values


def _always(value: str) -> bool:
    return True


def _server_is_anonymous(value: str) -> bool:
    v = value.lower()
    return not any(name in v for name in SERVER_DENYLIST)


ALL_RULES: Tuple[Rule, ...] = (
    Rule(
        "strict-transport-security", REQUIRED,
        lambda v: bool(_HSTS_RE.match(v)),
        "Invalid 'Strict-Transport-Security' header format. It should be in the format "
        "'max-age=number; includeSubDomains'.",
    ),
    Rule(
        "content-security-policy", REQUIRED, _has_csp_directive,
        "Invalid 'Content-Security-Policy' header value. It should include 'default-src' "
        "or 'script-src' directives.",
    ),
    Rule(
        "x-frame-options", REQUIRED, _one_of("SAMEORIGIN", "DENY"),
        "Invalid 'X-Frame-Options' header value. It should be 'SAMEORIGIN' or 'DENY'.",
    ),
    Rule(
        "x-content-type-options", REQUIRED, _one_of("nosniff"),
        "Invalid 'X-Content-Type-Options' header value. It should be 'nosniff'.",
    ),
    Rule(
        "referrer-policy", REQUIRED, lambda v: v.lower() in REFERRER_POLICIES,
        "Invalid 'Referrer-Policy' header value. It should be one of the allowed values.",
    ),
    Rule(
        "permissions-policy", REQUIRED,
        _any_of("geolocation", "notifications", "camera", "microphone"),
        "Invalid 'Permissions-Policy' header value. It should include at least one of the "
        "specified features (geolocation, notifications, camera, microphone).",
    ),
    Rule(
        "content-security-policy-report-only", REQUIRED, _has_csp_directive,
        "Invalid 'Content-Security-Policy-Report-Only' header value. It should include "
        "'default-src' or 'script-src' directives.",
    ),
    Rule(
        "x-xss-protection", REQUIRED, _one_of("1", "0"),
        "Invalid 'X-XSS-Protection' header value. It should be '1' to enable or '0' to disable.",
    ),
    Rule(
        "expect-ct", REQUIRED, _all_of("max-age", "enforce", "report-uri"),
        "Invalid 'Expect-CT' header value. It should include 'max-age', 'enforce', and "
        "'report-uri' directives.",
    ),
    # Content is not judged for these three; a site may tighten them per its own policy.
    Rule("feature-policy", PASSTHROUGH, _always),
    Rule("public-key-pins", PASSTHROUGH, _always),
    Rule(
        "content-encoding", REQUIRED, _one_of("gzip", "deflate"),
        "Invalid 'Content-Encoding' header value. It should be 'gzip' or 'deflate' for compression.",
    ),
    Rule(
        "cache-control", REQUIRED,
        lambda v: "private" not in v.lower() and "no-store" not in v.lower(),
        "Invalid 'Cache-Control' header value. It should not include 'private' or 'no-store' "
        "for sensitive data.",
    ),
    Rule(
        "strict-transport-security-preload", REQUIRED, lambda v: v.lower() == "preload",
        "Invalid 'Strict-Transport-Security-Preload' header value. It should be 'preload'.",
    ),
    Rule("access-control-allow-origin", PASSTHROUGH, _always),
    Rule(
        "server", FORBIDDEN, _server_is_anonymous,
        "Invalid 'Server' header value. It should not reveal server-specific information "
        "like 'Apache', 'Caddy', or 'IIS'.",
    ),
)

STRICT = RuleSet("strict-v1", RuleMode.STRICT, ALL_RULES)
LENIENT = RuleSet(
    "lenient-v1",
    RuleMode.LENIENT,
    tuple(r for r in ALL_RULES if r.name != "cache-control"),
)

RULE_SETS: Dict[RuleMode, RuleSet] = {RuleMode.STRICT: STRICT, RuleMode.LENIENT: LENIENT}


def get_rule_set(mode) -> RuleSet:
    """Resolve a mode (enum or its string value) to its rule set."""
    return RULE_SETS[RuleMode(mode)]


def lower_keys(headers: Dict[str, str]) -> Dict[str, str]:
    return {k.lower(): v for k, v in headers.items()}


def _find_rule(rule_set: RuleSet, header_name: str) -> Rule:
    name = header_name.lower()
    for rule in rule_set.rules:
        if rule.name == name:
            return rule
    raise KeyError(f"No rule for header '{header_name}' in {rule_set.version}")


def _evaluate_rule(rule: Rule, headers: Dict[str, str], mode: RuleMode) -> Optional[RuleOutcome]:
    value = headers.get(rule.name)
    if value is None:
        if mode is RuleMode.STRICT:
            return RuleOutcome(rule=rule.name, passed=False, message=MISSING)
        if rule.kind == FORBIDDEN:
            # Nothing disclosed
            return RuleOutcome(rule=rule.name, passed=True)
        return None
    if rule.check(value):
        return RuleOutcome(rule=rule.name, passed=True)
    return RuleOutcome(rule=rule.name, passed=False, message=rule.message)


def evaluate(header_name: str, headers: Dict[str, str], mode=RuleMode.STRICT) -> Optional[RuleOutcome]:
    """Evaluate a single header rule.

    Returns None only in lenient mode when the header is absent and the rule
    is skippable.
    """
    rule_set = get_rule_set(mode)
    return _evaluate_rule(_find_rule(rule_set, header_name), lower_keys(headers), rule_set.mode)


def run_all(headers: Dict[str, str], mode=RuleMode.STRICT) -> ComplianceReport:
    rule_set = get_rule_set(mode)
    lowered = lower_keys(headers)
    outcomes = {}
    for rule in rule_set.rules:
        outcome = _evaluate_rule(rule, lowered, rule_set.mode)
        if outcome is not None:
            outcomes[rule.name] = outcome
    return ComplianceReport(rule_set=rule_set.version, outcomes=outcomes)
