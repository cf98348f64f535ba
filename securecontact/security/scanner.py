"""
Content-risk scanner for contact form submissions.

Scores text against a declarative list of regex patterns and keywords plus a
few shape heuristics (length, special-character density, repeated shell/path
sequences). The score maps to a risk level, and the combined verdict over all
fields of a submission maps to an action: allow, quarantine or block.

This is a naive heuristic filter, not a malware scanner.
"""

import logging
import math
import re
from enum import Enum
from typing import List, NamedTuple, Optional

from pydantic import BaseModel, Field

from securecontact.shared.errors import FailurePolicy, ScannerFailure


class RiskLevel(str, Enum):
    NONE = "none"
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    @property
    def severity(self) -> int:
        return _SEVERITY[self]


_SEVERITY = {
    RiskLevel.NONE: 0,
    RiskLevel.LOW: 1,
    RiskLevel.MEDIUM: 2,
    RiskLevel.HIGH: 3,
    RiskLevel.CRITICAL: 4,
}


class ScanAction(str, Enum):
    ALLOW = "allow"
    QUARANTINE = "quarantine"
    BLOCK = "block"


class RiskPattern(NamedTuple):
    """One scoring rule: each match of regex adds weight to the score."""
    name: str
    regex: re.Pattern
    category: str
    weight: int = 10


def _rule(name: str, pattern: str, category: str, weight: int = 10) -> RiskPattern:
    return RiskPattern(name, re.compile(pattern, re.IGNORECASE), category, weight)


RISK_PATTERNS: List[RiskPattern] = [
    # Script injection
    _rule("script_tag", r"<script\b[^<]*(?:(?!</script>)<[^<]*)*</script>", "script_injection"),
    _rule("javascript_uri", r"javascript:", "script_injection"),
    _rule("vbscript_uri", r"vbscript:", "script_injection"),
    _rule("onload_handler", r"onload\s*=", "script_injection"),
    _rule("onerror_handler", r"onerror\s*=", "script_injection"),
    _rule("onclick_handler", r"onclick\s*=", "script_injection"),
    # SQL injection
    _rule("union_select", r"union\s+select", "sql_injection"),
    _rule("drop_table", r"drop\s+table", "sql_injection"),
    _rule("delete_from", r"delete\s+from", "sql_injection"),
    _rule("insert_into", r"insert\s+into", "sql_injection"),
    _rule("update_set", r"update\s+set", "sql_injection"),
    # Command injection
    _rule("pipe_nc", r"\|\s*nc\s", "command_injection"),
    _rule("pipe_netcat", r"\|\s*netcat", "command_injection"),
    _rule("pipe_wget", r"\|\s*wget", "command_injection"),
    _rule("pipe_curl", r"\|\s*curl", "command_injection"),
    _rule("pipe_bash", r"\|\s*bash", "command_injection"),
    _rule("pipe_sh", r"\|\s*sh", "command_injection"),
    # File system access
    _rule("path_traversal", r"\.\./\.\./", "path_traversal"),
    _rule("etc_passwd", r"/etc/passwd", "path_traversal"),
    _rule("etc_shadow", r"/etc/shadow", "path_traversal"),
    _rule("proc_self", r"/proc/self", "path_traversal"),
    # URL shorteners
    _rule("bitly", r"bit\.ly", "url_shortener"),
    _rule("tinyurl", r"tinyurl", "url_shortener"),
    _rule("twitter_shortener", r"\bt\.co\b", "url_shortener"),
    # Dangerous file extension at the end of the text
    _rule("dangerous_extension", r"\.(exe|bat|cmd|scr|pif|vbs|js|jar|zip|rar)$", "dangerous_file"),
    # Base64 data URIs carrying markup or script
    _rule("html_data_uri", r"data:text/html;base64,", "data_uri"),
    _rule("javascript_data_uri", r"data:application/javascript;base64,", "data_uri"),
]

SUSPICIOUS_KEYWORDS: List[str] = [
    "exploit", "payload", "shellcode", "backdoor", "rootkit",
    "keylogger", "trojan", "virus", "malware", "ransomware",
    "phishing", "scam", "fraud", "hack", "crack",
    "bypass", "injection", "xss", "csrf", "rce",
    "eval(", "exec(", "system(", "shell_exec",
    "passthru", "proc_open", "popen", "file_get_contents",
]
KEYWORD_WEIGHT = 5

LONG_CONTENT_LENGTH = 10000
LONG_CONTENT_WEIGHT = 3

SPECIAL_CHAR_PATTERN = re.compile(r"[<>{}\[\]()&|;$`'\"\\]")
SPECIAL_CHAR_RATIO_THRESHOLD = 0.1
SPECIAL_CHAR_WEIGHT = 20

SUSPICIOUS_SEQUENCES = ["..//", "&&", "||", ";;", "$$"]
SEQUENCE_MIN_REPEATS = 3
SEQUENCE_WEIGHT = 2

# (minimum score, level), highest first
RISK_THRESHOLDS = [
    (50, RiskLevel.CRITICAL),
    (25, RiskLevel.HIGH),
    (10, RiskLevel.MEDIUM),
    (5, RiskLevel.LOW),
]

BLOCK_SCORE = 75
QUARANTINE_SCORE = 40
FLAG_SCORE = 15

SCANNED_FIELDS = ("name", "email", "message")


class Threat(BaseModel):
    field: Optional[str] = None
    type: str  # pattern, keyword, length, special_chars, sequence
    detail: str
    count: int = 1
    category: Optional[str] = None


class FieldAnalysis(BaseModel):
    score: int = 0
    risk_level: RiskLevel = RiskLevel.NONE
    threats: List[Threat] = Field(default_factory=list)
    details: List[str] = Field(default_factory=list)

    @property
    def is_suspicious(self) -> bool:
        return self.risk_level.severity >= RiskLevel.MEDIUM.severity


class RiskVerdict(BaseModel):
    score: int = 0
    risk_level: RiskLevel = RiskLevel.NONE
    threats: List[Threat] = Field(default_factory=list)
    action: ScanAction = ScanAction.ALLOW
    flagged: bool = False
    scan_failed: bool = False
    fields_scanned: int = 0
    details: List[str] = Field(default_factory=list)

    @property
    def clean(self) -> bool:
        return self.action == ScanAction.ALLOW and not self.flagged


def risk_level_for(score: int) -> RiskLevel:
    for minimum, level in RISK_THRESHOLDS:
        if score >= minimum:
            return level
    return RiskLevel.NONE


def decide_action(total_score: int, highest_risk: RiskLevel) -> ScanAction:
    if highest_risk == RiskLevel.CRITICAL or total_score >= BLOCK_SCORE:
        return ScanAction.BLOCK
    if highest_risk == RiskLevel.HIGH or total_score >= QUARANTINE_SCORE:
        return ScanAction.QUARANTINE
    return ScanAction.ALLOW


def analyze(text: Optional[str], patterns: List[RiskPattern] = RISK_PATTERNS,
            keywords: List[str] = SUSPICIOUS_KEYWORDS) -> FieldAnalysis:
    """Score a single piece of text. Pure function of its inputs."""
    analysis = FieldAnalysis()
    if not text or not isinstance(text, str):
        return analysis

    for rule in patterns:
        matches = sum(1 for _ in rule.regex.finditer(text))
        if matches:
            analysis.score += matches * rule.weight
            analysis.threats.append(Threat(type="pattern", detail=rule.name, count=matches,
                                           category=rule.category))
            analysis.details.append(f"Suspicious pattern detected: {rule.name} ({matches}x)")

    lowered = text.lower()
    found = [keyword for keyword in dict.fromkeys(k.lower() for k in keywords) if keyword in lowered]
    for keyword in found:
        analysis.score += KEYWORD_WEIGHT
        analysis.threats.append(Threat(type="keyword", detail=keyword))
    if found:
        analysis.details.append(f"{len(found)} suspicious keywords found")

    if len(text) > LONG_CONTENT_LENGTH:
        analysis.score += LONG_CONTENT_WEIGHT
        analysis.threats.append(Threat(type="length", detail=f"{len(text)} characters"))
        analysis.details.append("Unusually long content detected")

    special_ratio = len(SPECIAL_CHAR_PATTERN.findall(text)) / len(text)
    if special_ratio > SPECIAL_CHAR_RATIO_THRESHOLD:
        analysis.score += math.floor(special_ratio * SPECIAL_CHAR_WEIGHT)
        analysis.threats.append(Threat(type="special_chars", detail=f"{special_ratio:.1%}"))
        analysis.details.append(f"High special character ratio: {special_ratio:.1%}")

    for sequence in SUSPICIOUS_SEQUENCES:
        count = text.count(sequence)
        if count >= SEQUENCE_MIN_REPEATS:
            analysis.score += count * SEQUENCE_WEIGHT
            analysis.threats.append(Threat(type="sequence", detail=sequence, count=count))
            analysis.details.append(f"Repeated suspicious sequence: {sequence} ({count} times)")

    analysis.risk_level = risk_level_for(analysis.score)
    return analysis


class ContentRiskScanner:
    """
    Scans the fields of a submission and decides what to do with it.

    With FailurePolicy.FAIL_OPEN (the default) an internal error yields a clean
    allow verdict marked scan_failed; with FAIL_CLOSED it raises ScannerFailure.
    """

    def __init__(self, patterns: Optional[List[RiskPattern]] = None,
                 keywords: Optional[List[str]] = None,
                 failure_policy: FailurePolicy = FailurePolicy.FAIL_OPEN):
        self.patterns = RISK_PATTERNS if patterns is None else patterns
        self.keywords = SUSPICIOUS_KEYWORDS if keywords is None else keywords
        self.failure_policy = failure_policy

    def analyze(self, text: Optional[str]) -> FieldAnalysis:
        return analyze(text, self.patterns, self.keywords)

    def scan_message(self, name: Optional[str], email: Optional[str],
                     message: Optional[str]) -> RiskVerdict:
        try:
            return self._scan({"name": name, "email": email, "message": message})
        except Exception as e:
            logging.error(f"Content scan failed: {str(e)}", exc_info=True)
            if self.failure_policy == FailurePolicy.FAIL_CLOSED:
                raise ScannerFailure()
            return RiskVerdict(scan_failed=True, details=["Content scan failed"])

    def _scan(self, fields: dict) -> RiskVerdict:
        verdict = RiskVerdict(fields_scanned=len(fields))
        highest = RiskLevel.NONE

        for field_name, value in fields.items():
            field_analysis = self.analyze(value)
            verdict.score += field_analysis.score
            for threat in field_analysis.threats:
                verdict.threats.append(threat.model_copy(update={"field": field_name}))
            verdict.details.extend(f"{field_name}: {detail}" for detail in field_analysis.details)
            if field_analysis.risk_level.severity > highest.severity:
                highest = field_analysis.risk_level

        verdict.risk_level = highest
        verdict.action = decide_action(verdict.score, highest)
        verdict.flagged = verdict.action != ScanAction.ALLOW or verdict.score >= FLAG_SCORE

        if verdict.flagged:
            logging.warning(
                f"Content scan flagged submission: risk={verdict.risk_level.value} "
                f"score={verdict.score} action={verdict.action.value} threats={len(verdict.threats)}"
            )
        return verdict
