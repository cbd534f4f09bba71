import json
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, Optional

import tenacity

import host
from logger import logger


@dataclass(frozen=True)
class DomainCount:
    domain: str
    count: int


@dataclass(frozen=True)
class NetworkReport:
    total_events: int
    domains: tuple[DomainCount, ...]
    raw: dict[str, Any] = field(default_factory=dict, compare=False)

    def unique_domains(self) -> list[str]:
        return sorted({d.domain for d in self.domains})

    def requests_to(self, domain: str) -> int:
        return sum(d.count for d in self.domains if d.domain == domain)


@dataclass(frozen=True)
class DomainValidation:
    allowed: tuple[str, ...]
    violations: tuple[str, ...]

    @property
    def passed(self) -> bool:
        return not self.violations


class ReportNotReady(Exception):
    pass


def parse_report(text: str) -> NetworkReport:
    data = json.loads(text)
    if not isinstance(data, dict):
        raise ValueError(f"Unexpected network report type: {type(data).__name__}")
    entries = data.get("domainNames") or []
    if not isinstance(entries, list) or not all(isinstance(e, dict) for e in entries):
        raise ValueError(f"Unexpected domainNames in network report: {entries!r}")
    domains = tuple(DomainCount(str(e["domain"]), int(e.get("count", 0))) for e in entries if e.get("domain"))
    return NetworkReport(int(data.get("totalEvents") or 0), domains, data)


def validate_domains(report: NetworkReport, allowlist: Iterable[str]) -> DomainValidation:
    allowed = set(allowlist)
    seen = report.unique_domains()
    return DomainValidation(
        allowed=tuple(d for d in seen if d in allowed),
        violations=tuple(d for d in seen if d not in allowed),
    )


def fetch_report(
    network_id: str,
    h: Optional[host.Host] = None,
    retries: int = 5,
    delay: float = 5,
    *,
    sleep: Callable[[float], None] = time.sleep,
) -> str:
    # Reports may take a few seconds to become available after the test window
    h = h if h is not None else host.LocalHost()

    def attempt() -> str:
        ret = h.run(["replicated", "network", "report", network_id, "--summary"])
        out = (ret.out + ret.err).strip() if not ret.success() else ret.out.strip()
        if not ret.success() or not out or out == "null" or "Error:" in out:
            raise ReportNotReady(out)
        return out

    retrying = tenacity.Retrying(
        stop=tenacity.stop_after_attempt(retries),
        wait=tenacity.wait_fixed(delay),
        retry=tenacity.retry_if_exception_type(ReportNotReady),
        before=lambda state: logger.info(f"Attempt {state.attempt_number} of {retries}..."),
        before_sleep=lambda state: logger.info(f"Report not ready yet, waiting {delay} seconds..."),
        sleep=sleep,
    )
    try:
        report = str(retrying(attempt))
    except tenacity.RetryError as e:
        logger.error(f"Failed to fetch network report after {retries} attempts")
        logger.error(f"Last error: {e.last_attempt.exception()}")
        logger.error("Network reporting may not be enabled, no network activity occurred, or the report is still being generated")
        logger.error_and_exit("Network report unavailable")
        raise
    logger.info("Network report fetched successfully")
    return report


def check_report(report: NetworkReport, allowlist: Iterable[str]) -> bool:
    allowlist = list(allowlist)
    logger.info(f"Total network events: {report.total_events}")

    if not report.domains:
        logger.warning("No domain names found in network report")
        logger.info(json.dumps(report.raw, indent=2))
        logger.info("PASSED: No external domains contacted (empty report)")
        return True

    result = validate_domains(report, allowlist)
    logger.info("Domains contacted during installation:")
    for domain in report.unique_domains():
        verdict = "ALLOWED" if domain in result.allowed else "VIOLATION"
        logger.info(f"{verdict}: {domain} ({report.requests_to(domain)} requests)")

    if result.passed:
        logger.info("VALIDATION PASSED: all network traffic went to expected endpoints")
        return True

    logger.error("VALIDATION FAILED")
    logger.error(f"Unexpected domains contacted: {', '.join(result.violations)}")
    logger.error(f"Only these domains are allowed: {', '.join(allowlist)}")
    logger.info(json.dumps(report.raw, indent=2))
    return False


def validate_network_report(network_id: str, allowlist: Iterable[str], h: Optional[host.Host] = None, retries: int = 5, delay: float = 5) -> bool:
    allowlist = list(allowlist)
    logger.info(f"Network ID: {network_id}")
    logger.info(f"Allowed domains: {' '.join(allowlist)}")
    text = fetch_report(network_id, h, retries, delay)
    try:
        report = parse_report(text)
    except (ValueError, KeyError, TypeError) as e:
        logger.error_and_exit(f"Malformed network report: {e}")
        return False
    return check_report(report, allowlist)
