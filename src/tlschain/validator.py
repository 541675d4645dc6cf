import logging
from datetime import datetime, timedelta, timezone
from typing import Callable, Union

from . import constants, util
from .exceptions import RuleNotRelevant
from .models import Certificate, ValidationIssue

__module__ = "tlschain.validator"

logger = logging.getLogger(__name__)


def _issue(index: int, severity: str, message: str, rule: str) -> ValidationIssue:
    return ValidationIssue(
        certificate_index=index, severity=severity, message=message, rule=rule
    )


def _date(value: datetime) -> str:
    return value.date().isoformat()


def check_leaf_position(chain: list[Certificate], **_) -> list[ValidationIssue]:
    if chain[0].role == constants.ROLE_LEAF:
        return []
    return [
        _issue(
            0,
            constants.SEVERITY_ERROR,
            "First certificate must be a leaf certificate",
            "leaf_position",
        )
    ]


def candidate_names(certificate: Certificate) -> list[str]:
    names = list(certificate.subject_alternative_names)
    if certificate.common_name:
        names.append(certificate.common_name)
    return names


def check_hostname(
    chain: list[Certificate], hostname: str, **_
) -> list[ValidationIssue]:
    if not hostname:
        raise RuleNotRelevant
    names = candidate_names(chain[0])
    if not names:
        return [
            _issue(
                0,
                constants.SEVERITY_WARNING,
                "Certificate has limited hostname information",
                "hostname_match",
            )
        ]
    if any(util.match_hostname(name, hostname) for name in names):
        return []
    return [
        _issue(
            0,
            constants.SEVERITY_ERROR,
            f'Hostname "{hostname}" doesn\'t match certificate names: {", ".join(names)}',
            "hostname_match",
        )
    ]


def check_dates(
    chain: list[Certificate],
    now: datetime,
    expiry_warning_days: int = constants.DEFAULT_EXPIRY_WARNING_DAYS,
    **_,
) -> list[ValidationIssue]:
    issues = []
    warning_window = timedelta(days=expiry_warning_days)
    for index, cert in enumerate(chain):
        if cert.valid_from and now < cert.valid_from:
            issues.append(
                _issue(
                    index,
                    constants.SEVERITY_ERROR,
                    f"Certificate not yet valid. Valid from: {_date(cert.valid_from)}",
                    "validity_dates",
                )
            )
        if not cert.valid_to:
            continue
        if now > cert.valid_to:
            issues.append(
                _issue(
                    index,
                    constants.SEVERITY_ERROR,
                    f"Certificate expired on: {_date(cert.valid_to)}",
                    "validity_dates",
                )
            )
        elif cert.valid_to - now < warning_window:
            issues.append(
                _issue(
                    index,
                    constants.SEVERITY_WARNING,
                    f"Certificate expires soon: {_date(cert.valid_to)} ({cert.expiry_status(now)})",
                    "validity_dates",
                )
            )
    return issues


def check_linkage(chain: list[Certificate], **_) -> list[ValidationIssue]:
    issues = []
    for index in range(len(chain) - 1):
        current = chain[index]
        issuer = chain[index + 1]
        if util.names_match(issuer.subject, current.issuer):
            continue
        logger.debug(
            f"chain broken at {index}: issuer {current.issuer_dn} next subject {issuer.subject_dn}"
        )
        issues.append(
            _issue(
                index,
                constants.SEVERITY_ERROR,
                f'Certificate chain broken: "{current.subject_dn}" not properly signed by "{issuer.subject_dn}"',
                "chain_linkage",
            )
        )
    return issues


def _weak_digest(signature_algorithm: str) -> Union[str, None]:
    algorithm = (signature_algorithm or "").lower()
    for digest in constants.KNOWN_WEAK_SIGNATURE_ALGORITHMS:
        if algorithm.startswith(digest) or algorithm.endswith(digest):
            return digest
    return None


def check_signature_algorithm(
    chain: list[Certificate], **_
) -> list[ValidationIssue]:
    issues = []
    for index, cert in enumerate(chain):
        digest = _weak_digest(cert.signature_algorithm)
        if not digest:
            continue
        issues.append(
            _issue(
                index,
                constants.SEVERITY_WARNING,
                f"Weak signature algorithm ({cert.signature_algorithm}): {constants.KNOWN_WEAK_SIGNATURE_ALGORITHMS[digest]}",
                "weak_signature_algorithm",
            )
        )
    return issues


def check_key_size(chain: list[Certificate], **_) -> list[ValidationIssue]:
    issues = []
    for index, cert in enumerate(chain):
        key_type = cert.key_info.type
        size = cert.key_info.size_in_bits
        if key_type not in constants.WEAK_KEY_SIZE or not size:
            continue
        if size >= constants.WEAK_KEY_SIZE[key_type]:
            continue
        issues.append(
            _issue(
                index,
                constants.SEVERITY_WARNING,
                f"Weak key size ({key_type} {size} bits): {constants.KNOWN_WEAK_KEYS[key_type]}",
                "weak_key_size",
            )
        )
    return issues


RULES: list[tuple[str, Callable[..., list[ValidationIssue]]]] = [
    ("leaf_position", check_leaf_position),
    ("hostname_match", check_hostname),
    ("validity_dates", check_dates),
    ("chain_linkage", check_linkage),
    ("weak_signature_algorithm", check_signature_algorithm),
    ("weak_key_size", check_key_size),
]


def validate(
    chain: list[Certificate],
    hostname: str,
    now: datetime = None,
    config: dict = None,
) -> list[ValidationIssue]:
    defaults = (config or {}).get("defaults", {})
    if now is None:
        now = datetime.now(timezone.utc)
    if not chain:
        return [
            _issue(
                constants.CHAIN_WIDE_INDEX,
                constants.SEVERITY_ERROR,
                "Empty certificate chain",
                "empty_chain",
            )
        ]

    skip_rules = defaults.get("skip_rules") or []
    expiry_warning_days = defaults.get(
        "expiry_warning_days", constants.DEFAULT_EXPIRY_WARNING_DAYS
    )
    issues = []
    for key, rule in RULES:
        if key in skip_rules:
            continue
        logger.info(f"{hostname} rule {key}")
        try:
            issues.extend(
                rule(
                    chain,
                    hostname=hostname,
                    now=now,
                    expiry_warning_days=expiry_warning_days,
                )
            )
        except RuleNotRelevant:
            continue
    return issues


def is_valid(issues: list[ValidationIssue]) -> bool:
    return not any(issue.is_error for issue in issues)
