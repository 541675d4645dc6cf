import hashlib
import logging
from typing import Union

from . import constants, util
from .models import Certificate, InfoAccess, KeyInfo

__module__ = "tlschain.certificate"

logger = logging.getLogger(__name__)
FINGERPRINT_ALGORITHMS = ["sha1", "sha256", "sha512"]


def parse_alt_names(subjectaltname: Union[str, None]) -> list[str]:
    if not subjectaltname:
        return []
    names = []
    for entry in util.force_str(subjectaltname).split(constants.SAN_SEPARATOR):
        entry = entry.strip()
        if not entry.startswith(constants.SAN_DNS_PREFIX):
            continue
        name = entry[len(constants.SAN_DNS_PREFIX) :].strip()  # noqa: E203
        if name:
            names.append(name)
    return names


def fingerprints(der: bytes) -> dict[str, str]:
    if not der:
        return {}
    return {
        algorithm: hashlib.new(algorithm, der).hexdigest()
        for algorithm in FINGERPRINT_ALGORITHMS
    }


def classify(
    certificate: Certificate,
    is_chain_head: bool = False,
    chain_head_is_leaf: bool = True,
) -> str:
    """
    Role of a certificate within the chain walk.

    A certificate whose parsed subject equals its parsed issuer is the root.
    Otherwise the chain head is the leaf; with `chain_head_is_leaf=False` the
    head must also carry DNS SANs or the serverAuth extended key usage to be a
    leaf, and falls back to intermediate when it has neither.
    """
    subject = util.parse_distinguished_name(certificate.subject)
    if subject and subject == util.parse_distinguished_name(certificate.issuer):
        return constants.ROLE_ROOT
    if not is_chain_head:
        return constants.ROLE_INTERMEDIATE
    if chain_head_is_leaf:
        return constants.ROLE_LEAF
    if certificate.subject_alternative_names or (
        constants.SERVER_AUTH in (certificate.extended_key_usage or [])
    ):
        return constants.ROLE_LEAF
    return constants.ROLE_INTERMEDIATE


def normalize(
    record, is_chain_head: bool = False, chain_head_is_leaf: bool = True
) -> Certificate:
    raw = getattr(record, "raw", None) or b""
    digests = fingerprints(raw)
    serial_number = getattr(record, "serial_number", None)
    if not serial_number:
        serial_number = digests.get("sha1", "").upper()
    certificate = Certificate(
        role=constants.ROLE_INTERMEDIATE,
        subject=util.parse_distinguished_name(getattr(record, "subject", None)),
        issuer=util.parse_distinguished_name(getattr(record, "issuer", None)),
        serial_number=serial_number,
        valid_from=getattr(record, "valid_from", None),
        valid_to=getattr(record, "valid_to", None),
        signature_algorithm=getattr(record, "signature_algorithm", None) or "",
        subject_alternative_names=parse_alt_names(
            getattr(record, "subjectaltname", None)
        ),
        extended_key_usage=list(getattr(record, "ext_key_usage", None) or []),
        key_info=KeyInfo(
            type=getattr(record, "key_type", None),
            size_in_bits=getattr(record, "key_bits", None),
        ),
        fingerprints=digests,
        raw_der=raw,
        pem_encoded=util.pem_encode(raw) if raw else None,
        info_access=InfoAccess(
            ca_issuers_uris=list(getattr(record, "ca_issuers_uris", None) or []),
            ocsp_uris=list(getattr(record, "ocsp_uris", None) or []),
        ),
    )
    certificate.role = classify(
        certificate,
        is_chain_head=is_chain_head,
        chain_head_is_leaf=chain_head_is_leaf,
    )
    if certificate.role != constants.ROLE_LEAF:
        certificate.subject_alternative_names = []
    logger.debug(
        f"{certificate.role} {certificate.subject_dn} serial {certificate.serial_number}"
    )
    return certificate
