import hashlib
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Union

from cryptography.x509 import (
    AuthorityInformationAccess,
    Certificate as CryptographyCertificate,
    ExtendedKeyUsage,
    Name,
    SubjectAlternativeName,
    extensions,
)
from cryptography.x509.oid import AuthorityInformationAccessOID
from OpenSSL.crypto import (
    X509,
    Error as CryptoError,
    dump_certificate,
    FILETYPE_ASN1,
    TYPE_RSA,
    TYPE_DSA,
    TYPE_DH,
    TYPE_EC,
)

from . import constants, util
from .certificate import normalize
from .models import Certificate

__module__ = "tlschain.chain"

logger = logging.getLogger(__name__)
KEY_TYPES = {
    TYPE_RSA: "RSA",
    TYPE_DSA: "DSA",
    TYPE_DH: "DH",
    TYPE_EC: "EC",
}


@dataclass
class PeerCertificate:
    """
    One certificate as presented during the handshake, before normalization.

    `subject` and `issuer` are either mappings or DN strings. `subjectaltname`
    keeps the `DNS:a, DNS:b` form so the normalizer decides what survives.
    `issuer_certificate` links to the issuing record; a self-signed record
    links to itself.
    """

    subject: Union[dict, str, None] = None
    issuer: Union[dict, str, None] = None
    serial_number: Union[str, None] = None
    valid_from: Union[datetime, None] = None
    valid_to: Union[datetime, None] = None
    signature_algorithm: Union[str, None] = None
    subjectaltname: Union[str, None] = None
    ext_key_usage: list[str] = field(default_factory=list)
    key_type: Union[str, None] = None
    key_bits: Union[int, None] = None
    ca_issuers_uris: list[str] = field(default_factory=list)
    ocsp_uris: list[str] = field(default_factory=list)
    raw: bytes = field(default=b"", repr=False)
    issuer_certificate: Union["PeerCertificate", None] = field(
        default=None, repr=False, compare=False
    )

    @property
    def serial_key(self) -> str:
        if self.serial_number:
            return self.serial_number
        return hashlib.sha1(self.raw).hexdigest().upper()

    @property
    def is_self_signed(self) -> bool:
        subject = util.parse_distinguished_name(self.subject)
        return bool(subject) and subject == util.parse_distinguished_name(self.issuer)

    @classmethod
    def from_x509(cls, x509: X509) -> "PeerCertificate":
        cert = x509.to_cryptography()
        key_type, key_bits = _key_info(x509)
        ca_issuers_uris, ocsp_uris = _info_access(cert)
        return cls(
            subject=_name_to_dict(cert.subject),
            issuer=_name_to_dict(cert.issuer),
            serial_number=util.serial_number_hex(x509.get_serial_number()),
            valid_from=util.parse_x509_date(x509.get_notBefore()),
            valid_to=util.parse_x509_date(x509.get_notAfter()),
            signature_algorithm=_signature_algorithm(x509),
            subjectaltname=_alt_names(cert),
            ext_key_usage=_extended_key_usage(cert),
            key_type=key_type,
            key_bits=key_bits,
            ca_issuers_uris=ca_issuers_uris,
            ocsp_uris=ocsp_uris,
            raw=dump_certificate(FILETYPE_ASN1, x509),
        )


def _name_to_dict(name: Name) -> dict[str, str]:
    result = {}
    for attribute in name:
        result.setdefault(
            attribute.rfc4514_attribute_name, util.force_str(attribute.value)
        )
    return result


def _extension_value(cert: CryptographyCertificate, extension_class):
    try:
        return cert.extensions.get_extension_for_class(extension_class).value
    except extensions.ExtensionNotFound:
        return None
    except ValueError as ex:
        # malformed or duplicated extensions are reported as absent
        logger.debug(ex, exc_info=True)
    return None


def _alt_names(cert: CryptographyCertificate) -> Union[str, None]:
    san = _extension_value(cert, SubjectAlternativeName)
    if san is None:
        return None
    entries = []
    for general_name in san:
        kind = type(general_name).__name__
        entries.append(
            f"{constants.SAN_TYPE_PREFIX.get(kind, kind)}:{general_name.value}"
        )
    return constants.SAN_SEPARATOR.join(entries)


def _extended_key_usage(cert: CryptographyCertificate) -> list[str]:
    usages = _extension_value(cert, ExtendedKeyUsage)
    if usages is None:
        return []
    # pylint: disable=protected-access
    return [getattr(usage, "_name", usage.dotted_string) for usage in usages]


def _info_access(cert: CryptographyCertificate) -> tuple[list[str], list[str]]:
    ca_issuers = []
    ocsp = []
    descriptions = _extension_value(cert, AuthorityInformationAccess)
    for description in descriptions or []:
        location = util.force_str(description.access_location.value)
        if description.access_method == AuthorityInformationAccessOID.OCSP:
            ocsp.append(location)
        elif description.access_method == AuthorityInformationAccessOID.CA_ISSUERS:
            ca_issuers.append(location)
    return ca_issuers, ocsp


def _key_info(x509: X509) -> tuple[Union[str, None], Union[int, None]]:
    try:
        public_key = x509.get_pubkey()
        return KEY_TYPES.get(public_key.type()), public_key.bits()
    except CryptoError as ex:
        logger.debug(ex, exc_info=True)
    return None, None


def _signature_algorithm(x509: X509) -> Union[str, None]:
    try:
        return x509.get_signature_algorithm().decode("ascii")
    except ValueError as ex:
        logger.debug(ex, exc_info=True)
    return None


def link_issuers(records: list[PeerCertificate]) -> Union[PeerCertificate, None]:
    """Link each presented record to its issuer, the first record is the leaf"""
    if not records:
        return None
    for record in records:
        if record.is_self_signed:
            record.issuer_certificate = record
            continue
        issuer = util.parse_distinguished_name(record.issuer)
        for candidate in records:
            if candidate is record:
                continue
            if util.parse_distinguished_name(candidate.subject) == issuer:
                record.issuer_certificate = candidate
                break
    return records[0]


def extract_chain(peer_certificate: Union[PeerCertificate, None]) -> list[PeerCertificate]:
    chain = []
    seen_serials = set()
    visited = set()
    current = peer_certificate
    while current is not None:
        if id(current) in visited or len(visited) >= constants.MAX_CHAIN_DEPTH:
            logger.debug(f"issuer walk ended on a cycle after {len(visited)} records")
            break
        visited.add(id(current))
        if current.serial_key not in seen_serials:
            seen_serials.add(current.serial_key)
            chain.append(current)
        if current.is_self_signed:
            break
        current = current.issuer_certificate
    return chain


def build_chain(
    peer_certificate: Union[PeerCertificate, None], chain_head_is_leaf: bool = True
) -> list[Certificate]:
    return [
        normalize(
            record,
            is_chain_head=index == 0,
            chain_head_is_leaf=chain_head_is_leaf,
        )
        for index, record in enumerate(extract_chain(peer_certificate))
    ]
