import math
from datetime import datetime, timezone
from typing import Any, Union

from pydantic import BaseModel, ConfigDict, Field

from . import constants, util

__module__ = "tlschain.models"


class KeyInfo(BaseModel):
    type: Union[str, None] = Field(default=None, description="RSA, DSA, DH or EC")
    size_in_bits: Union[int, None] = Field(default=None)


class InfoAccess(BaseModel):
    ca_issuers_uris: list[str] = Field(default_factory=list)
    ocsp_uris: list[str] = Field(default_factory=list)


class Certificate(BaseModel):
    role: str = Field(description="leaf, intermediate or root")
    subject: dict[str, str] = Field(default_factory=dict)
    issuer: dict[str, str] = Field(default_factory=dict)
    serial_number: str = Field(default="")
    valid_from: Union[datetime, None] = Field(default=None)
    valid_to: Union[datetime, None] = Field(default=None)
    signature_algorithm: str = Field(default="")
    subject_alternative_names: list[str] = Field(default_factory=list)
    extended_key_usage: list[str] = Field(default_factory=list)
    key_info: KeyInfo = Field(default_factory=KeyInfo)
    fingerprints: dict[str, str] = Field(default_factory=dict)
    raw_der: bytes = Field(default=b"", repr=False)
    pem_encoded: Union[str, None] = Field(default=None, repr=False)
    info_access: InfoAccess = Field(default_factory=InfoAccess)

    @property
    def subject_dn(self) -> str:
        return util.format_distinguished_name(self.subject)

    @property
    def issuer_dn(self) -> str:
        return util.format_distinguished_name(self.issuer)

    @property
    def common_name(self) -> Union[str, None]:
        return self.subject.get("CN")

    @property
    def is_self_signed(self) -> bool:
        return bool(self.subject) and self.subject == self.issuer

    def status(self, now: datetime = None) -> str:
        now = now or datetime.now(timezone.utc)
        if self.valid_from and now < self.valid_from:
            return constants.STATUS_NOT_YET_VALID
        if self.valid_to and now > self.valid_to:
            return constants.STATUS_EXPIRED
        return constants.STATUS_VALID

    def days_remaining(self, now: datetime = None) -> Union[int, None]:
        if not self.valid_to:
            return None
        now = now or datetime.now(timezone.utc)
        return math.ceil((self.valid_to - now).total_seconds() / 86400)

    def expiry_status(self, now: datetime = None) -> Union[str, None]:
        if not self.valid_to:
            return None
        return util.date_diff(self.valid_to, now)

    def to_dict(self, now: datetime = None) -> dict:
        return {
            "type": self.role,
            "subject": self.subject_dn,
            "issuer": self.issuer_dn,
            "subject_fields": dict(self.subject),
            "issuer_fields": dict(self.issuer),
            "serial_number": self.serial_number,
            "valid_from": self.valid_from.isoformat() if self.valid_from else None,
            "valid_to": self.valid_to.isoformat() if self.valid_to else None,
            "status": self.status(now),
            "days_remaining": self.days_remaining(now),
            "expiry_status": self.expiry_status(now),
            "signature_algorithm": self.signature_algorithm,
            "sans": list(self.subject_alternative_names),
            "extended_key_usage": list(self.extended_key_usage),
            "public_key": self.key_info.model_dump(),
            "fingerprints": dict(self.fingerprints),
            "info_access": {
                "ca_issuers": list(self.info_access.ca_issuers_uris),
                "ocsp": list(self.info_access.ocsp_uris),
            },
            "pem": self.pem_encoded,
        }


class ValidationIssue(BaseModel):
    model_config = ConfigDict(frozen=True)

    certificate_index: int = Field(description="-1 for chain-wide issues")
    severity: str = Field(description="warning or error")
    message: str
    rule: Union[str, None] = Field(default=None)

    @property
    def is_error(self) -> bool:
        return self.severity == constants.SEVERITY_ERROR


class ChainReport(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True)

    hostname: str
    port: int
    chain: list[Certificate] = Field(default_factory=list)
    issues: list[ValidationIssue] = Field(default_factory=list)
    tls_state: Any = Field(default=None, repr=False)

    @property
    def valid(self) -> bool:
        return not self.errors

    @property
    def errors(self) -> list[ValidationIssue]:
        return [issue for issue in self.issues if issue.is_error]

    @property
    def warnings(self) -> list[ValidationIssue]:
        return [
            issue
            for issue in self.issues
            if issue.severity == constants.SEVERITY_WARNING
        ]

    def to_dict(self) -> dict:
        data = {
            "hostname": self.hostname,
            "port": self.port,
            "valid": self.valid,
            "chain": [cert.to_dict() for cert in self.chain],
            "issues": [issue.model_dump() for issue in self.issues],
        }
        if self.tls_state is not None:
            data["tls"] = self.tls_state.to_dict()
        return data
