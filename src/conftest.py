from datetime import datetime, timedelta, timezone
from threading import Event

import pytest
from cryptography import x509
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.x509.oid import ExtendedKeyUsageOID, NameOID
from OpenSSL.crypto import X509

from tlschain.transport.state import TLSState

NOW = datetime.now(timezone.utc)


def _name(common_name: str, organization: str = "Example Trust") -> x509.Name:
    return x509.Name(
        [
            x509.NameAttribute(NameOID.COUNTRY_NAME, "AU"),
            x509.NameAttribute(NameOID.ORGANIZATION_NAME, organization),
            x509.NameAttribute(NameOID.COMMON_NAME, common_name),
        ]
    )


def make_certificate(
    common_name: str,
    issuer: tuple = None,
    sans: list = None,
    server_auth: bool = False,
    not_before: datetime = None,
    not_after: datetime = None,
    ca_issuers_uri: str = None,
) -> tuple:
    """Return (cryptography certificate, private key); self-signed when issuer is None"""
    key = ec.generate_private_key(ec.SECP256R1())
    subject = _name(common_name)
    if issuer is None:
        issuer_name, issuer_key = subject, key
    else:
        issuer_name, issuer_key = issuer[0].subject, issuer[1]
    builder = (
        x509.CertificateBuilder()
        .subject_name(subject)
        .issuer_name(issuer_name)
        .public_key(key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(not_before or NOW - timedelta(days=30))
        .not_valid_after(not_after or NOW + timedelta(days=365))
    )
    if sans:
        builder = builder.add_extension(
            x509.SubjectAlternativeName([x509.DNSName(name) for name in sans]),
            critical=False,
        )
    if server_auth:
        builder = builder.add_extension(
            x509.ExtendedKeyUsage([ExtendedKeyUsageOID.SERVER_AUTH]), critical=False
        )
    if ca_issuers_uri:
        builder = builder.add_extension(
            x509.AuthorityInformationAccess(
                [
                    x509.AccessDescription(
                        x509.oid.AuthorityInformationAccessOID.CA_ISSUERS,
                        x509.UniformResourceIdentifier(ca_issuers_uri),
                    )
                ]
            ),
            critical=False,
        )
    return builder.sign(issuer_key, hashes.SHA256()), key


def make_presented_chain(leaf_sans: list = None, leaf_server_auth: bool = True) -> list:
    """Leaf first list of pyOpenSSL X509 objects: leaf, intermediate, self-signed root"""
    root = make_certificate("Example Root CA")
    intermediate = make_certificate(
        "Example Intermediate CA",
        issuer=root,
        ca_issuers_uri="http://ca.example/root.der",
    )
    leaf = make_certificate(
        (leaf_sans or ["good.example"])[0],
        issuer=intermediate,
        sans=leaf_sans or ["good.example"],
        server_auth=leaf_server_auth,
    )
    return [X509.from_cryptography(cert) for cert, _ in [leaf, intermediate, root]]


class FakeSession:
    """Stands in for TLSSession, returning `presented` or raising `error` from the handshake"""

    presented: list = []
    error: BaseException = None
    block: bool = False
    instances: list = []

    def __init__(self, hostname, port=443, use_sni=True, cafiles=None):
        self.state = TLSState()
        self.state.hostname = hostname
        self.state.port = port
        self.state.sni_support = use_sni
        self.close_calls = 0
        self.handshake_calls = 0
        self._released = Event()
        type(self).instances.append(self)

    def handshake(self, timeout: float) -> list:
        self.handshake_calls += 1
        if self.block:
            self._released.wait(5)
            raise OSError("socket closed while waiting for the server")
        if self.error is not None:
            raise self.error
        self.state.negotiated_protocol = "TLSv1.3"
        self.state.negotiated_cipher = "TLS_AES_256_GCM_SHA384"
        self.state.peer_address = "192.0.2.10"
        return list(self.presented)

    def close(self, graceful: bool = False) -> bool:
        self.close_calls += 1
        self._released.set()
        return self.close_calls == 1


@pytest.fixture
def session_factory():
    def factory(presented: list = None, error: BaseException = None, block: bool = False):
        return type(
            "Session",
            (FakeSession,),
            {
                "presented": presented or [],
                "error": error,
                "block": block,
                "instances": [],
            },
        )

    return factory


@pytest.fixture
def test_config():
    return {
        "defaults": {
            "port": 443,
            "timeout_ms": 2000,
            "use_sni": True,
            "cafiles": [],
            "chain_head_is_leaf": True,
            "expiry_warning_days": 30,
            "skip_rules": [],
        },
        "outputs": [],
        "targets": [],
    }
