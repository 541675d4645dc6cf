from tlschain import constants
from tlschain.chain import PeerCertificate, build_chain, extract_chain, link_issuers
from conftest import make_presented_chain

ROOT = {"C": "AU", "O": "Example Trust", "CN": "Example Root CA"}
INTERMEDIATE = {"C": "AU", "O": "Example Trust", "CN": "Example Intermediate CA"}
LEAF = {"CN": "good.example"}


def _linked_records():
    root = PeerCertificate(subject=ROOT, issuer=ROOT, serial_number="01")
    intermediate = PeerCertificate(
        subject=INTERMEDIATE, issuer=ROOT, serial_number="02", issuer_certificate=root
    )
    leaf = PeerCertificate(
        subject=LEAF,
        issuer=INTERMEDIATE,
        serial_number="03",
        subjectaltname="DNS:good.example",
        issuer_certificate=intermediate,
    )
    root.issuer_certificate = root
    return leaf, intermediate, root


def test_extract_chain_leaf_first():
    leaf, intermediate, root = _linked_records()
    assert extract_chain(leaf) == [leaf, intermediate, root]


def test_extract_chain_none():
    assert extract_chain(None) == []


def test_extract_chain_unique_serials():
    leaf, intermediate, root = _linked_records()
    duplicate = PeerCertificate(
        subject=INTERMEDIATE, issuer=ROOT, serial_number="02", issuer_certificate=root
    )
    intermediate.issuer_certificate = duplicate
    chain = extract_chain(leaf)
    serials = [record.serial_key for record in chain]
    assert serials == ["03", "02", "01"]
    assert len(set(serials)) == len(serials)


def test_extract_chain_cycle_terminates():
    first = PeerCertificate(subject={"CN": "a"}, issuer={"CN": "b"}, serial_number="0A")
    second = PeerCertificate(subject={"CN": "b"}, issuer={"CN": "a"}, serial_number="0B")
    first.issuer_certificate = second
    second.issuer_certificate = first
    assert extract_chain(first) == [first, second]


def test_extract_chain_missing_issuer_link():
    leaf, intermediate, _ = _linked_records()
    intermediate.issuer_certificate = None
    assert extract_chain(leaf) == [leaf, intermediate]


def test_extract_chain_depth_bound():
    records = [
        PeerCertificate(subject={"CN": f"{i}"}, issuer={"CN": f"{i + 1}"}, serial_number=f"{i:02X}")
        for i in range(constants.MAX_CHAIN_DEPTH * 2)
    ]
    for record, issuer in zip(records, records[1:]):
        record.issuer_certificate = issuer
    assert len(extract_chain(records[0])) == constants.MAX_CHAIN_DEPTH


def test_link_issuers_out_of_order():
    root = PeerCertificate(subject=ROOT, issuer=ROOT, serial_number="01")
    intermediate = PeerCertificate(subject=INTERMEDIATE, issuer=ROOT, serial_number="02")
    leaf = PeerCertificate(subject=LEAF, issuer=INTERMEDIATE, serial_number="03")
    head = link_issuers([leaf, root, intermediate])
    assert head is leaf
    assert leaf.issuer_certificate is intermediate
    assert intermediate.issuer_certificate is root
    assert root.issuer_certificate is root
    assert link_issuers([]) is None


def test_build_chain_roles():
    leaf, _, _ = _linked_records()
    chain = build_chain(leaf)
    assert [cert.role for cert in chain] == [
        constants.ROLE_LEAF,
        constants.ROLE_INTERMEDIATE,
        constants.ROLE_ROOT,
    ]
    assert chain[0].subject_alternative_names == ["good.example"]


def test_from_x509():
    leaf, intermediate, root = [
        PeerCertificate.from_x509(x509) for x509 in make_presented_chain()
    ]
    assert leaf.subject["CN"] == "good.example"
    assert leaf.issuer == intermediate.subject
    assert leaf.subjectaltname == "DNS:good.example"
    assert leaf.ext_key_usage == ["serverAuth"]
    assert leaf.key_type == "EC"
    assert leaf.key_bits == 256
    assert leaf.signature_algorithm == "ecdsa-with-SHA256"
    assert leaf.valid_from < leaf.valid_to
    assert intermediate.ca_issuers_uris == ["http://ca.example/root.der"]
    assert root.is_self_signed
    assert not leaf.is_self_signed
    assert leaf.raw
