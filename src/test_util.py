import os
from datetime import datetime, timedelta, timezone

import pytest
from tlschain import constants, util


@pytest.mark.parametrize(
    "pattern,host,expected",
    [
        ("*.example.com", "a.example.com", True),
        ("*.example.com", "example.com", False),
        ("*.example.com", "a.b.example.com", False),
        ("example.com", "example.com", True),
        ("Example.COM", "example.com.", True),
        ("*.example.com", ".example.com", False),
        ("a*.example.com", "ab.example.com", False),
        ("", "example.com", False),
    ],
)
def test_match_hostname(pattern, host, expected):
    assert util.match_hostname(pattern, host) is expected


def test_parse_dn_plain():
    assert util.parse_distinguished_name("CN=example.com, O=Example, C=AU") == {
        "CN": "example.com",
        "O": "Example",
        "C": "AU",
    }


def test_parse_dn_quoted_comma():
    parsed = util.parse_distinguished_name('CN=shop.example, O="Acme, Inc.", C=US')
    assert parsed["O"] == "Acme, Inc."
    assert parsed["C"] == "US"


def test_parse_dn_escaped_comma():
    parsed = util.parse_distinguished_name(r"CN=shop.example,O=Acme\, Inc.,C=US")
    assert parsed == {"CN": "shop.example", "O": "Acme, Inc.", "C": "US"}


def test_parse_dn_hex_escape_and_equals_in_value():
    parsed = util.parse_distinguished_name(r"CN=caf\C3\A9.example, OU=a=b")
    assert parsed["CN"] == "café.example"
    assert parsed["OU"] == "a=b"


def test_parse_dn_first_value_wins():
    parsed = util.parse_distinguished_name("OU=first, OU=second, CN=x")
    assert parsed["OU"] == "first"


def test_parse_dn_newline_separated_and_mapping():
    assert util.parse_distinguished_name("C=AU\nCN=x") == {"C": "AU", "CN": "x"}
    assert util.parse_distinguished_name({"CN": ["x", "y"], "O": "Org"}) == {
        "CN": "x",
        "O": "Org",
    }
    assert util.parse_distinguished_name(None) == {}
    assert util.parse_distinguished_name("garbage") == {}


def test_names_match_tolerates_missing_fields():
    assert util.names_match({"CN": "CA", "O": "Org"}, {"CN": "CA"})
    assert not util.names_match({"CN": "CA", "O": "Org"}, {"CN": "CA", "O": "Other"})


def test_names_match_empty_name():
    assert util.names_match({}, {"CN": "CA"})
    assert util.names_match({"CN": "CA"}, {})
    assert util.names_match({}, {})


def test_pem_round_trip():
    for raw in [os.urandom(1), os.urandom(48), os.urandom(200), os.urandom(1500)]:
        pem = util.pem_encode(raw)
        assert util.pem_encode(util.pem_decode(pem)) == pem
        assert util.pem_decode(pem) == raw


def test_pem_line_length():
    pem = util.pem_encode(os.urandom(700))
    lines = pem.strip().splitlines()
    assert lines[0] == constants.PEM_HEADER
    assert lines[-1] == constants.PEM_FOOTER
    assert pem.endswith("\n")
    body = lines[1:-1]
    assert all(len(line) == constants.PEM_LINE_LENGTH for line in body[:-1])
    assert len(body[-1]) <= constants.PEM_LINE_LENGTH


def test_serial_number_hex():
    assert util.serial_number_hex(255) == "FF"
    assert util.serial_number_hex(4096) == "1000"
    assert util.serial_number_hex(256) == "0100"


def test_parse_x509_date():
    assert util.parse_x509_date(b"20300101120000Z") == datetime(
        2030, 1, 1, 12, tzinfo=timezone.utc
    )
    assert util.parse_x509_date(b"not a date") is None
    assert util.parse_x509_date(None) is None


def test_date_diff():
    now = datetime(2030, 1, 1, tzinfo=timezone.utc)
    assert util.date_diff(now + timedelta(days=12, hours=1), now) == "Expires in 12 days"
    assert util.date_diff(now - timedelta(days=3), now) == "Expired 3 days ago"


def test_is_ip_address():
    assert util.is_ip_address("192.0.2.1")
    assert util.is_ip_address("2001:db8::1")
    assert not util.is_ip_address("example.com")


def test_force_str():
    assert util.force_str("café") == "café"
    assert util.force_str("café".encode("utf-8")) == "café"
    assert util.force_str(42) == "42"
