__module__ = "tlschain.constants"

DEFAULT_PORT = 443
DEFAULT_TIMEOUT_MS = 5000
DEFAULT_EXPIRY_WARNING_DAYS = 30
MAX_CHAIN_DEPTH = 16
WORKER_JOIN_SECONDS = 0.5
X509_DATE_FMT = r"%Y%m%d%H%M%SZ"
PEM_HEADER = "-----BEGIN CERTIFICATE-----"
PEM_FOOTER = "-----END CERTIFICATE-----"
PEM_LINE_LENGTH = 64

ROLE_LEAF = "leaf"
ROLE_INTERMEDIATE = "intermediate"
ROLE_ROOT = "root"

SEVERITY_WARNING = "warning"
SEVERITY_ERROR = "error"
CHAIN_WIDE_INDEX = -1

STATUS_VALID = "valid"
STATUS_EXPIRED = "expired"
STATUS_NOT_YET_VALID = "not-yet-valid"

# fields compared when checking an issuer subject against a certificate issuer
IDENTITY_FIELDS = ["C", "ST", "L", "O", "OU", "CN"]
SERVER_AUTH = "serverAuth"
SAN_DNS_PREFIX = "DNS:"
SAN_SEPARATOR = ", "
SAN_TYPE_PREFIX = {
    "DNSName": "DNS",
    "IPAddress": "IP Address",
    "RFC822Name": "email",
    "UniformResourceIdentifier": "URI",
    "DirectoryName": "DirName",
    "RegisteredID": "Registered ID",
    "OtherName": "othername",
}

KNOWN_WEAK_SIGNATURE_ALGORITHMS = {
    "md2": "MD2 digests are broken, collisions are trivial to produce",
    "md4": "MD4 digests are broken, collisions are trivial to produce",
    "md5": "MD5 digests are broken, chosen-prefix collisions were used to forge a CA in 2008",
    "sha1": "SHA1 digests are broken, the SHAttered chosen-prefix collision was demonstrated in 2017",
}
KNOWN_WEAK_KEYS = {
    "RSA": "Keys smaller than 2048 bits are within reach of well funded factoring efforts",
    "DSA": "Keys smaller than 2048 bits are within reach of well funded discrete log efforts",
    "DH": "Keys smaller than 2048 bits are vulnerable to precomputation (Logjam)",
    "EC": "Curves smaller than 224 bits do not provide 112 bits of security",
}
WEAK_KEY_SIZE = {
    "RSA": 2048,
    "DSA": 2048,
    "DH": 2048,
    "EC": 224,
}

RESULT_LEVEL_PASS = "pass"
RESULT_LEVEL_INFO = "info"
RESULT_LEVEL_WARN = "warn"
RESULT_LEVEL_FAIL = "fail"
RESULT_LEVEL_PASS_DEFAULT = "PASS!"
RESULT_LEVEL_INFO_DEFAULT = "INFO!"
RESULT_LEVEL_WARN_DEFAULT = "WARN!"
RESULT_LEVEL_FAIL_DEFAULT = "FAIL!"
DEFAULT_MAP = {
    RESULT_LEVEL_PASS: RESULT_LEVEL_PASS_DEFAULT,
    RESULT_LEVEL_INFO: RESULT_LEVEL_INFO_DEFAULT,
    RESULT_LEVEL_WARN: RESULT_LEVEL_WARN_DEFAULT,
    RESULT_LEVEL_FAIL: RESULT_LEVEL_FAIL_DEFAULT,
}

CLI_COLOR_PRIMARY = "cyan"
CLI_COLOR_PASS = "dark_sea_green2"
CLI_COLOR_INFO = "deep_sky_blue2"
CLI_COLOR_WARN = "khaki1"
CLI_COLOR_FAIL = "light_coral"
CLI_COLOR_MAP = {
    RESULT_LEVEL_PASS: CLI_COLOR_PASS,
    RESULT_LEVEL_INFO: CLI_COLOR_INFO,
    RESULT_LEVEL_WARN: CLI_COLOR_WARN,
    RESULT_LEVEL_FAIL: CLI_COLOR_FAIL,
}
CLI_ICON_MAP = {
    RESULT_LEVEL_PASS: ":white_heavy_check_mark:",
    RESULT_LEVEL_INFO: ":information:",
    RESULT_LEVEL_WARN: ":bell:",
    RESULT_LEVEL_FAIL: ":cross_mark:",
}
ROLE_ICON_MAP = {
    ROLE_LEAF: ":leaf_fluttering_in_wind:",
    ROLE_INTERMEDIATE: ":link:",
    ROLE_ROOT: ":deciduous_tree:",
}
