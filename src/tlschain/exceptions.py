__module__ = "tlschain.exceptions"

X509_MESSAGES = {
    2: "unable to get issuer certificate, the issuer certificate of a looked up certificate could not be found. This normally means the list of trusted certificates is not complete.",
    7: "certificate signature failure, the signature of the certificate is invalid.",
    9: "certificate is not yet valid, the certificate is not yet valid: the notBefore date is after the current time.",
    10: "certificate has expired, the certificate has expired: that is the notAfter date is before the current time.",
    13: "format error in certificate's notBefore field, the certificate notBefore field contains an invalid time.",
    14: "format error in certificate's notAfter field, the certificate notAfter field contains an invalid time.",
    18: "self signed certificate, the passed certificate is self signed and the same certificate cannot be found in the list of trusted certificates",
    19: "self signed certificate in certificate chain, the certificate chain could be built up using the untrusted certificates but the root could not be found locally.",
    20: "unable to get local issuer certificate, the issuer certificate could not be found: this occurs if the issuer certificate of an untrusted certificate cannot be found.",
    21: "unable to verify the first certificate, no signatures could be verified because the chain contains only one certificate and it is not self signed.",
    23: "certificate revoked, the certificate has been revoked.",
    24: "invalid CA certificate, a CA certificate is invalid. Either it is not a CA or its extensions are not consistent with the supplied purpose.",
    25: "path length constraint exceeded, the basicConstraints pathlength parameter has been exceeded.",
    26: "unsupported certificate purpose, the supplied certificate cannot be used for the specified purpose.",
    27: "certificate not trusted, the root CA is not marked as trusted for the specified purpose.",
    28: "certificate rejected, the root CA is marked to reject the specified purpose.",
    29: "subject issuer mismatch, the current candidate issuer certificate was rejected because its subject name did not match the issuer name of the current certificate.",
    32: "key usage does not include certificate signing, the current candidate issuer certificate was rejected because its keyUsage extension does not permit certificate signing.",
    62: "hostname mismatch, the certificate does not match the requested hostname.",
}

HOSTNAME_REQUIRED = "Hostname is required"
NO_CERTIFICATE_DATA = "No certificate data received"
CONNECTION_TIMED_OUT = "Connection timed out"
TLS_CONNECTION_FAILED = "TLS Connection failed: {reason}"
CERTIFICATE_PROCESSING_FAILED = "Failed to process certificate: {reason}"
INVALID_PORT = "Port must be between 1 and 65535, got {port}"


class ValidationError(ValueError):
    """Bad input, raised before any connection is attempted"""


class TransportError(ConnectionError):
    """Used when the TLS session could not be established with the server"""


class HandshakeTimeoutError(TimeoutError):
    """Connect and handshake did not complete within the time budget"""


class ProtocolError(Exception):
    """The handshake completed but the certificate payload was absent or malformed"""


class RuleNotRelevant(Exception):
    pass
