import logging
import ssl
from socket import create_connection, socket, timeout as SocketTimeout, SHUT_RDWR
from threading import Lock, Thread

import idna
from certifi import where
from OpenSSL import SSL
from OpenSSL.crypto import X509

from .. import constants, exceptions, util
from ..chain import PeerCertificate, build_chain, link_issuers
from ..models import Certificate
from .state import Settlement, TLSState

__module__ = "tlschain.transport"

logger = logging.getLogger(__name__)


class TLSSession:
    """
    One client TLS session used only to observe what the server presents.

    Verification is left to OpenSSL in VERIFY_NONE mode so invalid, expired and
    self-signed chains still complete the handshake; verify errors are recorded
    on `state.verify_errors` instead.
    """

    _default_connect_method: str = "TLS_CLIENT_METHOD"
    _default_connect_verify_mode: str = "VERIFY_NONE"

    def __init__(
        self,
        hostname: str,
        port: int = constants.DEFAULT_PORT,
        use_sni: bool = True,
        cafiles: list = None,
    ) -> None:
        self.state = TLSState()
        self.state.hostname = hostname
        self.state.port = port
        self.state.sni_support = False
        self._use_sni = use_sni
        self._cafiles = cafiles or []
        self._lock = Lock()
        self._closed = False
        self._sock: socket = None
        self._conn: SSL.Connection = None

    def _verifier(
        self,
        conn: SSL.Connection,
        server_cert: X509,
        errno: int,
        depth: int,
        preverify_ok: int,
    ) -> bool:
        if errno:
            self.state.verify_errors.append(
                exceptions.X509_MESSAGES.get(errno, f"OpenSSL verify error {errno}")
            )
        return True

    def prepare_context(self) -> SSL.Context:
        ctx = SSL.Context(method=getattr(SSL, TLSSession._default_connect_method))
        ctx.load_verify_locations(cafile=where())
        for cafile in self._cafiles:
            ctx.load_verify_locations(cafile=cafile)
        ctx.set_verify(
            getattr(SSL, TLSSession._default_connect_verify_mode), self._verifier
        )
        return ctx

    def _server_name(self) -> bytes:
        try:
            return idna.encode(self.state.hostname)
        except idna.IDNAError as ex:
            logger.warning(
                f"{self.state.hostname}:{self.state.port} SNI fallback to ascii: {ex}"
            )
        return self.state.hostname.encode("ascii", errors="ignore")

    def handshake(self, timeout: float) -> list[X509]:
        """Connect and complete the handshake, returning the presented certificates leaf first"""
        sock = create_connection((self.state.hostname, self.state.port), timeout=timeout)
        with self._lock:
            if self._closed:
                sock.close()
                raise exceptions.TransportError("session closed before handshake")
            # blocking from here, the caller enforces the deadline by closing the socket
            sock.settimeout(None)
            self._sock = sock
            self._conn = SSL.Connection(self.prepare_context(), sock)
        conn = self._conn
        if all(
            [self._use_sni, ssl.HAS_SNI, not util.is_ip_address(self.state.hostname)]
        ):
            logger.debug(f"{self.state.hostname}:{self.state.port} using SNI")
            conn.set_tlsext_host_name(self._server_name())
            self.state.sni_support = True
        conn.set_connect_state()
        util.do_handshake(conn)
        self.state.peer_address = conn.getpeername()[0]
        self.state.negotiated_protocol = conn.get_protocol_version_name()
        self.state.negotiated_cipher = conn.get_cipher_name()
        self.state.negotiated_cipher_bits = conn.get_cipher_bits()
        leaf = conn.get_peer_certificate()
        if leaf is None:
            return []
        presented = list(conn.get_peer_cert_chain() or [])
        if not presented or presented[0].digest("sha256") != leaf.digest("sha256"):
            presented.insert(0, leaf)
        logger.debug(
            f"{self.state.hostname}:{self.state.port} Peer cert chain length: {len(presented)}"
        )
        return presented

    def close(self, graceful: bool = False) -> bool:
        with self._lock:
            if self._closed:
                return False
            self._closed = True
            conn, sock = self._conn, self._sock
        if graceful and conn is not None:
            try:
                conn.shutdown()
            except SSL.Error as err:
                logger.debug(err, exc_info=True)
        if sock is not None:
            try:
                sock.shutdown(SHUT_RDWR)
            except OSError as err:
                logger.debug(err, exc_info=True)
            sock.close()
        logger.debug(f"{self.state.hostname}:{self.state.port} session closed")
        return True


def check_target(hostname: str, port: int) -> tuple[str, int]:
    if not isinstance(hostname, str) or not hostname.strip():
        raise exceptions.ValidationError(exceptions.HOSTNAME_REQUIRED)
    if port is None:
        port = constants.DEFAULT_PORT
    if isinstance(port, bool) or not isinstance(port, int) or not 1 <= port <= 65535:
        raise exceptions.ValidationError(exceptions.INVALID_PORT.format(port=port))
    return hostname.strip(), port


def _handshake_worker(session: TLSSession, settlement: Settlement, timeout: float):
    target = f"{session.state.hostname}:{session.state.port}"
    try:
        presented = session.handshake(timeout)
        records = [PeerCertificate.from_x509(x509) for x509 in presented]
    except (SocketTimeout, TimeoutError):
        if settlement.reject(
            exceptions.HandshakeTimeoutError(exceptions.CONNECTION_TIMED_OUT)
        ):
            logger.warning(f"{target} {exceptions.CONNECTION_TIMED_OUT}")
        return
    except (OSError, SSL.Error) as err:
        if settlement.reject(
            exceptions.TransportError(
                exceptions.TLS_CONNECTION_FAILED.format(reason=err)
            )
        ):
            logger.warning(f"{target} {err}")
        return
    except Exception as ex:  # pylint: disable=broad-except
        if settlement.reject(
            exceptions.ProtocolError(
                exceptions.CERTIFICATE_PROCESSING_FAILED.format(reason=ex)
            )
        ):
            logger.warning(ex, exc_info=True)
        return
    if not records:
        settlement.reject(exceptions.ProtocolError(exceptions.NO_CERTIFICATE_DATA))
        return
    settlement.resolve(link_issuers(records))


def fetch_peer_certificates(
    hostname: str,
    port: int = constants.DEFAULT_PORT,
    timeout_ms: int = constants.DEFAULT_TIMEOUT_MS,
    use_sni: bool = True,
    cafiles: list = None,
    session_class: type = None,
) -> tuple[PeerCertificate, TLSState]:
    """
    Run one TLS session against hostname:port and return the linked leaf
    record together with the observed connection state.

    Exactly one of success, transport error or timeout settles the call, and
    the session is closed before this returns on every path. The worker gets
    a short join after the close; a worker still inside name resolution or
    `create_connection` is a daemon and ends on that call's own timeout.
    """
    hostname, port = check_target(hostname, port)
    if timeout_ms is None:
        timeout_ms = constants.DEFAULT_TIMEOUT_MS
    if not isinstance(timeout_ms, (int, float)) or timeout_ms <= 0:
        raise exceptions.ValidationError(
            f"timeout_ms must be a positive number, got {timeout_ms}"
        )
    timeout = timeout_ms / 1000
    session = (session_class or TLSSession)(
        hostname, port, use_sni=use_sni, cafiles=cafiles
    )
    settlement = Settlement()
    worker = Thread(
        target=_handshake_worker,
        args=(session, settlement, timeout),
        name=f"tlschain-{hostname}:{port}",
        daemon=True,
    )
    logger.info(f"{hostname}:{port} connecting (timeout {timeout_ms}ms)")
    try:
        worker.start()
        if not settlement.wait(timeout) and settlement.reject(
            exceptions.HandshakeTimeoutError(exceptions.CONNECTION_TIMED_OUT)
        ):
            logger.warning(f"{hostname}:{port} {exceptions.CONNECTION_TIMED_OUT}")
    finally:
        session.close(graceful=settlement.settled and settlement.error is None)
        if worker.is_alive():
            worker.join(constants.WORKER_JOIN_SECONDS)
    return settlement.result(), session.state


def retrieve_chain(
    hostname: str,
    port: int = constants.DEFAULT_PORT,
    timeout_ms: int = constants.DEFAULT_TIMEOUT_MS,
    use_sni: bool = True,
    cafiles: list = None,
    chain_head_is_leaf: bool = True,
    session_class: type = None,
) -> list[Certificate]:
    peer_certificate, _ = fetch_peer_certificates(
        hostname,
        port,
        timeout_ms=timeout_ms,
        use_sni=use_sni,
        cafiles=cafiles,
        session_class=session_class,
    )
    return build_chain(peer_certificate, chain_head_is_leaf=chain_head_is_leaf)
