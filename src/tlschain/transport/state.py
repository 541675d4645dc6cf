import logging
from threading import Event, Lock
from typing import Any, Union

__module__ = "tlschain.transport.state"

logger = logging.getLogger(__name__)

PENDING = "pending"
SETTLED = "settled"


class Settlement:
    """
    Terminal outcome of one TLS session.

    Handshake completion, transport errors and the timeout race each other from
    different threads; whichever calls `resolve` or `reject` first wins and all
    later calls are no-ops returning False.
    """

    def __init__(self) -> None:
        self._lock = Lock()
        self._event = Event()
        self.state: str = PENDING
        self.value: Any = None
        self.error: Union[BaseException, None] = None

    @property
    def settled(self) -> bool:
        return self.state == SETTLED

    def _settle(self, value: Any, error: Union[BaseException, None]) -> bool:
        with self._lock:
            if self.state == SETTLED:
                return False
            self.state = SETTLED
            self.value = value
            self.error = error
        self._event.set()
        return True

    def resolve(self, value: Any) -> bool:
        return self._settle(value, None)

    def reject(self, error: BaseException) -> bool:
        return self._settle(None, error)

    def wait(self, timeout: Union[float, None] = None) -> bool:
        return self._event.wait(timeout)

    def result(self) -> Any:
        if self.state != SETTLED:
            raise RuntimeError("Settlement.result called before the session settled")
        if self.error is not None:
            raise self.error
        return self.value


class TLSState:
    def __init__(self) -> None:
        self.hostname: str = None
        self.port: int = 443
        self.sni_support: bool = None
        self.peer_address: str = None
        self.negotiated_protocol: str = None
        self.negotiated_cipher: str = None
        self.negotiated_cipher_bits: int = None
        self.verify_errors: list[str] = []

    @property
    def authorized(self) -> bool:
        return self.negotiated_protocol is not None and not self.verify_errors

    def to_dict(self) -> dict:
        return {
            "hostname": self.hostname,
            "port": self.port,
            "sni_support": self.sni_support,
            "peer_address": self.peer_address,
            "protocol": self.negotiated_protocol,
            "cipher": {
                "negotiated": self.negotiated_cipher,
                "negotiated_bits": self.negotiated_cipher_bits,
            },
            "authorized": self.authorized,
            "verify_errors": sorted(set(self.verify_errors)),
        }
