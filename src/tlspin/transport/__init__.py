import logging
import ssl
from socket import socket, AF_INET, SOCK_STREAM
from typing import Union

import idna
import validators
from OpenSSL import SSL

from .. import exceptions, util
from ..chain import certificate_chain
from ..trust import PeerTrust
from ..validator import Validator

__module__ = "tlspin.transport"

logger = logging.getLogger(__name__)


class PinnedTransport:
    """
    Opens a TLS connection and lets the pin validator decide whether the
    peer is trusted. Standard verification is left off, the pins are the
    trust decision.
    """

    _default_connect_method: str = "TLS_CLIENT_METHOD"

    def __init__(self, hostname: str, validator: Validator, port: int = 443) -> None:
        if not isinstance(port, int):
            raise TypeError(
                f"provided an invalid type {type(port)} for port, expected int"
            )
        if validators.domain(hostname) is not True:
            raise ValueError(f"provided an invalid domain {hostname}")
        if not isinstance(validator, Validator):
            raise TypeError(
                f"provided an invalid type {type(validator)} for validator, expected Validator"
            )
        self.hostname = hostname
        self.port = port
        self.validator = validator
        self.peer_address: Union[str, None] = None
        self.negotiated_protocol: Union[str, None] = None
        self.certificate_chain: list[bytes] = []
        self.verified: Union[bool, None] = None

    def prepare_socket(self, timeout: int = 3) -> socket:
        sock = socket(AF_INET, SOCK_STREAM)
        sock.settimeout(timeout)
        return sock

    def prepare_context(self) -> SSL.Context:
        ctx = SSL.Context(method=getattr(SSL, PinnedTransport._default_connect_method))
        ctx.set_verify(SSL.VERIFY_NONE)
        return ctx

    def connect(self, use_sni: bool = True, timeout: int = 3) -> bool:
        logger.info(f"{self.hostname}:{self.port} connecting")
        conn = SSL.Connection(
            context=self.prepare_context(), socket=self.prepare_socket(timeout)
        )
        if all([use_sni, ssl.HAS_SNI]):
            logger.debug(f"{self.hostname}:{self.port} using SNI")
            conn.set_tlsext_host_name(idna.encode(self.hostname))
        try:
            conn.connect((self.hostname, self.port))
            conn.setblocking(1)
            util.do_handshake(conn)
            self.peer_address = conn.getpeername()[0]
            self.negotiated_protocol = conn.get_protocol_version_name()
            trust = PeerTrust.from_connection(conn)
            self.certificate_chain = certificate_chain(trust)
            logger.debug(
                f"{self.hostname}:{self.port} Peer cert chain length: {len(self.certificate_chain)}"
            )
        except (SSL.Error, OSError) as err:
            conn.close()
            raise exceptions.TransportError(
                exceptions.VALIDATION_ERROR_TLS_FAILED.format(
                    host=self.hostname, port=self.port
                )
            ) from err

        self.verified = self.validator.is_valid(trust, self.hostname)
        if not self.verified:
            conn.close()
            raise exceptions.ValidationError(
                exceptions.VALIDATION_ERROR_PIN_MISMATCH.format(
                    host=self.hostname, port=self.port
                )
            )
        try:
            conn.shutdown()
        except SSL.Error as err:
            logger.debug(err, exc_info=True)
        finally:
            conn.close()
        return self.verified
