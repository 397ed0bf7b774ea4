import logging
from enum import Enum
from functools import lru_cache
from typing import Union

from certifi import where
from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.x509 import Certificate
from OpenSSL import SSL
from OpenSSL.crypto import (
    X509,
    X509Store,
    X509StoreContext,
    X509StoreContextError,
    X509StoreFlags,
    FILETYPE_ASN1,
    load_certificate,
    Error as OpenSSLError,
)

from . import exceptions, util

__module__ = "tlspin.trust"

logger = logging.getLogger(__name__)


class TrustResult(str, Enum):
    INVALID = "invalid"
    PROCEED = "proceed"
    UNSPECIFIED = "unspecified"
    RECOVERABLE_TRUST_FAILURE = "recoverable_trust_failure"
    FATAL_TRUST_FAILURE = "fatal_trust_failure"
    OTHER_ERROR = "other_error"

    @property
    def trusted(self) -> bool:
        return self in [TrustResult.UNSPECIFIED, TrustResult.PROCEED]


class BasicX509Policy:
    name = "basic_x509"

    def __repr__(self) -> str:
        return "BasicX509Policy()"


class SSLPolicy(BasicX509Policy):
    name = "ssl"

    def __init__(self, hostname: str = None) -> None:
        if hostname is not None and not isinstance(hostname, str):
            raise TypeError(
                f"provided an invalid type {type(hostname)} for hostname, expected str"
            )
        self.hostname = hostname

    def __repr__(self) -> str:
        return f"SSLPolicy(hostname={self.hostname!r})"


def create_basic_x509_policy() -> BasicX509Policy:
    return BasicX509Policy()


def create_ssl_policy(hostname: str = None) -> SSLPolicy:
    return SSLPolicy(hostname=hostname)


@lru_cache(maxsize=1)
def _default_store() -> X509Store:
    store = X509Store()
    store.load_locations(cafile=where())
    return store


class PeerTrust:
    """
    Per-handshake trust handle, the peer certificate chain (leaf first) plus
    the policy and anchors it is evaluated with. Cryptographic checks are
    delegated to OpenSSL through pyOpenSSL.
    """

    def __init__(
        self,
        certificates: list[Union[bytes, X509, Certificate]],
        policy: BasicX509Policy = None,
    ) -> None:
        if isinstance(certificates, (bytes, X509, Certificate)):
            certificates = [certificates]
        if not isinstance(certificates, (list, tuple)):
            raise TypeError(
                f"provided an invalid type {type(certificates)} for certificates, expected list"
            )
        self._certificates: list[bytes] = [util.to_der(c) for c in certificates]
        self._policy: BasicX509Policy = policy or create_basic_x509_policy()
        self._anchors: Union[list[X509], None] = None
        self._result: Union[TrustResult, None] = None
        self._verified_errno: Union[int, None] = None

    @classmethod
    def from_connection(cls, conn: SSL.Connection) -> "PeerTrust":
        return cls(list(conn.get_peer_cert_chain() or []))

    @property
    def certificate_count(self) -> int:
        return len(self._certificates)

    def certificate_at_index(self, index: int) -> bytes:
        return self._certificates[index]

    @property
    def policy(self) -> BasicX509Policy:
        return self._policy

    @property
    def anchors(self) -> Union[list[X509], None]:
        return self._anchors

    @property
    def result(self) -> Union[TrustResult, None]:
        return self._result

    @property
    def openssl_errno(self) -> Union[int, None]:
        return self._verified_errno

    def set_policy(self, policy: BasicX509Policy) -> None:
        if not isinstance(policy, BasicX509Policy):
            raise TypeError(
                f"provided an invalid type {type(policy)} for policy, expected BasicX509Policy"
            )
        self._policy = policy
        self._result = None

    def set_anchors(self, certificates: list[Union[bytes, X509, Certificate]]) -> None:
        """Installed anchors replace the default root bundle for this handle"""
        anchors = []
        for certificate in certificates:
            if not isinstance(certificate, X509):
                certificate = load_certificate(
                    FILETYPE_ASN1, util.to_der(certificate)
                )
            anchors.append(certificate)
        self._anchors = anchors
        self._result = None

    def _store(self) -> X509Store:
        if self._anchors is None:
            return _default_store()
        store = X509Store()
        for anchor in self._anchors:
            store.add_cert(anchor)
        # a pinned intermediate or leaf is a trust point without its issuers
        store.set_flags(X509StoreFlags.PARTIAL_CHAIN)
        return store

    def evaluate(self) -> TrustResult:
        self._verified_errno = None
        if not self._certificates:
            self._result = TrustResult.INVALID
            return self._result
        try:
            leaf, *chain = [
                load_certificate(FILETYPE_ASN1, der) for der in self._certificates
            ]
        except OpenSSLError as ex:
            logger.debug(ex, exc_info=True)
            self._result = TrustResult.INVALID
            return self._result

        try:
            X509StoreContext(self._store(), leaf, chain=chain).verify_certificate()
        except X509StoreContextError as err:
            errno = err.errors[0] if getattr(err, "errors", None) else None
            self._verified_errno = errno
            logger.info(
                f"{self._policy!r} verification failed: {exceptions.X509_MESSAGES.get(errno, err)}"
            )
            self._result = (
                TrustResult.RECOVERABLE_TRUST_FAILURE
                if errno in exceptions.RECOVERABLE_ERRNOS
                else TrustResult.FATAL_TRUST_FAILURE
            )
            return self._result
        except OpenSSLError as ex:
            logger.warning(ex, exc_info=True)
            self._result = TrustResult.OTHER_ERROR
            return self._result

        if isinstance(self._policy, SSLPolicy):
            self._result = self._evaluate_ssl(leaf.to_cryptography())
            if self._result is not None:
                return self._result

        self._result = (
            TrustResult.UNSPECIFIED if self._anchors is None else TrustResult.PROCEED
        )
        return self._result

    def _evaluate_ssl(self, leaf: Certificate) -> Union[TrustResult, None]:
        if not util.server_auth_permitted(leaf):
            self._verified_errno = exceptions.X509_V_ERR_INVALID_PURPOSE
            logger.info(
                f"{self._policy!r} {exceptions.X509_MESSAGES[self._verified_errno]}"
            )
            return TrustResult.FATAL_TRUST_FAILURE
        if self._policy.hostname is None:
            return None
        try:
            matched = util.match_hostname(self._policy.hostname, leaf)
        except ValueError as ex:
            logger.debug(ex, exc_info=True)
            matched = False
        if not matched:
            self._verified_errno = exceptions.X509_V_ERR_HOSTNAME_MISMATCH
            logger.info(
                f"{self._policy!r} {exceptions.X509_MESSAGES[self._verified_errno]}"
            )
            return TrustResult.RECOVERABLE_TRUST_FAILURE
        return None

    def copy_public_key(self):
        """Leaf public key of the evaluated handle, whatever the evaluation outcome"""
        if self._result is None:
            self.evaluate()
        if not self._certificates:
            return None
        try:
            leaf = load_certificate(FILETYPE_ASN1, self._certificates[0])
            return leaf.to_cryptography().public_key()
        except (OpenSSLError, UnsupportedAlgorithm, ValueError) as ex:
            logger.debug(ex, exc_info=True)
        return None
