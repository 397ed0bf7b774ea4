import logging
import threading
from concurrent.futures import Executor, Future, ThreadPoolExecutor
from dataclasses import dataclass
from typing import Union

from OpenSSL.crypto import FILETYPE_ASN1, load_certificate, Error as OpenSSLError

from . import chain, constants
from .certificate import PinnedCertificate, load_pinned_certificates

__module__ = "tlspin.store"

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CertificatePins:
    certificates: frozenset

    def __len__(self) -> int:
        return len(self.certificates)


@dataclass(frozen=True)
class PublicKeyPins:
    keys: frozenset

    def __len__(self) -> int:
        return len(self.keys)


class KeyMaterializer:
    def __init__(self, certs: list[PinnedCertificate]) -> None:
        self._certs = certs

    def __call__(self) -> tuple[PublicKeyPins, int]:
        keys = set()
        dropped = 0
        for cert in self._certs:
            if cert.key is None and cert.der is not None:
                cert.key = chain.extract_public_key(cert.der)
            if cert.key is None:
                dropped += 1
                continue
            keys.add(cert.key)
        return PublicKeyPins(keys=frozenset(keys)), dropped


class PinStore:
    """
    Pinned certificates or public keys for the process lifetime.

    Certificate mode is ready as soon as construction returns. Public key
    mode derives the keys on a background worker; the snapshot is published
    once, before the readiness event is set, and is never replaced.
    """

    def __init__(
        self,
        certs: list[PinnedCertificate],
        use_public_keys: bool = False,
        validated_dn: bool = True,
        executor: Union[Executor, None] = None,
    ) -> None:
        if not isinstance(certs, (list, tuple)):
            raise TypeError(
                f"provided an invalid type {type(certs)} for certs, expected list"
            )
        self.use_public_keys = use_public_keys
        self.validated_dn = validated_dn
        self._pins: Union[CertificatePins, PublicKeyPins, None] = None
        self._dropped: int = 0
        self._ready = threading.Event()
        self._future: Union[Future, None] = None

        if self.use_public_keys:
            owned = executor is None
            if owned:
                executor = ThreadPoolExecutor(
                    max_workers=1, thread_name_prefix="tlspin-keys"
                )
            self._future = executor.submit(KeyMaterializer(list(certs)))
            self._future.add_done_callback(self._materialized)
            if owned:
                executor.shutdown(wait=False)
        else:
            self._publish(*self._collect_certificates(certs))

    @classmethod
    def from_paths(
        cls, paths: list[str], suffixes: list[str] = None, **kwargs
    ) -> "PinStore":
        return cls(load_pinned_certificates(paths, suffixes), **kwargs)

    @classmethod
    def from_config(cls, config: dict, **kwargs) -> "PinStore":
        pinning = config.get("pinning", {})
        return cls.from_paths(
            pinning.get("certificates", []),
            suffixes=pinning.get("suffixes"),
            use_public_keys=pinning.get("mode") == constants.MODE_PUBLIC_KEY,
            validated_dn=pinning.get("validate_domain", True),
            **kwargs,
        )

    @staticmethod
    def _collect_certificates(
        certs: list[PinnedCertificate],
    ) -> tuple[CertificatePins, int]:
        certificates = set()
        dropped = 0
        for cert in certs:
            if cert.der is None:
                # key pins have no certificate form, undecodable ones count as dropped
                if cert.key is None:
                    dropped += 1
                continue
            try:
                load_certificate(FILETYPE_ASN1, cert.der)
            except OpenSSLError as ex:
                logger.debug(ex, exc_info=True)
                dropped += 1
                continue
            certificates.add(cert.der)
        return CertificatePins(certificates=frozenset(certificates)), dropped

    def _materialized(self, future: Future) -> None:
        try:
            pins, dropped = future.result()
        except Exception as ex:
            # the store stays not ready and every validation fails closed
            logger.error(ex, exc_info=True)
            return
        self._publish(pins, dropped)

    def _publish(self, pins: Union[CertificatePins, PublicKeyPins], dropped: int):
        self._dropped = dropped
        self._pins = pins
        if dropped:
            logger.warning(
                f"{dropped} pinned entries could not be parsed and were dropped"
            )
        logger.info(f"pin store ready with {len(pins)} {type(pins).__name__}")
        self._ready.set()

    @property
    def is_ready(self) -> bool:
        return self._ready.is_set()

    @property
    def pins(self) -> Union[CertificatePins, PublicKeyPins, None]:
        if not self._ready.is_set():
            return None
        return self._pins

    @property
    def dropped(self) -> int:
        return self._dropped

    def wait_ready(
        self,
        attempts: int = constants.READINESS_ATTEMPTS,
        interval: float = constants.READINESS_INTERVAL,
    ) -> Union[CertificatePins, PublicKeyPins, None]:
        if self._ready.is_set():
            return self._pins
        for attempt in range(attempts):
            if self._ready.wait(interval):
                return self._pins
            logger.debug(f"pin store not ready, attempt {attempt + 1} of {attempts}")
        return None
