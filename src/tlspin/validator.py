import logging
from typing import Union

from . import chain, constants
from .store import PinStore, CertificatePins, PublicKeyPins
from .trust import PeerTrust, create_basic_x509_policy, create_ssl_policy

__module__ = "tlspin.validator"

logger = logging.getLogger(__name__)


class Validator:
    def __init__(
        self,
        store: PinStore,
        poll_attempts: int = constants.READINESS_ATTEMPTS,
        poll_interval: float = constants.READINESS_INTERVAL,
    ) -> None:
        if not isinstance(store, PinStore):
            raise TypeError(
                f"provided an invalid type {type(store)} for store, expected PinStore"
            )
        self.store = store
        self.poll_attempts = poll_attempts
        self.poll_interval = poll_interval

    @classmethod
    def from_config(cls, config: dict, store: PinStore = None) -> "Validator":
        readiness = config.get("readiness", {})
        return cls(
            store or PinStore.from_config(config),
            poll_attempts=readiness.get("attempts", constants.READINESS_ATTEMPTS),
            poll_interval=readiness.get("interval", constants.READINESS_INTERVAL),
        )

    def is_valid(self, trust: PeerTrust, domain: Union[str, None] = None) -> bool:
        """
        Whether the peer behind the trust handle should be trusted. Never
        raises, every failure is reported as not trusted.
        """
        try:
            return self._is_valid(trust, domain)
        except Exception as ex:
            logger.warning(ex, exc_info=True)
        return False

    def _is_valid(self, trust: PeerTrust, domain: Union[str, None]) -> bool:
        pins = self.store.wait_ready(self.poll_attempts, self.poll_interval)
        if pins is None:
            logger.warning(
                f"pin store was not ready after {self.poll_attempts} attempts"
            )
            return False
        if len(pins) == 0:
            logger.warning("no pinned certificates or public keys to match against")
            return False

        if self.store.validated_dn and domain:
            policy = create_ssl_policy(hostname=domain)
        else:
            policy = create_basic_x509_policy()
        trust.set_policy(policy)

        if isinstance(pins, PublicKeyPins):
            return self._match_public_keys(trust, pins)
        if isinstance(pins, CertificatePins):
            return self._match_certificates(trust, pins)
        return False

    @staticmethod
    def _match_public_keys(trust: PeerTrust, pins: PublicKeyPins) -> bool:
        for index, server_key in enumerate(chain.public_key_chain(trust)):
            if server_key in pins.keys:
                logger.debug(f"matched pinned public key at chain position {index}")
                return True
        logger.info("no certificate in the peer chain carries a pinned public key")
        return False

    @staticmethod
    def _match_certificates(trust: PeerTrust, pins: CertificatePins) -> bool:
        server_certs = chain.certificate_chain(trust)
        trust.set_anchors(list(pins.certificates))
        result = trust.evaluate()
        if not result.trusted:
            logger.info(f"peer chain not trusted by the pinned anchors: {result.value}")
            return False
        trusted_count = sum(1 for cert in server_certs if cert in pins.certificates)
        if trusted_count != len(server_certs):
            logger.info(
                f"{len(server_certs) - trusted_count} of {len(server_certs)} peer certificates are not pinned"
            )
            return False
        return True
